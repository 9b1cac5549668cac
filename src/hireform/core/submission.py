"""Turn a validated form into the three-part outbound submission payload.

The payload carries (1) the immutable application snapshot, (2) profile
updates restricted to canonical profile attributes and (3) one other-info
upsert per visible generic field. It never carries a status: new
applications always start as ``PENDING`` on the write side.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from hireform.core.catalog import ResolvedForm
from hireform.core.prefill import PROFILE_ATTRIBUTE_MAP, PrefillResult
from hireform.errors import FormValidationError, SubmissionError
from hireform.types import (
    COVER_LETTER_KEY,
    PHOTO_KEY,
    RESUME_KEY,
    SOURCE_KEY,
    ApplicationSnapshot,
    AttachmentHandle,
    OtherInfoUpsert,
    ProfileSnapshot,
    SubmissionPayload,
)

logger = logging.getLogger(__name__)


def attachment_url(value: Any, *, slot: str) -> str | None:
    """Resolve a form slot holding either a URL or an uploaded handle."""
    if isinstance(value, AttachmentHandle):
        if not value.uploaded_url:
            raise SubmissionError(f"{slot} attachment '{value.filename}' has not been uploaded")
        return value.uploaded_url
    if isinstance(value, str) and value.strip():
        return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _check_mandatory(form: ResolvedForm, values: Mapping[str, str]) -> None:
    missing = {
        config.key: f"{config.field.label} is required"
        for config in form.generic_fields
        if config.is_required and not values.get(config.key, "").strip()
    }
    if missing:
        raise FormValidationError(missing)


def build_profile_updates(
    values: Mapping[str, str],
    form: ResolvedForm,
    profile: ProfileSnapshot,
) -> dict[str, str | None]:
    visible = {config.key for config in form.generic_fields}
    updates: dict[str, str | None] = {}
    for key, attribute in PROFILE_ATTRIBUTE_MAP.items():
        submitted = values.get(key, "") if key in visible else ""
        updates[attribute] = submitted if submitted.strip() else getattr(profile, attribute)
    return updates


def assemble_submission(
    validated: Mapping[str, Any],
    form: ResolvedForm,
    profile: ProfileSnapshot,
    prefill: PrefillResult | None = None,
) -> SubmissionPayload:
    answer_ids = prefill.answer_ids if prefill else {}

    dynamic = {config.key: _text(validated.get(config.key)) for config in form.generic_fields}
    _check_mandatory(form, dynamic)

    resume_url = attachment_url(validated.get(RESUME_KEY), slot="resume")
    if resume_url is None:
        raise FormValidationError({RESUME_KEY: "Resume is required"})

    cover_value = validated.get(COVER_LETTER_KEY)
    if isinstance(cover_value, AttachmentHandle):
        cover_letter = attachment_url(cover_value, slot="cover letter") or ""
    else:
        cover_letter = _text(cover_value)

    form_response: dict[str, str] = dict(dynamic)
    avatar_url = profile.avatar_url
    if form.photo_field is not None:
        photo_url = attachment_url(validated.get(PHOTO_KEY), slot="photo")
        avatar_url = photo_url or profile.avatar_url
        form_response[PHOTO_KEY] = avatar_url or ""
    form_response[RESUME_KEY] = resume_url
    form_response[SOURCE_KEY] = _text(validated.get(SOURCE_KEY))
    form_response[COVER_LETTER_KEY] = cover_letter

    profile_updates = build_profile_updates(dynamic, form, profile)
    profile_updates["resume_url"] = resume_url
    profile_updates["avatar_url"] = avatar_url

    upserts = [
        OtherInfoUpsert(
            id=answer_ids.get(config.field.id),
            field_id=config.field.id,
            answer=dynamic[config.key],
        )
        for config in form.generic_fields
    ]

    payload = SubmissionPayload(
        application=ApplicationSnapshot(
            form_response=form_response,
            cover_letter=cover_letter,
            resume_url=resume_url,
            source=form_response[SOURCE_KEY],
        ),
        profile_updates=profile_updates,
        other_info_upserts=upserts,
    )
    logger.debug(
        "assembled submission for job %s: %d fields, %d upserts",
        form.job_id,
        len(form_response),
        len(upserts),
    )
    return payload
