"""Initial form values from the applicant's profile and earlier answers.

Sources are consulted through an ordered tuple of strategies; the first one
that yields a value wins. The resolver is pure: seeding the live form store
(and protecting user edits from being overwritten) is the form session's job.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from hireform.core.catalog import ResolvedForm
from hireform.types import FieldConfiguration, OtherInfoAnswer, ProfileSnapshot

PROFILE_ATTRIBUTE_MAP: dict[str, str] = {
    "phone_number": "phone",
    "domicile": "location",
    "linkedin_url": "linkedin_url",
    "full_name": "full_name",
    "gender": "gender",
}


@dataclass(slots=True)
class PrefillContext:
    profile: ProfileSnapshot | None
    answers_by_field: dict[int, OtherInfoAnswer]


class PrefillStrategy(Protocol):
    name: str

    def resolve(self, config: FieldConfiguration, context: PrefillContext) -> str | None: ...


class OtherInfoAnswerStrategy:
    name = "other_info"

    def resolve(self, config: FieldConfiguration, context: PrefillContext) -> str | None:
        answer = context.answers_by_field.get(config.field.id)
        return None if answer is None else answer.answer


class ProfileAttributeStrategy:
    name = "profile"

    def __init__(self, mapping: dict[str, str] | None = None):
        self.mapping = PROFILE_ATTRIBUTE_MAP if mapping is None else mapping

    def resolve(self, config: FieldConfiguration, context: PrefillContext) -> str | None:
        attribute = self.mapping.get(config.key)
        if attribute is None or context.profile is None:
            return None
        value = getattr(context.profile, attribute, None)
        return value or None


class EmptyDefaultStrategy:
    name = "empty"

    def resolve(self, config: FieldConfiguration, context: PrefillContext) -> str | None:
        return ""


DEFAULT_STRATEGIES: tuple[PrefillStrategy, ...] = (
    OtherInfoAnswerStrategy(),
    ProfileAttributeStrategy(),
    EmptyDefaultStrategy(),
)


@dataclass(slots=True)
class PrefillResult:
    values: dict[str, str] = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)
    answer_ids: dict[int, int] = field(default_factory=dict)
    resume: str | None = None
    avatar_url: str | None = None
    fingerprint: str = ""


def prefill_fingerprint(
    form: ResolvedForm,
    profile: ProfileSnapshot | None,
    answers: Iterable[OtherInfoAnswer],
) -> str:
    payload = {
        "fields": [(config.field.id, config.key, config.state) for config in form.visible_fields],
        "profile": profile.model_dump() if profile else None,
        "answers": sorted((answer.field_id, answer.answer) for answer in answers),
    }
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def resolve_prefill(
    form: ResolvedForm,
    profile: ProfileSnapshot | None,
    answers: Iterable[OtherInfoAnswer] = (),
    strategies: Sequence[PrefillStrategy] = DEFAULT_STRATEGIES,
) -> PrefillResult:
    answers = list(answers)
    if profile is not None:
        answers = [answer for answer in answers if answer.profile_id == profile.id]
    context = PrefillContext(
        profile=profile,
        answers_by_field={answer.field_id: answer for answer in answers},
    )

    result = PrefillResult(
        resume=(profile.resume_url or None) if profile else None,
        avatar_url=(profile.avatar_url or None) if profile else None,
        fingerprint=prefill_fingerprint(form, profile, answers),
    )
    for config in form.generic_fields:
        existing = context.answers_by_field.get(config.field.id)
        if existing is not None and existing.id is not None:
            result.answer_ids[config.field.id] = existing.id

        for strategy in strategies:
            value = strategy.resolve(config, context)
            if value is not None:
                result.values[config.key] = value
                result.sources[config.key] = strategy.name
                break
        else:
            result.values[config.key] = ""
            result.sources[config.key] = "empty"

    return result
