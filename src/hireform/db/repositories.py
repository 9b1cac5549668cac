from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hireform.core.catalog import FieldCatalog
from hireform.core.lifecycle import StatusLifecycle, initial_status
from hireform.db.models import AppFormField, Application, InfoField, Job, OtherUserInfo, Profile
from hireform.errors import (
    CatalogError,
    ConfigurationError,
    DuplicateApplicationError,
    NotFoundError,
    SubmissionError,
)
from hireform.types import (
    FIELD_STATES,
    FIELD_TYPES,
    RESERVED_KEYS,
    ApplicationRecord,
    FieldConfiguration,
    FieldDescriptor,
    OtherInfoAnswer,
    ProfileBundle,
    ProfileSnapshot,
    SubmissionPayload,
)

logger = logging.getLogger(__name__)

PROFILE_WRITABLE_ATTRIBUTES = frozenset(
    {"full_name", "gender", "phone", "location", "linkedin_url", "bio", "resume_url", "avatar_url"}
)


def descriptor_from_row(row: InfoField) -> FieldDescriptor:
    try:
        return FieldDescriptor(
            id=row.id,
            key=row.key,
            label=row.label,
            field_type=row.field_type,
            options=tuple(row.options_json or []),
            description=row.description,
            validation_hints=row.validation_json or None,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"malformed catalog field '{row.key}': {exc.errors()[0]['msg']}") from exc


def profile_snapshot(row: Profile) -> ProfileSnapshot:
    return ProfileSnapshot(
        id=row.id,
        user_id=row.user_id,
        full_name=row.full_name,
        gender=row.gender,
        phone=row.phone,
        location=row.location,
        linkedin_url=row.linkedin_url,
        bio=row.bio,
        resume_url=row.resume_url,
        avatar_url=row.avatar_url,
    )


def application_record(row: Application) -> ApplicationRecord:
    return ApplicationRecord(
        id=row.id,
        job_id=row.job_id,
        applicant_id=row.applicant_id,
        status=row.status,
        form_response=dict(row.form_response_json or {}),
        cover_letter=row.cover_letter,
        resume_url=row.resume_url,
        source=row.source,
        applied_at=row.applied_at,
        viewed_at=row.viewed_at,
        status_updated_at=row.status_updated_at,
    )


class Repository:
    def __init__(self, session: Session):
        self.session = session

    # -- catalog -----------------------------------------------------------

    def list_info_fields(self) -> list[InfoField]:
        statement = select(InfoField).order_by(InfoField.display_order.asc(), InfoField.id.asc())
        return list(self.session.scalars(statement).all())

    def get_info_field_by_key(self, key: str) -> InfoField | None:
        return self.session.scalar(select(InfoField).where(InfoField.key == key))

    def create_info_field(
        self,
        *,
        key: str,
        label: str,
        field_type: str = "text",
        options: Sequence[str] = (),
        description: str = "",
        validation: dict[str, Any] | None = None,
        is_custom: bool = True,
    ) -> InfoField:
        key = key.strip()
        if key in RESERVED_KEYS:
            raise CatalogError(f"field key '{key}' is reserved")
        if field_type not in FIELD_TYPES:
            raise CatalogError(f"unsupported field type '{field_type}'")
        if self.get_info_field_by_key(key):
            raise CatalogError(f"field key '{key}' already registered")

        try:
            FieldDescriptor(
                id=0,
                key=key,
                label=label,
                field_type=field_type,
                options=tuple(options),
                description=description,
                validation_hints=validation or None,
            )
        except ValidationError as exc:
            raise CatalogError(f"invalid field definition '{key}': {exc.errors()[0]['msg']}") from exc

        max_order = self.session.scalar(select(func.max(InfoField.display_order))) or 0
        row = InfoField(
            key=key,
            label=label,
            field_type=field_type,
            options_json=list(options),
            description=description,
            validation_json=validation or {},
            is_custom=is_custom,
            display_order=max_order + 1,
        )
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def load_catalog(self) -> FieldCatalog:
        return FieldCatalog(descriptor_from_row(row) for row in self.list_info_fields())

    # -- jobs & field configuration ---------------------------------------

    def create_job(
        self,
        *,
        title: str,
        company: str = "",
        location: str = "",
        description: str = "",
        fields: Iterable[tuple[str, str]] = (),
    ) -> Job:
        """Publish a job together with one configuration row per listed field."""
        job = Job(title=title, company=company, location=location, description=description)
        self.session.add(job)
        self.session.flush()

        try:
            for order, (field_key, state) in enumerate(fields):
                self._add_configuration(job.id, field_key, state, order)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(job)
        return job

    def _add_configuration(self, job_id: int, field_key: str, state: str, sort_order: int) -> AppFormField:
        if state not in FIELD_STATES:
            raise ConfigurationError(f"invalid field state '{state}'")
        info = self.get_info_field_by_key(field_key)
        if not info:
            raise CatalogError(f"unknown field key '{field_key}'")
        row = AppFormField(job_id=job_id, field_id=info.id, field_state=state, sort_order=sort_order)
        self.session.add(row)
        return row

    def add_field_to_job(self, job_id: int, field_key: str, state: str = "optional") -> AppFormField:
        if not self.get_job(job_id):
            raise NotFoundError(f"job {job_id} not found")
        current_max = self.session.scalar(
            select(func.max(AppFormField.sort_order)).where(AppFormField.job_id == job_id)
        )
        try:
            row = self._add_configuration(job_id, field_key, state, (current_max or 0) + 1)
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConfigurationError(f"field '{field_key}' already configured for job {job_id}") from exc
        self.session.refresh(row)
        return row

    def get_job(self, job_id: int) -> Job | None:
        return self.session.get(Job, job_id)

    def list_jobs(self, limit: int) -> list[Job]:
        statement = select(Job).order_by(Job.created_at.desc(), Job.id.desc()).limit(limit)
        return list(self.session.scalars(statement).all())

    def list_field_configurations(self, job_id: int) -> list[FieldConfiguration]:
        """Every configuration for the job, ``off`` included, ordered by sort order."""
        statement = (
            select(AppFormField, InfoField)
            .join(InfoField, InfoField.id == AppFormField.field_id)
            .where(AppFormField.job_id == job_id)
            .order_by(AppFormField.sort_order.asc(), InfoField.key.asc())
        )
        configurations = []
        for config, info in self.session.execute(statement).all():
            configurations.append(
                FieldConfiguration(
                    id=config.id,
                    job_id=config.job_id,
                    field=descriptor_from_row(info),
                    state=config.field_state,
                    sort_order=config.sort_order,
                )
            )
        return configurations

    def list_visible_configurations(self, job_id: int) -> list[FieldConfiguration]:
        return [config for config in self.list_field_configurations(job_id) if config.is_visible]

    def set_field_state(self, job_id: int, field_id: int, state: str) -> AppFormField:
        if state not in FIELD_STATES:
            raise ConfigurationError(f"invalid field state '{state}'")
        row = self._get_configuration_row(job_id, field_id)
        row.field_state = state
        self.session.commit()
        self.session.refresh(row)
        return row

    def reorder_fields(self, job_id: int, field_ids: Sequence[int]) -> list[FieldConfiguration]:
        rows = {
            row.field_id: row
            for row in self.session.scalars(select(AppFormField).where(AppFormField.job_id == job_id)).all()
        }
        if sorted(field_ids) != sorted(rows):
            raise ConfigurationError("reorder must list every configured field exactly once")
        for order, field_id in enumerate(field_ids):
            rows[field_id].sort_order = order
        self.session.commit()
        return self.list_field_configurations(job_id)

    def _get_configuration_row(self, job_id: int, field_id: int) -> AppFormField:
        row = self.session.scalar(
            select(AppFormField).where(
                and_(AppFormField.job_id == job_id, AppFormField.field_id == field_id)
            )
        )
        if not row:
            raise NotFoundError(f"field {field_id} is not configured for job {job_id}")
        return row

    # -- profiles ----------------------------------------------------------

    def create_profile(self, user_id: str, **values: Any) -> Profile:
        unknown = set(values) - PROFILE_WRITABLE_ATTRIBUTES
        if unknown:
            raise ValueError(f"unknown profile attributes: {sorted(unknown)}")
        profile = Profile(user_id=user_id, **values)
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def get_profile(self, profile_id: int) -> Profile | None:
        return self.session.get(Profile, profile_id)

    def get_profile_by_user(self, user_id: str) -> Profile | None:
        return self.session.scalar(select(Profile).where(Profile.user_id == user_id))

    def list_other_info(self, profile_id: int) -> list[OtherInfoAnswer]:
        statement = (
            select(OtherUserInfo, InfoField.key)
            .join(InfoField, InfoField.id == OtherUserInfo.field_id)
            .where(OtherUserInfo.profile_id == profile_id)
            .order_by(OtherUserInfo.id.asc())
        )
        return [
            OtherInfoAnswer(
                id=row.id,
                profile_id=row.profile_id,
                field_id=row.field_id,
                answer=row.info_field_answer,
                field_key=key,
            )
            for row, key in self.session.execute(statement).all()
        ]

    def upsert_other_info(self, profile_id: int, field_id: int, answer: str) -> OtherUserInfo:
        row = self._find_other_info(profile_id, field_id)
        if row:
            row.info_field_answer = answer
        else:
            row = OtherUserInfo(profile_id=profile_id, field_id=field_id, info_field_answer=answer)
            self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def _find_other_info(self, profile_id: int, field_id: int) -> OtherUserInfo | None:
        return self.session.scalar(
            select(OtherUserInfo).where(
                and_(OtherUserInfo.profile_id == profile_id, OtherUserInfo.field_id == field_id)
            )
        )

    def get_profile_bundle(self, user_id: str) -> ProfileBundle | None:
        profile = self.get_profile_by_user(user_id)
        if not profile:
            return None
        return ProfileBundle(profile=profile_snapshot(profile), answers=self.list_other_info(profile.id))

    # -- applications ------------------------------------------------------

    def apply_submission(self, *, job_id: int, user_id: str, payload: SubmissionPayload) -> Application:
        """Apply the profile update, answer upserts and application insert atomically."""
        profile = self.get_profile_by_user(user_id)
        if not profile:
            raise NotFoundError("User profile not found")
        job = self.get_job(job_id)
        if not job:
            raise NotFoundError(f"job {job_id} not found")

        if self.get_application_for(job_id, profile.id):
            raise DuplicateApplicationError("You have already applied to this job")

        configured = {config.field.id for config in self.list_visible_configurations(job_id)}
        try:
            for attribute, value in payload.profile_updates.items():
                if attribute not in PROFILE_WRITABLE_ATTRIBUTES:
                    raise SubmissionError(f"profile attribute '{attribute}' cannot be updated")
                # a blank answer never clears a populated profile attribute
                if value is None or not value.strip():
                    continue
                setattr(profile, attribute, value)

            for upsert in payload.other_info_upserts:
                if upsert.field_id not in configured:
                    raise SubmissionError(f"field {upsert.field_id} is not part of job {job_id}'s form")
                row = None
                if upsert.id is not None:
                    row = self.session.get(OtherUserInfo, upsert.id)
                    if row is not None and (row.profile_id != profile.id or row.field_id != upsert.field_id):
                        row = None
                row = row or self._find_other_info(profile.id, upsert.field_id)
                if row:
                    row.info_field_answer = upsert.answer
                else:
                    self.session.add(
                        OtherUserInfo(profile_id=profile.id, field_id=upsert.field_id, info_field_answer=upsert.answer)
                    )

            snapshot = payload.application
            application = Application(
                job_id=job_id,
                applicant_id=profile.id,
                status=initial_status(),
                form_response_json=dict(snapshot.form_response),
                cover_letter=snapshot.cover_letter,
                resume_url=snapshot.resume_url,
                source=snapshot.source,
                applied_at=datetime.now(UTC),
            )
            self.session.add(application)
            job.applications_count = job.applications_count + 1
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Submission for job %s rejected by storage: %s", job_id, exc.orig)
            raise SubmissionError("submission rejected by storage") from exc
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(application)
        logger.info("Application %s created for job %s", application.id, job_id)
        return application

    def get_application(self, application_id: int) -> Application | None:
        return self.session.get(Application, application_id)

    def get_application_for(self, job_id: int, profile_id: int) -> Application | None:
        return self.session.scalar(
            select(Application).where(
                and_(Application.job_id == job_id, Application.applicant_id == profile_id)
            )
        )

    def list_applications(self, job_id: int, limit: int) -> list[Application]:
        statement = (
            select(Application)
            .where(Application.job_id == job_id)
            .order_by(Application.applied_at.desc(), Application.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(statement).all())

    def update_application_status(
        self,
        application_id: int,
        status: str,
        lifecycle: StatusLifecycle | None = None,
    ) -> Application:
        application = self.get_application(application_id)
        if not application:
            raise NotFoundError(f"application {application_id} not found")
        (lifecycle or StatusLifecycle.default()).transition(application, status)
        self.session.commit()
        self.session.refresh(application)
        return application

    def mark_application_viewed(self, application_id: int) -> Application:
        application = self.get_application(application_id)
        if not application:
            raise NotFoundError(f"application {application_id} not found")
        if StatusLifecycle.default().mark_viewed(application):
            self.session.commit()
            self.session.refresh(application)
        return application
