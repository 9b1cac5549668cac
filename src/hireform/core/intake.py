from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from hireform.config import Settings, get_settings
from hireform.core.catalog import ResolvedForm, resolve_form
from hireform.core.schema_builder import ApplicationSchema, build_application_schema
from hireform.db.repositories import Repository, application_record
from hireform.errors import DuplicateApplicationError, NotFoundError
from hireform.types import ApplicationRecord, SubmissionPayload

logger = logging.getLogger(__name__)


class ApplicationIntake:
    """Server side of the apply flow: form lookup, re-validation and persistence."""

    def __init__(self, session: Session, *, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)

    def visible_form(self, job_id: int) -> ResolvedForm:
        if not self.repo.get_job(job_id):
            raise NotFoundError(f"job {job_id} not found")
        return resolve_form(self.repo.list_visible_configurations(job_id), job_id=job_id)

    def schema_for(self, form: ResolvedForm) -> ApplicationSchema:
        return build_application_schema(
            form,
            cover_letter_min_length=self.settings.cover_letter_min_length,
            file_url_prefix=self.settings.upload_base_url,
        )

    def apply(self, *, job_id: int, user_id: str, payload: SubmissionPayload) -> ApplicationRecord:
        profile = self.repo.get_profile_by_user(user_id)
        if not profile:
            raise NotFoundError("User profile not found")
        form = self.visible_form(job_id)
        if self.repo.get_application_for(job_id, profile.id):
            raise DuplicateApplicationError("You have already applied to this job")

        schema = self.schema_for(form)
        submitted = payload.application.form_response
        schema.validate_or_raise(submitted)

        # keys outside the current form are dropped before they are persisted
        form_response = {key: submitted[key] for key in schema.keys if key in submitted}
        snapshot = payload.application.model_copy(update={"form_response": form_response})
        accepted = payload.model_copy(update={"application": snapshot})

        application = self.repo.apply_submission(job_id=job_id, user_id=user_id, payload=accepted)
        logger.info("Accepted application %s from %s for job %s", application.id, user_id, job_id)
        return application_record(application)
