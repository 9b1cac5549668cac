from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Literal

from hireform.client.backend import ApplicationBackend, apply_path
from hireform.config import Settings, get_settings
from hireform.core.attachments import CoverLetterInput, CoverLetterMode, select_attachment
from hireform.core.catalog import RenderStrategy, ResolvedForm, resolve_form
from hireform.core.prefill import PrefillResult, resolve_prefill
from hireform.core.schema_builder import ApplicationSchema, ValidationResult, build_application_schema
from hireform.core.submission import assemble_submission
from hireform.errors import (
    AttachmentError,
    FormNotReadyError,
    FormValidationError,
    HireformError,
    SessionExpiredError,
    SubmissionCancelled,
)
from hireform.types import (
    COVER_LETTER_KEY,
    PHOTO_KEY,
    RESUME_KEY,
    SOURCE_KEY,
    ApplicationRecord,
    AttachmentHandle,
    AttachmentKind,
    FieldConfiguration,
    ProfileBundle,
    ProfileSnapshot,
)

logger = logging.getLogger(__name__)

SessionState = Literal["loading", "ready", "submitting", "submitted"]


class FormSession:
    """Single in-memory value store for one applicant filling in one job's form.

    Values are written only by user input (``set_value`` and the attachment
    selectors) and by the prefill seed, which never overwrites a key the user
    has touched.
    """

    def __init__(
        self,
        backend: ApplicationBackend,
        *,
        job_id: int,
        user_id: str,
        settings: Settings | None = None,
    ):
        self.backend = backend
        self.job_id = job_id
        self.user_id = user_id
        self.settings = settings or get_settings()

        self.state: SessionState = "loading"
        self.form: ResolvedForm | None = None
        self.schema: ApplicationSchema | None = None
        self.profile: ProfileSnapshot | None = None
        self.prefill: PrefillResult | None = None

        self.values: dict[str, Any] = {}
        self.dirty: set[str] = set()
        self.cover_letter = CoverLetterInput()
        self.errors: dict[str, str] = {}
        self.load_error: HireformError | None = None
        self.submit_error: HireformError | None = None
        self.result: ApplicationRecord | None = None

        self._submit_task: asyncio.Task[ApplicationRecord] | None = None
        self._cancel_requested = False
        self._writing = False

    @property
    def return_path(self) -> str:
        return apply_path(self.job_id)

    @property
    def is_ready(self) -> bool:
        return self.state == "ready"

    def render_plan(self) -> list[tuple[FieldConfiguration, RenderStrategy]]:
        self._require_loaded()
        return self.form.render_plan()

    # -- loading & seeding -------------------------------------------------

    async def load(self) -> bool:
        self.state = "loading"
        self.load_error = None
        try:
            configurations, bundle = await asyncio.gather(
                self.backend.get_field_configuration(self.job_id),
                self.backend.get_profile(self.user_id),
            )
            self.reseed(configurations, bundle)
        except SessionExpiredError as exc:
            raise SessionExpiredError(return_to=self.return_path) from exc
        except HireformError as exc:
            logger.warning("Could not load application form for job %s: %s", self.job_id, exc)
            self.load_error = exc
            return False
        return True

    def reseed(self, configurations: Sequence[FieldConfiguration], bundle: ProfileBundle) -> None:
        """Rebuild the form for new configuration or profile data.

        Only keys the user has not edited are (re)seeded; keys that left the
        form are dropped.
        """
        form = resolve_form(configurations, job_id=self.job_id)
        prefill = resolve_prefill(form, bundle.profile, bundle.answers)
        if self.prefill is None or prefill.fingerprint != self.prefill.fingerprint:
            self._apply_seed(form, bundle.profile, prefill)
        if self.state == "loading":
            self.state = "ready"

    def _apply_seed(self, form: ResolvedForm, profile: ProfileSnapshot, prefill: PrefillResult) -> None:
        self.form = form
        self.schema = build_application_schema(
            form,
            cover_letter_min_length=self.settings.cover_letter_min_length,
        )
        self.profile = profile
        self.prefill = prefill

        live_keys = set(self.schema.keys)
        self.values = {key: value for key, value in self.values.items() if key in live_keys}
        self.dirty &= live_keys
        self.errors = {key: msg for key, msg in self.errors.items() if key in live_keys}

        for key, value in prefill.values.items():
            self._seed(key, value)
        self._seed(RESUME_KEY, prefill.resume)
        if form.photo_field is not None:
            self._seed(PHOTO_KEY, prefill.avatar_url)
        self._seed(SOURCE_KEY, "")
        logger.debug("Seeded form for job %s with %d fields", self.job_id, len(prefill.values))

    def _seed(self, key: str, value: Any) -> None:
        if key not in self.dirty:
            self.values[key] = value

    # -- user input --------------------------------------------------------

    def set_value(self, key: str, value: Any) -> None:
        self._require_loaded()
        if key == COVER_LETTER_KEY:
            self.set_cover_letter_text(value)
            return
        if key not in self.schema:
            raise KeyError(f"'{key}' is not a field of this form")
        self.values[key] = value
        self.dirty.add(key)
        self.errors.pop(key, None)

    def _select(
        self,
        kind: AttachmentKind,
        key: str,
        filename: str,
        content: bytes,
        content_type: str | None,
    ) -> AttachmentHandle | None:
        try:
            handle = select_attachment(
                kind,
                filename,
                content,
                content_type,
                max_bytes=self.settings.max_attachment_bytes,
            )
        except AttachmentError as exc:
            self.errors[key] = exc.message
            return None
        self.errors.pop(key, None)
        return handle

    def select_resume(
        self,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> AttachmentHandle | None:
        self._require_loaded()
        handle = self._select("resume", RESUME_KEY, filename, content, content_type)
        if handle is not None:
            self.values[RESUME_KEY] = handle
            self.dirty.add(RESUME_KEY)
        return handle

    def select_photo(
        self,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> AttachmentHandle | None:
        self._require_loaded()
        if self.form.photo_field is None:
            raise KeyError(f"'{PHOTO_KEY}' is not a field of this form")
        handle = self._select("photo", PHOTO_KEY, filename, content, content_type)
        if handle is not None:
            self.values[PHOTO_KEY] = handle
            self.dirty.add(PHOTO_KEY)
        return handle

    def select_cover_letter_file(
        self,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> AttachmentHandle | None:
        self._require_loaded()
        handle = self._select("cover_letter", COVER_LETTER_KEY, filename, content, content_type)
        if handle is not None:
            self.cover_letter.set_file(handle)
        return handle

    def set_cover_letter_text(self, text: str) -> None:
        self.cover_letter.set_text(text or "")
        self.errors.pop(COVER_LETTER_KEY, None)

    def switch_cover_letter_mode(self, mode: CoverLetterMode) -> None:
        self.cover_letter.switch_mode(mode)
        self.errors.pop(COVER_LETTER_KEY, None)

    def current_values(self) -> dict[str, Any]:
        values = dict(self.values)
        values[COVER_LETTER_KEY] = self.cover_letter.value
        return values

    def validate(self) -> ValidationResult:
        self._require_loaded()
        result = self.schema.validate(self.current_values())
        self.errors = dict(result.errors)
        return result

    # -- submission --------------------------------------------------------

    async def submit(self) -> ApplicationRecord | None:
        if self.state != "ready":
            raise FormNotReadyError(f"form for job {self.job_id} is {self.state}")

        self.submit_error = None
        result = self.validate()
        if not result.ok:
            return None

        self.state = "submitting"
        self._cancel_requested = False
        self._writing = False
        self._submit_task = asyncio.create_task(self._send(result.values))
        try:
            record = await self._submit_task
        except asyncio.CancelledError:
            self.state = "ready"
            if not self._cancel_requested:
                raise
            self.submit_error = SubmissionCancelled("submission cancelled before it completed")
            logger.info("Submission for job %s cancelled", self.job_id)
            return None
        except SessionExpiredError as exc:
            self.state = "ready"
            raise SessionExpiredError(return_to=self.return_path) from exc
        except HireformError as exc:
            self.state = "ready"
            self.submit_error = exc
            if isinstance(exc, FormValidationError):
                self.errors.update(exc.errors)
            logger.warning("Submission for job %s failed: %s", self.job_id, exc)
            return None
        finally:
            self._submit_task = None

        self.state = "submitted"
        self.result = record
        return record

    def cancel(self) -> bool:
        """Abort an in-flight submission while its attachments are still uploading.

        Once the application write has been dispatched it runs to completion
        and ``submit()`` reports its real outcome, so ``cancel()`` refuses.
        """
        task = self._submit_task
        if task is None or task.done() or self._writing:
            return False
        self._cancel_requested = True
        task.cancel()
        return True

    async def _send(self, validated: dict[str, Any]) -> ApplicationRecord:
        values = dict(validated)
        for key in (RESUME_KEY, PHOTO_KEY, COVER_LETTER_KEY):
            handle = values.get(key)
            if isinstance(handle, AttachmentHandle) and not handle.uploaded_url:
                url = await self.backend.upload_attachment(handle)
                values[key] = self._remember_upload(key, handle, url)

        payload = assemble_submission(values, self.form, self.profile, self.prefill)
        self._writing = True
        try:
            return await self.backend.submit_application(self.job_id, self.user_id, payload)
        finally:
            self._writing = False

    def _remember_upload(self, key: str, handle: AttachmentHandle, url: str) -> AttachmentHandle:
        uploaded = handle.model_copy(update={"uploaded_url": url})
        if key == COVER_LETTER_KEY:
            if self.cover_letter.file == handle:
                self.cover_letter.file = uploaded
        elif self.values.get(key) == handle:
            self.values[key] = uploaded
        return uploaded

    def _require_loaded(self) -> None:
        if self.form is None or self.schema is None:
            raise FormNotReadyError(f"form for job {self.job_id} has not loaded")
