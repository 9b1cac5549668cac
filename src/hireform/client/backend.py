"""Collaborators the form session talks to.

``HttpApplicationBackend`` speaks to the hireform HTTP API with httpx;
``LocalApplicationBackend`` drives the repository in-process (CLI, tests).
Both translate failures into the engine's error taxonomy.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

import httpx
from sqlalchemy.orm import Session

from hireform.core.intake import ApplicationIntake
from hireform.db.repositories import Repository
from hireform.db.session import SessionLocal
from hireform.errors import (
    AttachmentError,
    DuplicateApplicationError,
    EmptyFormError,
    FormValidationError,
    NotFoundError,
    SessionExpiredError,
    SubmissionError,
)
from hireform.storage import LocalAttachmentStore
from hireform.types import (
    ApplicationRecord,
    AttachmentHandle,
    FieldConfiguration,
    ProfileBundle,
    SubmissionPayload,
)

logger = logging.getLogger(__name__)


class ApplicationBackend(Protocol):
    async def get_field_configuration(self, job_id: int) -> list[FieldConfiguration]: ...

    async def get_profile(self, user_id: str) -> ProfileBundle: ...

    async def upload_attachment(self, handle: AttachmentHandle) -> str: ...

    async def submit_application(
        self,
        job_id: int,
        user_id: str,
        payload: SubmissionPayload,
    ) -> ApplicationRecord: ...


def apply_path(job_id: int) -> str:
    return f"/jobs/{job_id}/apply"


class HttpApplicationBackend:
    def __init__(
        self,
        base_url: str,
        *,
        user_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.user_id = user_id
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, user_id: str | None = None) -> dict[str, str]:
        user = user_id or self.user_id
        return {"X-User-Id": user} if user else {}

    async def _request(self, method: str, url: str, *, return_to: str = "/", **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Request %s %s failed: %s", method, url, exc)
            raise SubmissionError(f"network error: {exc}") from exc

        if response.status_code == 401:
            raise SessionExpiredError(return_to=return_to)
        if response.is_success:
            return response

        body = _json_body(response)
        detail = str(body.get("detail") or response.reason_phrase)
        if response.status_code == 404:
            raise NotFoundError(detail)
        if response.status_code == 409:
            raise DuplicateApplicationError(detail)
        if response.status_code == 422:
            raise FormValidationError(body.get("errors") or {"__root__": detail})
        if response.status_code == 400 and "reason" in body:
            raise AttachmentError(str(body["reason"]), detail)
        raise SubmissionError(f"server rejected request ({response.status_code}): {detail}")

    async def get_field_configuration(self, job_id: int) -> list[FieldConfiguration]:
        try:
            response = await self._request(
                "GET",
                f"/api/jobs/{job_id}/application-fields",
                return_to=apply_path(job_id),
                headers=self._headers(),
            )
        except NotFoundError as exc:
            if str(exc) == "No form fields configured":
                raise EmptyFormError(job_id) from exc
            raise
        return [FieldConfiguration.model_validate(item) for item in response.json()]

    async def get_profile(self, user_id: str) -> ProfileBundle:
        response = await self._request(
            "GET",
            f"/api/profiles/user/{user_id}",
            headers=self._headers(user_id),
        )
        return ProfileBundle.model_validate(response.json())

    async def upload_attachment(self, handle: AttachmentHandle) -> str:
        response = await self._request(
            "POST",
            f"/api/uploads/{handle.kind}",
            headers=self._headers(),
            files={"file": (handle.filename, handle.content, handle.content_type)},
        )
        return response.json()["url"]

    async def submit_application(
        self,
        job_id: int,
        user_id: str,
        payload: SubmissionPayload,
    ) -> ApplicationRecord:
        response = await self._request(
            "POST",
            f"/api/jobs/{job_id}/apply",
            return_to=apply_path(job_id),
            headers=self._headers(user_id),
            json=payload.model_dump(mode="json"),
        )
        return ApplicationRecord.model_validate(response.json())


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class LocalApplicationBackend:
    """Repository-backed collaborator; each call runs in a worker thread with its own session."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        store: LocalAttachmentStore | None = None,
    ):
        self.session_factory = session_factory
        self.store = store or LocalAttachmentStore()

    async def get_field_configuration(self, job_id: int) -> list[FieldConfiguration]:
        def load() -> list[FieldConfiguration]:
            with self.session_factory() as session:
                return ApplicationIntake(session).visible_form(job_id).visible_fields

        return await asyncio.to_thread(load)

    async def get_profile(self, user_id: str) -> ProfileBundle:
        def load() -> ProfileBundle:
            with self.session_factory() as session:
                bundle = Repository(session).get_profile_bundle(user_id)
            if bundle is None:
                raise NotFoundError("User profile not found")
            return bundle

        return await asyncio.to_thread(load)

    async def upload_attachment(self, handle: AttachmentHandle) -> str:
        return await asyncio.to_thread(
            self.store.save, handle.kind, handle.filename, handle.content, handle.content_type
        )

    async def submit_application(
        self,
        job_id: int,
        user_id: str,
        payload: SubmissionPayload,
    ) -> ApplicationRecord:
        def apply() -> ApplicationRecord:
            with self.session_factory() as session:
                return ApplicationIntake(session).apply(job_id=job_id, user_id=user_id, payload=payload)

        return await asyncio.to_thread(apply)
