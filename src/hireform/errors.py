"""Error taxonomy for the application form engine.

Every failure the engine can produce maps onto one of these classes so that
callers (the form session, the HTTP layer, the CLI) can decide on a
user-visible outcome without inspecting messages.
"""

from __future__ import annotations


class HireformError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(HireformError):
    """A job's field configuration cannot be turned into a form."""


class EmptyFormError(ConfigurationError):
    """The job has no field configurations at all."""

    def __init__(self, job_id: int | None = None):
        self.job_id = job_id
        super().__init__(f"no form fields configured for job {job_id}")


class CatalogError(ConfigurationError):
    """Invalid catalog registration (duplicate or reserved key)."""


class NotFoundError(HireformError):
    pass


class FormValidationError(HireformError):
    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{key}: {message}" for key, message in self.errors.items()))


class AttachmentError(HireformError):
    def __init__(self, reason: str, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)


class FormNotReadyError(HireformError):
    """Submission attempted while configuration or profile is still loading."""


class SubmissionError(HireformError):
    """Network failure or server-side rejection of a submission."""


class DuplicateApplicationError(SubmissionError):
    pass


class SubmissionCancelled(SubmissionError):
    """The submission was aborted (navigation away or session expiry)."""


class SessionExpiredError(HireformError):
    """Missing or expired session. Propagates to the navigation layer."""

    def __init__(self, return_to: str = "/"):
        self.return_to = return_to
        super().__init__(f"session expired; re-authenticate and return to {return_to}")

    @property
    def login_url(self) -> str:
        return f"/login?callbackUrl={self.return_to}"


class InvalidStatusTransition(HireformError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"cannot move application from {current} to {target}")
