from __future__ import annotations

import base64
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Literal

from hireform.errors import AttachmentError
from hireform.types import AttachmentHandle, AttachmentKind

logger = logging.getLogger(__name__)

MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024

PDF = "application/pdf"
DOC = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

EXTENSION_TYPES: dict[str, str] = {
    ".pdf": PDF,
    ".doc": DOC,
    ".docx": DOCX,
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}


@dataclass(frozen=True, slots=True)
class AttachmentPolicy:
    label: str
    allowed_mime_types: frozenset[str]
    max_bytes: int = MAX_ATTACHMENT_BYTES
    extensions: tuple[str, ...] = ()

    def check(self, *, filename: str, content_type: str, size_bytes: int) -> None:
        if content_type not in self.allowed_mime_types:
            raise AttachmentError(
                "type",
                f"{self.label} must be one of {', '.join(self.extensions)} "
                f"(got {content_type or 'unknown type'} for {filename})",
            )
        if size_bytes > self.max_bytes:
            raise AttachmentError(
                "size",
                f"{self.label} is too large: {size_bytes / 1024 / 1024:.2f} MB "
                f"exceeds the {self.max_bytes / 1024 / 1024:.0f} MB limit",
            )
        if size_bytes == 0:
            raise AttachmentError("size", f"{self.label} is empty")


DOCUMENT_POLICY = AttachmentPolicy(
    label="Document",
    allowed_mime_types=frozenset({PDF, DOC, DOCX}),
    extensions=(".pdf", ".doc", ".docx"),
)
PHOTO_POLICY = AttachmentPolicy(
    label="Photo",
    allowed_mime_types=frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"}),
    extensions=(".jpeg", ".jpg", ".png", ".webp"),
)

POLICIES: dict[str, AttachmentPolicy] = {
    "resume": DOCUMENT_POLICY,
    "cover_letter": DOCUMENT_POLICY,
    "photo": PHOTO_POLICY,
}


def policy_for(kind: str, max_bytes: int | None = None) -> AttachmentPolicy:
    try:
        policy = POLICIES[kind]
    except KeyError:
        raise AttachmentError("type", f"unsupported attachment kind '{kind}'") from None
    if max_bytes is not None and max_bytes != policy.max_bytes:
        policy = AttachmentPolicy(
            label=policy.label,
            allowed_mime_types=policy.allowed_mime_types,
            max_bytes=max_bytes,
            extensions=policy.extensions,
        )
    return policy


def guess_content_type(filename: str, declared: str | None = None) -> str:
    declared = (declared or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    suffix = PurePath(filename).suffix.lower()
    if suffix in EXTENSION_TYPES:
        return EXTENSION_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(filename)
    return (guessed or declared or "").lower()


def select_attachment(
    kind: AttachmentKind,
    filename: str,
    content: bytes,
    content_type: str | None = None,
    *,
    max_bytes: int | None = None,
) -> AttachmentHandle:
    """Validate a freshly selected file without any network round-trip."""
    policy = policy_for(kind, max_bytes)
    resolved_type = guess_content_type(filename, content_type)
    try:
        policy.check(filename=filename, content_type=resolved_type, size_bytes=len(content))
    except AttachmentError as exc:
        logger.warning("Rejected %s attachment %s: %s", kind, filename, exc.message)
        raise

    if kind == "photo":
        preview = f"data:{resolved_type};base64,{base64.b64encode(content).decode('ascii')}"
    else:
        preview = filename

    return AttachmentHandle(
        kind=kind,
        filename=filename,
        content_type=resolved_type,
        size_bytes=len(content),
        content=content,
        preview_ref=preview,
    )


CoverLetterMode = Literal["text", "file"]


@dataclass(slots=True)
class CoverLetterInput:
    """Cover letter held either as typed text or as an uploaded file, never both."""

    mode: CoverLetterMode = "text"
    text: str = ""
    file: AttachmentHandle | None = field(default=None, repr=False)

    def switch_mode(self, mode: CoverLetterMode) -> None:
        if mode == self.mode:
            return
        if mode == "text":
            self.file = None
        else:
            self.text = ""
        self.mode = mode

    def set_text(self, text: str) -> None:
        self.switch_mode("text")
        self.text = text

    def set_file(self, handle: AttachmentHandle) -> None:
        if handle.kind != "cover_letter":
            raise AttachmentError("type", f"expected a cover letter file, got {handle.kind}")
        self.switch_mode("file")
        self.file = handle

    def clear(self) -> None:
        self.text = ""
        self.file = None

    @property
    def value(self) -> str | AttachmentHandle:
        if self.mode == "file":
            return self.file if self.file is not None else ""
        return self.text
