from __future__ import annotations

import logging
import uuid
from pathlib import Path, PurePath

from hireform.config import get_settings
from hireform.core.attachments import EXTENSION_TYPES, guess_content_type, policy_for
from hireform.types import AttachmentKind

logger = logging.getLogger(__name__)

_SUFFIX_BY_TYPE = {content_type: suffix for suffix, content_type in reversed(list(EXTENSION_TYPES.items()))}


class LocalAttachmentStore:
    """Files served back under ``/uploads``; one directory per attachment kind."""

    def __init__(self, root: Path | None = None, base_url: str | None = None, max_bytes: int | None = None):
        settings = get_settings()
        self.root = Path(root or settings.upload_dir)
        self.base_url = (base_url or settings.upload_base_url).rstrip("/")
        self.max_bytes = max_bytes or settings.max_attachment_bytes

    def save(
        self,
        kind: AttachmentKind,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> str:
        policy = policy_for(kind, self.max_bytes)
        resolved_type = guess_content_type(filename, content_type)
        policy.check(filename=filename, content_type=resolved_type, size_bytes=len(content))

        suffix = PurePath(filename).suffix.lower()
        if suffix not in policy.extensions:
            suffix = _SUFFIX_BY_TYPE.get(resolved_type, "")
        name = f"{uuid.uuid4().hex}{suffix}"

        target_dir = self.root / kind
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / name).write_bytes(content)

        url = f"{self.base_url}/{kind}/{name}"
        logger.info("Stored %s attachment %s (%d bytes) as %s", kind, filename, len(content), url)
        return url
