"""Saved message attachments on local disk."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List

from my_assistant.constants import file_extension

logger = logging.getLogger(__name__)


def attachment_filename(timestamp: datetime, user_name: str, message_id: str, file_type: str) -> str:
    """``{YYYYMMDD}_{username}_{messageId}.{ext}`` using the UTC date of *timestamp*."""
    date_str = timestamp.astimezone(timezone.utc).strftime("%Y%m%d")
    safe_name = "".join(c for c in user_name if c.isalnum() or c in ("_", "-", " ")).strip() or "user"
    return f"{date_str}_{safe_name}_{message_id}.{file_extension(file_type)}"


class AttachmentStore:
    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def initialize(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def save(self, filename: str, content: bytes) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / filename
        path.write_bytes(content)
        logger.info("Attachment saved: %s", filename)
        return path

    def list_files(self) -> List[Path]:
        if not self.directory.exists():
            return []
        return sorted(p for p in self.directory.iterdir() if p.is_file())
