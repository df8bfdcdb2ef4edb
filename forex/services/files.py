"""
File Attachment Store
Sanitizes uploaded filenames and writes attachments under the upload directory
"""
import logging
import os
import re
import uuid
from dataclasses import dataclass

from forex.config import Settings
from forex.exceptions import ValidationError
from forex.models.file import File
from forex.repositories.file import FileRepository

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_UNDERSCORES = re.compile(r"_+")
_DASHES = re.compile(r"-+")
_RESERVED_NAMES = {"con", "prn", "aux", "nul", "com1", "lpt1"}
MAX_FILENAME_LENGTH = 240


@dataclass
class Upload:
    """An uploaded file already read into memory"""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


def sanitize_filename(name: str) -> str:
    """
    Reduce an uploaded filename to a safe base name.

    Path components are dropped, anything outside [a-zA-Z0-9._-] becomes
    an underscore, runs of underscores collapse, dashes become single
    underscores, leading dots/dashes/underscores go, the result is capped
    at 240 characters and Windows device names get a leading underscore.
    """
    base = os.path.basename(name.replace("\\", "/").rstrip("/"))

    cleaned = _UNSAFE_CHARS.sub("_", base)
    cleaned = _UNDERSCORES.sub("_", cleaned.strip("_"))
    cleaned = _DASHES.sub("_", cleaned.strip("-"))
    cleaned = cleaned.lstrip("._-")
    cleaned = cleaned[:MAX_FILENAME_LENGTH]

    stem, _ = os.path.splitext(cleaned)
    if stem.lower() in _RESERVED_NAMES:
        cleaned = "_" + cleaned

    return cleaned


class FileService:
    """Writes attachments to disk and records their metadata"""

    def __init__(self, settings: Settings, files: FileRepository):
        self.upload_dir = settings.UPLOAD_DIR
        self.max_upload_size = settings.MAX_UPLOAD_SIZE
        self.files = files

    def check(self, upload: Upload, field: str):
        """Reject an upload before anything is written"""
        if not upload.content:
            raise ValidationError(f"{field} is empty")
        if len(upload.content) > self.max_upload_size:
            raise ValidationError(f"{field} exceeds the maximum upload size of {self.max_upload_size} bytes")

    async def store(self, upload: Upload, prefix: str) -> File:
        name = sanitize_filename(upload.filename) or "file"
        stem, ext = os.path.splitext(name)
        fid = uuid.uuid4().hex
        stored_name = f"{prefix}_{stem}_{fid}{ext}"

        os.makedirs(self.upload_dir, exist_ok=True)
        with open(os.path.join(self.upload_dir, stored_name), "wb") as buffer:
            buffer.write(upload.content)

        record = File(
            url=f"/uploads/{stored_name}",
            name=name,
            fid=fid,
            size=len(upload.content),
            mime_type=upload.content_type or "application/octet-stream",
        )
        await self.files.create(record)
        logger.info("Stored %s attachment as %s", prefix, stored_name)
        return record
