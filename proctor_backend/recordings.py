"""
Recording Store - keeps uploaded media blobs on disk.

Locators are plain file paths. Contents are not inspected or transcoded.
"""
import datetime
import logging
import os
import uuid

from .domain import RECORDING_KINDS
from .errors import RecordingError, RecordingNotFound, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = {'video': '.webm', 'screen': '.webm', 'audio': '.wav'}
CONTENT_TYPES = {'video': 'video/webm', 'screen': 'video/webm', 'audio': 'audio/wav'}


class RecordingStore:
    def __init__(self, folder):
        self.folder = folder
        os.makedirs(self.folder, exist_ok=True)

    def _extension(self, kind, original_name):
        if original_name:
            ext = os.path.splitext(original_name)[1]
            if ext:
                return ext
        return DEFAULT_EXTENSIONS.get(kind, '.bin')

    def save(self, session_id, data: bytes, kind, original_name=None) -> str:
        if kind not in RECORDING_KINDS:
            raise ValidationError(f"Invalid recording type '{kind}'")
        filename = f"{session_id}_{kind}_{uuid.uuid4().hex}{self._extension(kind, original_name)}"
        path = os.path.join(self.folder, filename)
        try:
            with open(path, 'wb') as f:
                f.write(data)
        except OSError as exc:
            logger.error(f"Error saving {kind} recording: {exc}")
            raise RecordingError(f"Failed to save {kind} recording") from exc
        logger.info(f"Saved {kind} recording: {filename}")
        return path

    def read(self, locator) -> bytes:
        if not os.path.isfile(locator):
            raise RecordingNotFound("Recording file not found")
        try:
            with open(locator, 'rb') as f:
                return f.read()
        except OSError as exc:
            raise RecordingError("Failed to read recording file") from exc

    def delete(self, locator):
        if not os.path.exists(locator):
            return
        try:
            os.remove(locator)
        except OSError as exc:
            raise RecordingError("Failed to delete recording") from exc
        logger.info(f"Deleted recording: {locator}")

    def info(self, locator):
        try:
            stat = os.stat(locator)
        except OSError as exc:
            raise RecordingNotFound("Could not read file info") from exc
        return {
            'path': locator,
            'size': stat.st_size,
            'modified': datetime.datetime.fromtimestamp(stat.st_mtime, datetime.timezone.utc).isoformat(),
        }
