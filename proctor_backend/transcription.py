"""
Transcription service with a load-once model.

State moves unloaded -> loading -> ready, or -> failed when the loader
raises; a failed service tries loading again on the next call.
"""
import logging
import os
import threading
import time

from .errors import TranscriptionError

logger = logging.getLogger(__name__)

UNLOADED = 'unloaded'
LOADING = 'loading'
READY = 'ready'
FAILED = 'failed'

NO_SPEECH = 'No speech detected in the audio file.'


def placeholder_loader():
    """Stand-in model: always reports no speech."""
    def transcriber(path):
        return {'text': '', 'confidence': 0.0}
    return transcriber


class TranscriptionService:
    def __init__(self, loader=placeholder_loader):
        self._loader = loader
        self._transcriber = None
        self._state = UNLOADED
        self._error = None
        self._lock = threading.Lock()

    @property
    def state(self):
        return self._state

    def load(self):
        with self._lock:
            if self._state == READY:
                return self._transcriber
            self._state = LOADING
            logger.info("Loading transcription model...")
            try:
                self._transcriber = self._loader()
            except Exception as exc:
                self._state = FAILED
                self._error = str(exc)
                logger.error(f"Failed to load transcription model: {exc}")
                raise TranscriptionError("Failed to initialize transcription model") from exc
            self._state = READY
            self._error = None
            logger.info("Transcription model loaded successfully")
            return self._transcriber

    def transcribe(self, path):
        started = time.monotonic()
        if not os.path.isfile(path):
            raise TranscriptionError("Audio file not found or not accessible")
        transcriber = self.load()
        try:
            result = transcriber(path)
        except Exception as exc:
            logger.error(f"Transcription error: {exc}")
            raise TranscriptionError(f"Transcription failed: {exc}") from exc
        return {
            'transcript': result.get('text') or NO_SPEECH,
            'confidence': result.get('confidence', 0.0),
            'processingTime': f"{time.monotonic() - started:.1f}s",
        }

    def status(self):
        return {
            'state': self._state,
            'ready': self._state == READY,
            'loading': self._state == LOADING,
            'error': self._error,
        }
