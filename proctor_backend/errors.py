"""
Error kinds surfaced by the proctoring core and how they map onto HTTP
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

logger = logging.getLogger(__name__)


class ProctorError(Exception):
    status_code = 500
    kind = 'ProctorError'

    def __init__(self, message=None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self):
        return {'success': False, 'error': self.kind, 'message': self.message}


class ValidationError(ProctorError):
    """Missing or malformed required field; fixable by the client."""
    status_code = 400
    kind = 'ValidationError'


class Unauthorized(ProctorError):
    status_code = 401
    kind = 'Unauthorized'


class SessionNotFound(ProctorError):
    """The identifier does not name a session the operation can act on."""
    status_code = 404
    kind = 'SessionNotFound'

    def __init__(self, session_id):
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class RecordingNotFound(ProctorError):
    status_code = 404
    kind = 'RecordingNotFound'


class InvalidTransition(ProctorError):
    status_code = 409
    kind = 'InvalidTransition'


class StorageUnavailable(ProctorError):
    """A durable-storage call failed or timed out. Never retried here."""
    status_code = 503
    kind = 'StorageUnavailable'


class RecordingError(ProctorError):
    kind = 'RecordingError'


class TranscriptionError(ProctorError):
    kind = 'TranscriptionError'


def register_error_handlers(app):
    @app.errorhandler(ProctorError)
    def handle_proctor_error(error):
        if error.status_code >= 500:
            logger.error("%s: %s", error.kind, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(error):
        limit_mb = app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
        return jsonify({'success': False, 'error': 'FileTooLarge',
                        'message': f'File size exceeds the maximum limit of {limit_mb}MB'}), 413

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'success': False, 'error': error.name, 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.exception("Unhandled error")
        return jsonify({'success': False, 'error': 'InternalError',
                        'message': 'An unexpected error occurred'}), 500
