import io
import logging
import os
import time
import uuid

from flask import Blueprint, current_app, jsonify, request, send_file
from werkzeug.utils import secure_filename

from .auth import require_api_key
from .domain import RECORDING_KINDS, utcnow
from .errors import RecordingNotFound, SessionNotFound, StorageUnavailable, ValidationError
from .recordings import CONTENT_TYPES
from .report import generate_csv, generate_pdf
from .sockets import broadcast_call_event, parse_samples

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')
webhook_bp = Blueprint('webhook', __name__, url_prefix='/webhook')

KNOWN_CALL_EVENTS = ('call_started', 'call_ended', 'participant_joined', 'participant_left')


def services():
    return current_app.extensions['proctor']


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _recording_kind(kind):
    if kind not in RECORDING_KINDS:
        raise ValidationError(f"Invalid recording type '{kind}'")
    return kind


def _known_session(session_id):
    session = services().manager.find(session_id)
    if session is None:
        raise SessionNotFound(session_id)
    return session


@api_bp.route('/health', methods=['GET'])
def health():
    return jsonify({
        'success': True,
        'message': 'Server is running',
        'timestamp': utcnow().isoformat(),
        'uptime': round(time.monotonic() - services().started_at, 3),
    })


# ---------- Sessions ----------

@api_bp.route('/sessions/start', methods=['POST'])
@require_api_key
def start_session():
    data = _json_body()
    session = services().manager.start(
        data.get('userId'),
        data.get('externalCallId'),
        data.get('callPlatform'),
        data.get('metadata') or {},
    )
    return jsonify({'success': True, 'session': session.summary()})


@api_bp.route('/sessions/<session_id>/end', methods=['POST'])
@require_api_key
def end_session(session_id):
    session = services().manager.end(session_id)
    return jsonify({'success': True, 'message': 'Proctoring session ended', 'session': session.to_dict()})


@api_bp.route('/sessions/<session_id>/status', methods=['GET'])
@require_api_key
def session_status(session_id):
    session = services().manager.status(session_id)
    return jsonify({'success': True, 'session': session.to_dict()})


@api_bp.route('/sessions/<session_id>/status', methods=['POST'])
@require_api_key
def change_status(session_id):
    status = _json_body().get('status')
    if status not in ('paused', 'recording', 'ended'):
        raise ValidationError("'status' must be one of paused, recording, ended")
    session = services().manager.transition(session_id, status)
    return jsonify({'success': True, 'session': session.to_dict()})


@api_bp.route('/sessions/active', methods=['GET'])
@require_api_key
def active_sessions():
    sessions = services().manager.list_active()
    return jsonify({'success': True, 'sessions': [s.to_dict() for s in sessions], 'count': len(sessions)})


@api_bp.route('/sessions/history/<user_id>', methods=['GET'])
@require_api_key
def session_history(user_id):
    sessions = services().manager.history(user_id)
    return jsonify({'success': True, 'sessions': [s.to_dict() for s in sessions], 'count': len(sessions)})


@api_bp.route('/sessions/<session_id>/events', methods=['GET'])
@require_api_key
def session_events(session_id):
    events = services().recorder.events(session_id)
    return jsonify({'success': True, 'events': [e.to_dict() for e in events], 'count': len(events)})


@api_bp.route('/sessions/<session_id>/report', methods=['GET'])
@require_api_key
def session_report(session_id):
    session = _known_session(session_id)
    events = services().recorder.events(session_id)
    if request.args.get('format') == 'csv':
        return send_file(io.BytesIO(generate_csv(events)), mimetype='text/csv',
                         download_name=f'{session_id}_report.csv', as_attachment=True)
    pdf_bytes = generate_pdf(events, session)
    return send_file(io.BytesIO(pdf_bytes), mimetype='application/pdf',
                     download_name=f'{session_id}_report.pdf', as_attachment=True)


# ---------- Monitoring ----------

@api_bp.route('/monitoring', methods=['POST'])
@require_api_key
def record_monitoring():
    data = _json_body()
    session_id = data.get('sessionId')
    if not session_id:
        raise ValidationError("'sessionId' is required")
    gaze, audio = parse_samples(data)
    event = services().recorder.record(session_id, gaze, audio)
    return jsonify({'success': True, 'event': event.to_dict()})


# ---------- Recordings ----------

@api_bp.route('/recordings/upload', methods=['POST'])
@require_api_key
def upload_recording():
    session_id = request.form.get('sessionId')
    kind = request.form.get('recordingType')
    file = request.files.get('recording')
    if not session_id or not kind or not file:
        raise ValidationError("Missing required fields")
    _recording_kind(kind)
    if not (file.mimetype or '').startswith(('video/', 'audio/')):
        raise ValidationError("Only video and audio recordings are accepted")

    manager = services().manager
    if not manager.is_active(session_id):
        raise SessionNotFound(session_id)

    store = services().recordings
    path = store.save(session_id, file.read(), kind, file.filename)
    try:
        manager.attach_recording(session_id, kind, path)
    except (SessionNotFound, StorageUnavailable):
        store.delete(path)
        raise
    return jsonify({'success': True, 'message': 'Recording uploaded successfully', 'file': path})


@api_bp.route('/recordings/<session_id>/info', methods=['GET'])
@require_api_key
def recording_info(session_id):
    session = _known_session(session_id)
    recordings = {}
    for kind, path in session.recording_paths.items():
        try:
            recordings[kind] = services().recordings.info(path)
        except RecordingNotFound:
            recordings[kind] = {'path': path, 'error': 'Could not read file info'}
    return jsonify({'success': True, 'sessionId': session_id, 'recordings': recordings})


@api_bp.route('/recordings/<session_id>/<kind>', methods=['GET'])
@require_api_key
def get_recording(session_id, kind):
    _recording_kind(kind)
    session = _known_session(session_id)
    path = session.recording_paths.get(kind)
    if not path:
        raise RecordingNotFound("Recording not found")
    data = services().recordings.read(path)
    return send_file(io.BytesIO(data), mimetype=CONTENT_TYPES[kind],
                     download_name=f"{session_id}_{kind}{os.path.splitext(path)[1]}")


@api_bp.route('/recordings/<session_id>/<kind>', methods=['DELETE'])
@require_api_key
def delete_recording(session_id, kind):
    _recording_kind(kind)
    session = _known_session(session_id)
    path = session.recording_paths.get(kind)
    if not path:
        raise RecordingNotFound("Recording not found")
    services().recordings.delete(path)
    services().manager.attach_recording(session_id, kind, None)
    return jsonify({'success': True, 'message': 'Recording deleted successfully'})


# ---------- Transcription ----------

@api_bp.route('/transcription-status', methods=['GET'])
@require_api_key
def transcription_status():
    status = services().transcription.status()
    return jsonify({
        'success': True,
        'message': 'Transcription service status',
        'modelReady': status['ready'],
        'modelLoading': status['loading'],
        'state': status['state'],
        'timestamp': utcnow().isoformat(),
    })


@api_bp.route('/transcribe', methods=['POST'])
@require_api_key
def transcribe_upload():
    file = request.files.get('videoBlob')
    if not file:
        raise ValidationError('Request must include a file with field name "videoBlob"')
    if not (file.mimetype or '').startswith(('video/', 'audio/')):
        raise ValidationError("Only video and audio files can be transcribed")

    base, ext = os.path.splitext(secure_filename(file.filename or 'upload'))
    folder = current_app.config['TRANSCRIBE_FOLDER']
    os.makedirs(folder, exist_ok=True)
    path = os.path.join(folder, f"{base or 'upload'}_{uuid.uuid4().hex}{ext}")
    file.save(path)
    try:
        size = os.path.getsize(path)
        result = services().transcription.transcribe(path)
    finally:
        try:
            os.remove(path)
        except OSError as exc:
            logger.error(f"Error cleaning up temporary file {path}: {exc}")

    return jsonify({
        'success': True,
        'message': 'File uploaded and transcribed successfully',
        'file': {'originalname': file.filename, 'size': size, 'mimetype': file.mimetype},
        'transcription': result,
    })


# ---------- Webhook ----------

@webhook_bp.route('/external-call', methods=['POST'])
def external_call_webhook():
    """Rebroadcast a call-platform event to every viewer. Sessions are not touched."""
    data = _json_body()
    platform, call_id, event_type = data.get('platform'), data.get('callId'), data.get('eventType')

    if event_type in KNOWN_CALL_EVENTS:
        logger.info(f"External call webhook: {event_type} on {platform} call {call_id}")
    else:
        logger.warning(f"External call webhook with unrecognised event type {event_type!r} "
                       f"on {platform} call {call_id}")
    broadcast_call_event({
        'platform': platform,
        'callId': call_id,
        'eventType': event_type,
        'participants': data.get('participants'),
        'timestamp': utcnow().isoformat(),
    })
    return jsonify({'success': True, 'message': 'Webhook processed'})
