import logging

from flask import current_app, request
from flask_socketio import SocketIO, emit, join_room, leave_room

from .auth import check_api_key
from .domain import AudioSample, GazeSample, utcnow
from .errors import ProctorError, ValidationError

logger = logging.getLogger(__name__)

socketio = SocketIO()


def room_for(session_id):
    return f"session-{session_id}"


def broadcast_event(event):
    """Fan a recorded event out to the session room. At most once, no backlog."""
    socketio.emit('monitoring-update', event.to_dict(), to=room_for(event.session_id))


def broadcast_session(event_name, session):
    socketio.emit('session-update', {'event': event_name, 'session': session.to_dict()},
                  to=room_for(session.id))


def broadcast_call_event(payload, event='external-call-webhook'):
    # every connected viewer, no room
    socketio.emit(event, payload)


def parse_samples(data):
    gaze = data.get('gazeData')
    audio = data.get('audioData')
    return (GazeSample.from_dict(gaze) if gaze is not None else None,
            AudioSample.from_dict(audio) if audio is not None else None)


@socketio.on('connect')
def on_connect(auth=None):
    token = (auth or {}).get('token') if isinstance(auth, dict) else None
    if not check_api_key(token, current_app.config['API_KEY']):
        logger.info(f"Rejected socket {request.sid}: bad or missing token")
        return False
    logger.info(f"Client connected: {request.sid}")


@socketio.on('disconnect')
def on_disconnect(*args):
    logger.info(f"Client disconnected: {request.sid}")


@socketio.on('join-session')
def on_join(data):
    session_id = data.get('sessionId') if isinstance(data, dict) else data
    if not session_id:
        return
    join_room(room_for(session_id))
    logger.info(f"Client {request.sid} joined session {session_id}")
    emit('joined', {'sessionId': session_id, 'timestamp': utcnow().isoformat()})


@socketio.on('leave-session')
def on_leave(data):
    session_id = data.get('sessionId') if isinstance(data, dict) else data
    if session_id:
        leave_room(room_for(session_id))


@socketio.on('monitoring-data')
def on_monitoring_data(data):
    """Record a client-pushed sample batch; errors go back to the sender only."""
    services = current_app.extensions['proctor']
    try:
        if not isinstance(data, dict) or not data.get('sessionId'):
            raise ValidationError("'sessionId' is required")
        gaze, audio = parse_samples(data)
        services.recorder.record(data['sessionId'], gaze, audio)
    except ProctorError as error:
        logger.warning(f"Error processing monitoring data: {error.message}")
        emit('monitoring-error', error.to_dict())


@socketio.on('external-call-event')
def on_external_call_event(data):
    logger.info(f"External call event received: {data}")
    broadcast_call_event(data, event='call-event')
