"""
Publish/subscribe channel tests using the Flask-SocketIO test client
"""
from proctor_backend.sockets import socketio


def events_named(received, name):
    return [packet['args'][0] for packet in received if packet['name'] == name]


def start_session(client, headers):
    response = client.post('/api/sessions/start', headers=headers, json={
        'userId': 'u1', 'externalCallId': 'call-42', 'callPlatform': 'meet'})
    return response.get_json()['session']['id']


def test_connect_requires_token(app, client):
    anonymous = socketio.test_client(app, flask_test_client=client)
    wrong = socketio.test_client(app, flask_test_client=client, auth={'token': 'nope'})

    assert not anonymous.is_connected()
    assert not wrong.is_connected()


def test_subscriber_receives_recorded_events(client, auth_headers, socket_client, gaze_away):
    sid = start_session(client, auth_headers)
    socket_client.emit('join-session', {'sessionId': sid})
    socket_client.get_received()

    client.post('/api/monitoring', json={'sessionId': sid, 'gazeData': gaze_away}, headers=auth_headers)

    updates = events_named(socket_client.get_received(), 'monitoring-update')
    assert len(updates) == 1
    assert updates[0]['sessionId'] == sid
    assert updates[0]['suspiciousActivity'][0]['type'] == 'gaze_away'


def test_other_sessions_are_not_delivered(client, auth_headers, socket_client, voices):
    watched = start_session(client, auth_headers)
    other = start_session(client, auth_headers)
    socket_client.emit('join-session', watched)
    socket_client.get_received()

    client.post('/api/monitoring', json={'sessionId': other, 'audioData': voices}, headers=auth_headers)

    assert events_named(socket_client.get_received(), 'monitoring-update') == []


def test_left_subscriber_misses_events(client, auth_headers, socket_client, voices):
    sid = start_session(client, auth_headers)
    socket_client.emit('join-session', {'sessionId': sid})
    socket_client.emit('leave-session', {'sessionId': sid})
    socket_client.get_received()

    client.post('/api/monitoring', json={'sessionId': sid, 'audioData': voices}, headers=auth_headers)

    assert events_named(socket_client.get_received(), 'monitoring-update') == []


def test_monitoring_data_over_socket(app, client, auth_headers, socket_client, voices):
    sid = start_session(client, auth_headers)
    socket_client.emit('join-session', {'sessionId': sid})
    socket_client.get_received()

    socket_client.emit('monitoring-data', {'sessionId': sid, 'audioData': voices})

    updates = events_named(socket_client.get_received(), 'monitoring-update')
    assert updates[0]['suspiciousActivity'][0]['type'] == 'multiple_voices'
    assert len(app.extensions['proctor'].recorder.events(sid)) == 1


def test_monitoring_data_for_unknown_session(socket_client, voices):
    socket_client.emit('monitoring-data', {'sessionId': 'missing', 'audioData': voices})

    errors = events_named(socket_client.get_received(), 'monitoring-error')
    assert errors[0]['error'] == 'SessionNotFound'


def test_session_end_is_published(client, auth_headers, socket_client):
    sid = start_session(client, auth_headers)
    socket_client.emit('join-session', {'sessionId': sid})
    socket_client.get_received()

    client.post(f'/api/sessions/{sid}/end', headers=auth_headers)

    updates = events_named(socket_client.get_received(), 'session-update')
    assert updates[0]['event'] == 'ended'
    assert updates[0]['session']['status'] == 'ended'


def test_webhook_is_broadcast_to_everyone(client, socket_client):
    socket_client.get_received()

    client.post('/webhook/external-call', json={
        'platform': 'teams', 'callId': 'c-9', 'eventType': 'call_started', 'participants': []})

    payloads = events_named(socket_client.get_received(), 'external-call-webhook')
    assert payloads[0]['callId'] == 'c-9'
    assert payloads[0]['eventType'] == 'call_started'


def test_external_call_event_rebroadcast(socket_client):
    socket_client.get_received()

    socket_client.emit('external-call-event', {'callId': 'c-1', 'eventType': 'participant_left'})

    assert events_named(socket_client.get_received(), 'call-event') == [
        {'callId': 'c-1', 'eventType': 'participant_left'}]


def test_unrecognised_webhook_event_is_broadcast(client, socket_client):
    socket_client.get_received()

    client.post('/webhook/external-call', json={
        'platform': 'zoom', 'callId': 'c-3', 'eventType': 'recording_started'})

    payloads = events_named(socket_client.get_received(), 'external-call-webhook')
    assert payloads[0]['eventType'] == 'recording_started'
    assert payloads[0]['callId'] == 'c-3'
    assert payloads[0]['participants'] is None
    assert payloads[0]['timestamp']
