"""
Pytest configuration for the proctoring backend tests
"""

import pytest

from proctor_backend.app import create_app
from proctor_backend.lifecycle import SessionManager
from proctor_backend.recorder import EventRecorder
from proctor_backend.sockets import socketio
from proctor_backend.store import SessionStore

API_KEY = 'test-api-key'


@pytest.fixture
def store(tmp_path):
    return SessionStore(f"sqlite:///{tmp_path / 'proctor.db'}", timeout=1.0)


@pytest.fixture
def manager(store):
    return SessionManager(store)


@pytest.fixture
def recorder(manager, store):
    return EventRecorder(manager, store)


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'API_KEY': API_KEY,
        'DATABASE_URL': f"sqlite:///{tmp_path / 'app.db'}",
        'UPLOAD_FOLDER': str(tmp_path / 'recordings'),
        'TRANSCRIBE_FOLDER': str(tmp_path / 'uploads'),
        'SOCKETIO_ASYNC_MODE': 'threading',
        'SIGNAL_SIMULATION': False,
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {'Authorization': f'Bearer {API_KEY}'}


@pytest.fixture
def socket_client(app, client):
    sc = socketio.test_client(app, flask_test_client=client, auth={'token': API_KEY})
    yield sc
    if sc.is_connected():
        sc.disconnect()


@pytest.fixture
def gaze_away():
    return {'x': 0, 'y': 0, 'confidence': 0.9, 'lookingAway': True, 'duration': 7000}


@pytest.fixture
def voices():
    return {'volume': 0.4, 'frequency': [10.0] * 10, 'multipleVoices': True, 'backgroundNoise': 0.05}
