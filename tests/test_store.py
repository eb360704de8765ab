"""
Tests for the SQLAlchemy-backed session store
"""
import datetime

import pytest

from proctor_backend.domain import AudioSample, Finding, GazeSample, MonitoringEvent, ProctorSession
from proctor_backend.errors import StorageUnavailable
from proctor_backend.models import Base
from proctor_backend.store import SessionStore, _engine_options


def make_session(session_id='s1', user_id='u1', minute=0):
    return ProctorSession(
        id=session_id,
        user_id=user_id,
        external_call_id='call-1',
        call_platform='teams',
        start_time=datetime.datetime(2024, 5, 1, 9, minute),
        metadata={'userAgent': 'Firefox', 'platform': 'Linux', 'resolution': '1920x1080'},
    )


def test_session_round_trip(store):
    store.add_session(make_session())

    loaded = store.get_session('s1')

    assert loaded.user_id == 'u1'
    assert loaded.status == 'active'
    assert loaded.metadata['resolution'] == '1920x1080'
    assert loaded.recording_paths == {}


def test_missing_session(store):
    assert store.get_session('nope') is None
    assert store.mark_ended('nope', datetime.datetime(2024, 1, 1)) is False
    assert store.set_recording_path('nope', 'video', '/x') is False


def test_duplicate_identifier_is_rejected(store):
    store.add_session(make_session())
    with pytest.raises(StorageUnavailable):
        store.add_session(make_session())


def test_mark_ended(store):
    store.add_session(make_session())
    end = datetime.datetime(2024, 5, 1, 10, 0)

    assert store.mark_ended('s1', end) is True

    loaded = store.get_session('s1')
    assert loaded.status == 'ended'
    assert loaded.end_time == end


def test_sessions_for_user_ordering(store):
    store.add_session(make_session('a', minute=1))
    store.add_session(make_session('b', minute=30))
    store.add_session(make_session('c', minute=15))
    store.add_session(make_session('x', user_id='other'))

    assert [s.id for s in store.sessions_for_user('u1')] == ['b', 'c', 'a']


def test_event_round_trip(store):
    when = datetime.datetime(2024, 5, 1, 9, 5)
    event = MonitoringEvent(
        session_id='s1',
        timestamp=when,
        gaze=GazeSample(x=1.5, y=2.5, confidence=0.75, looking_away=True, duration=8000),
        audio=AudioSample(volume=0.2, frequency=[float(i) for i in range(10)],
                          multiple_voices=True, background_noise=0.0),
        findings=[Finding('gaze_away', 'medium', when, 'User looked away for 8000ms', 0.75)],
    )

    store.add_event(event)
    loaded = store.events_for_session('s1')

    assert event.id is not None
    assert len(loaded) == 1
    assert loaded[0].gaze == event.gaze
    assert loaded[0].audio == event.audio
    assert loaded[0].findings == event.findings


def test_events_in_time_order(store):
    for minute in (9, 3, 6):
        store.add_event(MonitoringEvent(session_id='s1', timestamp=datetime.datetime(2024, 5, 1, 9, minute)))

    assert [e.timestamp.minute for e in store.events_for_session('s1')] == [3, 6, 9]


def test_driver_errors_become_storage_unavailable(store):
    Base.metadata.drop_all(store.engine)

    with pytest.raises(StorageUnavailable):
        store.add_session(make_session())
    with pytest.raises(StorageUnavailable):
        store.sessions_for_user('u1')


def test_in_memory_database_is_shared_across_calls():
    store = SessionStore('sqlite://')
    store.add_session(make_session())
    assert store.get_session('s1') is not None


def test_sqlite_waits_for_locks_up_to_the_timeout():
    options = _engine_options('sqlite:///proctoring.db', 2.5)
    assert options['connect_args']['timeout'] == 2.5
    assert 'poolclass' not in options


@pytest.mark.parametrize('url', ['postgresql://db/proctor', 'postgresql+psycopg2://db/proctor'])
def test_postgres_bounds_connect_and_statements(url):
    options = _engine_options(url, 2.5)

    assert options['connect_args'] == {'connect_timeout': 3, 'options': '-c statement_timeout=2500'}
    assert options['pool_timeout'] == 2.5


def test_mysql_bounds_connect_and_io():
    options = _engine_options('mysql+pymysql://db/proctor', 0.2)

    assert options['connect_args'] == {'connect_timeout': 1, 'read_timeout': 1, 'write_timeout': 1}
    assert options['pool_timeout'] == 0.2
