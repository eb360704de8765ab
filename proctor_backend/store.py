"""
Durable session/event storage on SQLAlchemy.

Each call is one short transaction. Driver and ORM failures come back as
StorageUnavailable; nothing here retries.
"""
import logging
import math
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .domain import AudioSample, Finding, GazeSample, MonitoringEvent, ProctorSession
from .errors import StorageUnavailable
from .models import Base, EventRecord, SessionRecord

logger = logging.getLogger(__name__)

_PATH_COLUMNS = {'video': 'video_path', 'audio': 'audio_path', 'screen': 'screen_path'}


def _engine_options(url, timeout):
    """create_engine() keyword arguments that bound every wait by ``timeout`` seconds."""
    backend = make_url(url).get_backend_name()
    if backend == 'sqlite':
        options = {'connect_args': {'check_same_thread': False, 'timeout': timeout}}
        if url in ('sqlite://', 'sqlite:///:memory:'):
            options['poolclass'] = StaticPool
        return options

    seconds = max(1, math.ceil(timeout))
    if backend == 'postgresql':
        connect_args = {'connect_timeout': seconds,
                        'options': f'-c statement_timeout={int(timeout * 1000)}'}
    elif backend in ('mysql', 'mariadb'):
        connect_args = {'connect_timeout': seconds, 'read_timeout': seconds, 'write_timeout': seconds}
    else:
        connect_args = {}
    return {'connect_args': connect_args, 'pool_pre_ping': True, 'pool_recycle': 300, 'pool_timeout': timeout}


def _engine_for(url, timeout):
    return create_engine(url, echo=False, **_engine_options(url, timeout))


def _to_session(row):
    paths = {kind: getattr(row, column) for kind, column in _PATH_COLUMNS.items() if getattr(row, column)}
    return ProctorSession(
        id=row.session_id,
        user_id=row.user_id,
        external_call_id=row.external_call_id,
        call_platform=row.call_platform,
        status=row.status,
        start_time=row.start_time,
        end_time=row.end_time,
        recording_paths=paths,
        metadata=dict(row.client_metadata or {}),
    )


def _to_event(row):
    gaze = row.gaze_data
    audio = row.audio_data
    return MonitoringEvent(
        id=row.id,
        session_id=row.session_id,
        timestamp=row.timestamp,
        gaze=GazeSample.from_dict(gaze) if gaze else None,
        audio=AudioSample.from_dict(audio) if audio else None,
        findings=[Finding.from_dict(f) for f in (row.suspicious_activity or [])],
    )


class SessionStore:
    def __init__(self, database_url='sqlite:///proctoring.db', timeout=5.0):
        self.engine = _engine_for(database_url, timeout)
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Cannot initialise storage: {exc.__class__.__name__}") from exc
        self._DBSession = sessionmaker(bind=self.engine, expire_on_commit=False)

    @contextmanager
    def _transaction(self, action):
        db = self._DBSession()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Storage failure during {action}: {exc}")
            raise StorageUnavailable(f"Storage unavailable during {action}") from exc
        finally:
            db.close()

    def add_session(self, session):
        with self._transaction('add_session') as db:
            db.add(SessionRecord(
                session_id=session.id,
                user_id=session.user_id,
                external_call_id=session.external_call_id,
                call_platform=session.call_platform,
                status=session.status,
                start_time=session.start_time,
                end_time=session.end_time,
                client_metadata=dict(session.metadata),
                **{_PATH_COLUMNS[k]: v for k, v in session.recording_paths.items()}
            ))

    def mark_ended(self, session_id, end_time):
        """Returns False when no such session row exists."""
        with self._transaction('mark_ended') as db:
            row = db.query(SessionRecord).filter_by(session_id=session_id).first()
            if row is None:
                return False
            row.status = 'ended'
            row.end_time = end_time
            return True

    def update_status(self, session_id, status):
        with self._transaction('update_status') as db:
            row = db.query(SessionRecord).filter_by(session_id=session_id).first()
            if row is None:
                return False
            row.status = status
            return True

    def set_recording_path(self, session_id, kind, locator):
        with self._transaction('set_recording_path') as db:
            row = db.query(SessionRecord).filter_by(session_id=session_id).first()
            if row is None:
                return False
            setattr(row, _PATH_COLUMNS[kind], locator)
            return True

    def get_session(self, session_id):
        with self._transaction('get_session') as db:
            row = db.query(SessionRecord).filter_by(session_id=session_id).first()
            return _to_session(row) if row else None

    def sessions_for_user(self, user_id):
        with self._transaction('sessions_for_user') as db:
            rows = (db.query(SessionRecord)
                    .filter_by(user_id=user_id)
                    .order_by(SessionRecord.start_time.desc(), SessionRecord.id.desc())
                    .all())
            return [_to_session(r) for r in rows]

    def add_event(self, event):
        with self._transaction('add_event') as db:
            row = EventRecord(
                session_id=event.session_id,
                timestamp=event.timestamp,
                gaze_data=event.gaze.to_dict() if event.gaze else None,
                audio_data=event.audio.to_dict() if event.audio else None,
                suspicious_activity=[f.to_dict() for f in event.findings],
            )
            db.add(row)
            db.flush()
            event.id = row.id
        return event

    def events_for_session(self, session_id):
        with self._transaction('events_for_session') as db:
            rows = (db.query(EventRecord)
                    .filter_by(session_id=session_id)
                    .order_by(EventRecord.timestamp.asc(), EventRecord.id.asc())
                    .all())
            return [_to_event(r) for r in rows]
