"""
Session Lifecycle Manager - the single authority on which sessions are active
"""
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, List, Optional

from .domain import CALL_PLATFORMS, RECORDING_KINDS, SESSION_STATUSES, ProctorSession, utcnow
from .errors import InvalidTransition, SessionNotFound, ValidationError
from .logging_config import log_proctor_event

logger = logging.getLogger(__name__)

# forward-only edges; reaching 'ended' always goes through end()
FORWARD_TRANSITIONS = {
    'active': ('paused', 'recording', 'ended'),
    'paused': ('ended',),
    'recording': ('ended',),
    'ended': (),
}


def _require_text(value, name):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{name}' is required")
    return value


class SessionManager:
    """
    Creates, ends and looks up proctoring sessions.

    The active index is a write-through cache in front of the store: it is
    only changed after the durable write for the same change succeeded.
    One lock guards it. end() and hold_active() keep the lock across their
    storage call, so an event can never be recorded against a session whose
    end() has already returned.
    """

    def __init__(self, store, clock=utcnow, id_factory=None):
        self.store = store
        self._clock = clock
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._active: Dict[str, ProctorSession] = {}
        self._lock = threading.Lock()
        self._listeners = []

    def add_listener(self, callback):
        """callback(event_name, session) after 'started' / 'ended' / 'status'."""
        self._listeners.append(callback)

    def _notify(self, event_name, session):
        for callback in self._listeners:
            try:
                callback(event_name, session.copy())
            except Exception:
                logger.exception(f"Session listener failed for {event_name} on {session.id}")

    def start(self, user_id, external_call_id, platform, metadata=None) -> ProctorSession:
        _require_text(user_id, 'userId')
        _require_text(external_call_id, 'externalCallId')
        if platform not in CALL_PLATFORMS:
            raise ValidationError(f"'callPlatform' must be one of {', '.join(CALL_PLATFORMS)}")
        if metadata is not None and not isinstance(metadata, dict):
            raise ValidationError("'metadata' must be an object")

        session = ProctorSession(
            id=self._new_id(),
            user_id=user_id,
            external_call_id=external_call_id,
            call_platform=platform,
            status='active',
            start_time=self._clock(),
            metadata=dict(metadata or {}),
        )
        self.store.add_session(session)
        with self._lock:
            self._active[session.id] = session

        log_proctor_event(logger, session.id, 'session_start', user=user_id, platform=platform)
        self._notify('started', session)
        return session.copy()

    def end(self, session_id) -> ProctorSession:
        """Second end() on the same id raises SessionNotFound."""
        with self._lock:
            session = self._active.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            ended = replace(session.copy(), status='ended', end_time=self._clock())
            self.store.mark_ended(session_id, ended.end_time)
            del self._active[session_id]

        log_proctor_event(logger, session_id, 'session_end', status='ended')
        self._notify('ended', ended)
        return ended.copy()

    def transition(self, session_id, status) -> ProctorSession:
        if status not in SESSION_STATUSES:
            raise ValidationError(f"Unknown session status {status!r}")
        if status == 'ended':
            return self.end(session_id)
        with self._lock:
            session = self._active.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            if status not in FORWARD_TRANSITIONS[session.status]:
                raise InvalidTransition(f"Cannot move session from '{session.status}' to '{status}'")
            self.store.update_status(session_id, status)
            session.status = status
            updated = session.copy()

        log_proctor_event(logger, session_id, 'status_change', status=status)
        self._notify('status', updated)
        return updated

    def status(self, session_id) -> ProctorSession:
        with self._lock:
            session = self._active.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            return session.copy()

    def is_active(self, session_id) -> bool:
        with self._lock:
            return session_id in self._active

    def list_active(self) -> List[ProctorSession]:
        with self._lock:
            return [s.copy() for s in self._active.values()]

    def history(self, user_id) -> List[ProctorSession]:
        _require_text(user_id, 'userId')
        return self.store.sessions_for_user(user_id)

    def find(self, session_id) -> Optional[ProctorSession]:
        """Active copy if live, otherwise whatever the store has."""
        with self._lock:
            session = self._active.get(session_id)
            if session is not None:
                return session.copy()
        return self.store.get_session(session_id)

    def attach_recording(self, session_id, kind, locator):
        """Set (or with locator=None clear) a recording path. Ended sessions are allowed."""
        if kind not in RECORDING_KINDS:
            raise ValidationError(f"Invalid recording type '{kind}'")
        with self._lock:
            if not self.store.set_recording_path(session_id, kind, locator):
                raise SessionNotFound(session_id)
            session = self._active.get(session_id)
            if session is not None:
                if locator is None:
                    session.recording_paths.pop(kind, None)
                else:
                    session.recording_paths[kind] = locator

    @contextmanager
    def hold_active(self, session_id):
        """Run a block against a live session with the index locked."""
        with self._lock:
            session = self._active.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            yield session.copy()
