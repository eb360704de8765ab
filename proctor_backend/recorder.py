"""
Monitoring Event Recorder - classifies samples and appends them to a live
session's event log
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from .domain import AudioSample, Finding, GazeSample, MonitoringEvent, utcnow
from .errors import SessionNotFound
from .logging_config import log_proctor_event

logger = logging.getLogger(__name__)


@dataclass
class ClassificationRules:
    gaze_away_threshold_ms: float = 5000
    gaze_away_severity: str = 'medium'
    multiple_voices_severity: str = 'high'
    multiple_voices_confidence: float = 0.8

    @classmethod
    def from_config(cls, config):
        return cls(
            gaze_away_threshold_ms=config.get('GAZE_AWAY_THRESHOLD_MS', cls.gaze_away_threshold_ms),
            multiple_voices_confidence=config.get('MULTIPLE_VOICES_CONFIDENCE', cls.multiple_voices_confidence),
        )


def classify(gaze: Optional[GazeSample], audio: Optional[AudioSample],
             rules: ClassificationRules, now) -> List[Finding]:
    """Findings for one batch of samples, gaze first then audio."""
    findings = []
    if gaze is not None and gaze.looking_away and gaze.duration > rules.gaze_away_threshold_ms:
        findings.append(Finding(
            type='gaze_away',
            severity=rules.gaze_away_severity,
            timestamp=now,
            description=f"User looked away for {gaze.duration:g}ms",
            confidence=gaze.confidence,
        ))
    if audio is not None and audio.multiple_voices:
        findings.append(Finding(
            type='multiple_voices',
            severity=rules.multiple_voices_severity,
            timestamp=now,
            description="Multiple voices detected in audio",
            confidence=rules.multiple_voices_confidence,
        ))
    return findings


class EventRecorder:
    def __init__(self, manager, store, rules=None, clock=utcnow):
        self.manager = manager
        self.store = store
        self.rules = rules or ClassificationRules()
        self._clock = clock
        self._listeners = []

    def add_listener(self, callback):
        """callback(event) runs after each successful write; best effort."""
        self._listeners.append(callback)

    def record(self, session_id, gaze=None, audio=None) -> MonitoringEvent:
        with self.manager.hold_active(session_id):
            now = self._clock()
            event = MonitoringEvent(
                session_id=session_id,
                timestamp=now,
                gaze=gaze,
                audio=audio,
                findings=classify(gaze, audio, self.rules, now),
            )
            self.store.add_event(event)

        for finding in event.findings:
            log_proctor_event(logger, session_id, 'flag_triggered', logging.WARNING,
                              flag=finding.type, severity=finding.severity,
                              confidence=round(finding.confidence, 2))
        logger.debug(f"Recorded monitoring data for session {session_id}")

        for callback in self._listeners:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Event listener failed for session {session_id}")
        return event

    def events(self, session_id) -> List[MonitoringEvent]:
        """Event log of any known session, active or ended."""
        if self.manager.find(session_id) is None:
            raise SessionNotFound(session_id)
        return self.store.events_for_session(session_id)
