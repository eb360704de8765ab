"""
In-memory shapes of sessions, samples, findings and monitoring events.

The wire format is camelCase JSON, matching the browser client.
"""
import copy
import datetime
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ValidationError

CALL_PLATFORMS = ('zoom', 'meet', 'teams', 'other')
SESSION_STATUSES = ('active', 'paused', 'recording', 'ended')
RECORDING_KINDS = ('video', 'audio', 'screen')
FINDING_TYPES = ('gaze_away', 'multiple_voices', 'window_switch', 'face_not_detected')
SEVERITIES = ('low', 'medium', 'high')
FREQUENCY_BANDS = 10


def utcnow():
    # naive UTC, the way SQLite hands DateTime columns back
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() if value else None


def _number(data, key, low=None, high=None):
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"'{key}' must be a number")
    try:
        value = float(value)
    except OverflowError:
        raise ValidationError(f"'{key}' is out of range")
    if not math.isfinite(value):
        raise ValidationError(f"'{key}' must be a finite number")
    if (low is not None and value < low) or (high is not None and value > high):
        raise ValidationError(f"'{key}' must be between {low} and {high}")
    return value


def _boolean(data, key):
    value = data.get(key)
    if not isinstance(value, bool):
        raise ValidationError(f"'{key}' must be a boolean")
    return value


@dataclass
class GazeSample:
    x: float
    y: float
    confidence: float
    looking_away: bool
    duration: float

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("gazeData must be an object")
        return cls(
            x=_number(data, 'x'),
            y=_number(data, 'y'),
            confidence=_number(data, 'confidence', 0.0, 1.0),
            looking_away=_boolean(data, 'lookingAway'),
            duration=_number(data, 'duration', 0.0),
        )

    def to_dict(self):
        return {'x': self.x, 'y': self.y, 'confidence': self.confidence,
                'lookingAway': self.looking_away, 'duration': self.duration}


@dataclass
class AudioSample:
    volume: float
    frequency: List[float]
    multiple_voices: bool
    background_noise: float

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("audioData must be an object")
        bands = data.get('frequency')
        if not isinstance(bands, list) or len(bands) != FREQUENCY_BANDS:
            raise ValidationError(f"'frequency' must be a list of {FREQUENCY_BANDS} band magnitudes")
        frequency = [_number({'frequency': band}, 'frequency') for band in bands]
        return cls(
            volume=_number(data, 'volume', 0.0, 1.0),
            frequency=frequency,
            multiple_voices=_boolean(data, 'multipleVoices'),
            background_noise=_number(data, 'backgroundNoise', 0.0, 1.0),
        )

    def to_dict(self):
        return {'volume': self.volume, 'frequency': list(self.frequency),
                'multipleVoices': self.multiple_voices, 'backgroundNoise': self.background_noise}


@dataclass
class Finding:
    """One suspicious-activity finding derived from a sample."""
    type: str
    severity: str
    timestamp: datetime.datetime
    description: str
    confidence: float

    def to_dict(self):
        return {'type': self.type, 'severity': self.severity, 'timestamp': isoformat(self.timestamp),
                'description': self.description, 'confidence': self.confidence}

    @classmethod
    def from_dict(cls, data):
        if data.get('type') not in FINDING_TYPES:
            raise ValidationError(f"Unknown finding type {data.get('type')!r}")
        if data.get('severity') not in SEVERITIES:
            raise ValidationError(f"Unknown severity {data.get('severity')!r}")
        timestamp = data.get('timestamp')
        return cls(
            type=data['type'],
            severity=data['severity'],
            timestamp=datetime.datetime.fromisoformat(timestamp) if timestamp else None,
            description=data.get('description', ''),
            confidence=data.get('confidence', 0.0),
        )


@dataclass
class MonitoringEvent:
    session_id: str
    timestamp: datetime.datetime
    gaze: Optional[GazeSample] = None
    audio: Optional[AudioSample] = None
    findings: List[Finding] = field(default_factory=list)
    id: Optional[int] = None

    def to_dict(self):
        return {
            'id': self.id,
            'sessionId': self.session_id,
            'timestamp': isoformat(self.timestamp),
            'gazeData': self.gaze.to_dict() if self.gaze else None,
            'audioData': self.audio.to_dict() if self.audio else None,
            'suspiciousActivity': [f.to_dict() for f in self.findings],
        }


@dataclass
class ProctorSession:
    id: str
    user_id: str
    external_call_id: str
    call_platform: str
    status: str = 'active'
    start_time: datetime.datetime = field(default_factory=utcnow)
    end_time: Optional[datetime.datetime] = None
    recording_paths: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def copy(self):
        return copy.deepcopy(self)

    def summary(self):
        return {'id': self.id, 'status': self.status,
                'startTime': isoformat(self.start_time), 'callPlatform': self.call_platform}

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'externalCallId': self.external_call_id,
            'callPlatform': self.call_platform,
            'status': self.status,
            'startTime': isoformat(self.start_time),
            'endTime': isoformat(self.end_time),
            'recordingPaths': dict(self.recording_paths),
            'metadata': dict(self.metadata),
        }
