"""
Tests for sample parsing and wire shapes
"""
import pytest

from proctor_backend.domain import AudioSample, Finding, GazeSample, ProctorSession
from proctor_backend.errors import ValidationError


def test_gaze_from_wire():
    sample = GazeSample.from_dict({'x': 100, 'y': 50.5, 'confidence': 0.8, 'lookingAway': False, 'duration': 0})

    assert sample == GazeSample(x=100.0, y=50.5, confidence=0.8, looking_away=False, duration=0.0)
    assert sample.to_dict()['lookingAway'] is False


@pytest.mark.parametrize('payload', [
    'not-an-object',
    {'x': True, 'y': 0, 'confidence': 0.5, 'lookingAway': False, 'duration': 0},
    {'x': 0, 'y': 0, 'confidence': -0.1, 'lookingAway': False, 'duration': 0},
    {'x': 0, 'y': 0, 'confidence': 0.5, 'lookingAway': False, 'duration': -5},
    {'x': 0, 'y': 0, 'confidence': float('nan'), 'lookingAway': False, 'duration': 0},
    {'x': 0, 'y': 0, 'confidence': 0.5, 'lookingAway': True, 'duration': float('inf')},
    {'x': float('-inf'), 'y': 0, 'confidence': 0.5, 'lookingAway': False, 'duration': 0},
    {'x': 0, 'y': 0, 'confidence': 0.5, 'lookingAway': False, 'duration': 10 ** 400},
])
def test_gaze_rejects_bad_values(payload):
    with pytest.raises(ValidationError):
        GazeSample.from_dict(payload)


def test_audio_from_wire():
    sample = AudioSample.from_dict({'volume': 0.5, 'frequency': list(range(10)),
                                    'multipleVoices': False, 'backgroundNoise': 0.0})
    assert sample.frequency == [float(i) for i in range(10)]
    assert sample.to_dict()['multipleVoices'] is False


@pytest.mark.parametrize('change', [
    {'volume': 1.2},
    {'backgroundNoise': 'loud'},
    {'frequency': [1] * 9},
    {'frequency': ['a'] * 10},
    {'multipleVoices': 1},
    {'volume': float('nan')},
    {'backgroundNoise': float('inf')},
    {'frequency': [1] * 9 + [float('nan')]},
])
def test_audio_rejects_bad_values(change):
    payload = {'volume': 0.5, 'frequency': [1] * 10, 'multipleVoices': False, 'backgroundNoise': 0.0}
    payload.update(change)
    with pytest.raises(ValidationError):
        AudioSample.from_dict(payload)


def test_session_wire_shape():
    session = ProctorSession(id='s1', user_id='u1', external_call_id='c1', call_platform='zoom',
                             recording_paths={'video': '/v.webm'})

    wire = session.to_dict()

    assert wire['userId'] == 'u1'
    assert wire['endTime'] is None
    assert wire['recordingPaths'] == {'video': '/v.webm'}
    assert session.summary() == {'id': 's1', 'status': 'active', 'startTime': wire['startTime'],
                                 'callPlatform': 'zoom'}


def test_finding_from_stored_row():
    finding = Finding.from_dict({'type': 'multiple_voices', 'severity': 'high',
                                 'timestamp': '2024-05-01T09:00:00', 'description': 'Multiple voices detected',
                                 'confidence': 0.8})
    assert finding.type == 'multiple_voices'
    assert finding.timestamp.hour == 9


@pytest.mark.parametrize('change', [{'type': 'tab_hidden'}, {'severity': 'critical'}, {'type': None}])
def test_finding_rejects_unknown_kinds(change):
    row = {'type': 'gaze_away', 'severity': 'medium', 'description': '', 'confidence': 0.9}
    row.update(change)
    with pytest.raises(ValidationError):
        Finding.from_dict(row)
