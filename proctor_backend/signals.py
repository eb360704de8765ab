# signals.py
"""
Monitoring signal sources.

The gaze and audio sources below are stand-ins: they produce plausible
samples from a random generator so the rest of the pipeline can run. A real
tracker only has to provide the same sample() method.
"""
import logging
import threading

import numpy as np

from .domain import FREQUENCY_BANDS, AudioSample, GazeSample
from .errors import SessionNotFound, StorageUnavailable, ValidationError

logger = logging.getLogger(__name__)

SCREEN_WIDTH = 1920
SCREEN_HEIGHT = 1080
AWAY_RADIUS_PX = 400
MAX_AWAY_MS = 10000
MULTIPLE_VOICES_PROBABILITY = 0.1
NOISE_THRESHOLD = 0.1


class SimulatedGazeSource:
    def __init__(self, rng=None, screen=(SCREEN_WIDTH, SCREEN_HEIGHT), away_radius=AWAY_RADIUS_PX):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.width, self.height = screen
        self.away_radius = away_radius

    def sample(self) -> GazeSample:
        x = self.rng.uniform(0, self.width)
        y = self.rng.uniform(0, self.height)
        confidence = 0.7 + self.rng.uniform(0, 0.3)
        distance = np.hypot(x - self.width / 2, y - self.height / 2)
        looking_away = bool(distance > self.away_radius)
        duration = self.rng.uniform(0, MAX_AWAY_MS) if looking_away else 0.0
        return GazeSample(x=float(x), y=float(y), confidence=float(confidence),
                          looking_away=looking_away, duration=float(duration))


def pcm_volume(pcm: bytes) -> float:
    """Mean absolute amplitude of little-endian int16 PCM, normalised to [0, 1]."""
    usable = len(pcm) - len(pcm) % 2
    if usable == 0:
        return 0.0
    samples = np.frombuffer(pcm[:usable], dtype='<i2').astype(np.float64)
    return float(min(np.abs(samples).mean() / 32767.0, 1.0))


class SimulatedAudioSource:
    def __init__(self, rng=None, buffer_size=1024):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.buffer_size = buffer_size

    def analyze(self, pcm: bytes) -> AudioSample:
        volume = pcm_volume(pcm)
        frequency = (self.rng.random(FREQUENCY_BANDS) * 100).tolist()
        multiple_voices = bool(self.rng.random() < MULTIPLE_VOICES_PROBABILITY)
        background_noise = volume if volume < NOISE_THRESHOLD else 0.0
        return AudioSample(volume=volume, frequency=frequency,
                           multiple_voices=multiple_voices, background_noise=background_noise)

    def sample(self) -> AudioSample:
        # low-level room noise
        noise = self.rng.normal(0, 800, self.buffer_size // 2).clip(-32768, 32767).astype('<i2')
        return self.analyze(noise.tobytes())


class MonitoringPump:
    """
    Periodic per-session producers feeding the event recorder.

    spawn(fn) starts a background task and sleep(seconds) yields inside it;
    the app passes socketio.start_background_task / socketio.sleep.
    """

    def __init__(self, recorder, gaze_source, audio_source, spawn, sleep,
                 gaze_interval=1.0, audio_interval=0.5):
        self.recorder = recorder
        self.gaze_source = gaze_source
        self.audio_source = audio_source
        self._spawn = spawn
        self._sleep = sleep
        self.gaze_interval = gaze_interval
        self.audio_interval = audio_interval
        self._running = set()
        self._lock = threading.Lock()

    def is_running(self, session_id):
        with self._lock:
            return session_id in self._running

    def start(self, session_id):
        with self._lock:
            if session_id in self._running:
                logger.info(f"Signal pump already running for session {session_id}")
                return
            self._running.add(session_id)
        self._spawn(self._loop, session_id, 'gaze')
        self._spawn(self._loop, session_id, 'audio')
        logger.info(f"Started gaze tracking and audio analysis for session {session_id}")

    def stop(self, session_id):
        with self._lock:
            self._running.discard(session_id)

    def on_session(self, event_name, session):
        if event_name == 'started':
            self.start(session.id)
        elif event_name == 'ended':
            self.stop(session.id)

    def tick(self, session_id, channel):
        if channel == 'gaze':
            self.recorder.record(session_id, gaze=self.gaze_source.sample())
        else:
            self.recorder.record(session_id, audio=self.audio_source.sample())

    def _loop(self, session_id, channel):
        interval = self.gaze_interval if channel == 'gaze' else self.audio_interval
        while self.is_running(session_id):
            try:
                self.tick(session_id, channel)
            except SessionNotFound:
                self.stop(session_id)
                break
            except (StorageUnavailable, ValidationError) as exc:
                logger.warning(f"Dropped {channel} sample for session {session_id}: {exc}")
            self._sleep(interval)
        logger.info(f"Stopped {channel} signal for session {session_id}")
