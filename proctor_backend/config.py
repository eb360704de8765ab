"""
Runtime configuration, read from the environment (and .env when present)
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def load_config(overrides=None):
    """Build the flat config mapping handed to Flask and the services."""
    config = {
        'SECRET_KEY': os.getenv('SECRET_KEY', 'dev-secret-key'),
        'API_KEY': os.getenv('API_KEY', 'default-api-key'),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///proctoring.db'),
        'STORAGE_TIMEOUT': float(os.getenv('STORAGE_TIMEOUT', '5')),
        'UPLOAD_FOLDER': os.getenv('UPLOAD_FOLDER', os.path.join('uploads', 'recordings')),
        'TRANSCRIBE_FOLDER': os.getenv('TRANSCRIBE_FOLDER', 'uploads'),
        'MAX_CONTENT_LENGTH': int(os.getenv('MAX_CONTENT_LENGTH', str(100 * 1024 * 1024))),
        'CORS_ORIGINS': os.getenv('CORS_ORIGINS', '*'),
        'SOCKETIO_ASYNC_MODE': os.getenv('SOCKETIO_ASYNC_MODE', 'eventlet'),
        'SIGNAL_SIMULATION': _flag('SIGNAL_SIMULATION', True),
        'GAZE_INTERVAL': float(os.getenv('GAZE_INTERVAL', '1.0')),
        'AUDIO_INTERVAL': float(os.getenv('AUDIO_INTERVAL', '0.5')),
        'GAZE_AWAY_THRESHOLD_MS': float(os.getenv('GAZE_AWAY_THRESHOLD_MS', '5000')),
        'MULTIPLE_VOICES_CONFIDENCE': float(os.getenv('MULTIPLE_VOICES_CONFIDENCE', '0.8')),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO'),
        'LOG_DIR': os.getenv('LOG_DIR'),
        'HOST': os.getenv('HOST', '0.0.0.0'),
        'PORT': int(os.getenv('PORT', '5000')),
    }
    if overrides:
        config.update(overrides)
    return config
