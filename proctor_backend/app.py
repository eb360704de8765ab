import logging
import time

from flask import Flask
from flask_cors import CORS

from .api import api_bp, webhook_bp
from .config import load_config
from .errors import register_error_handlers
from .lifecycle import SessionManager
from .logging_config import setup_logging
from .recorder import ClassificationRules, EventRecorder
from .recordings import RecordingStore
from .signals import MonitoringPump, SimulatedAudioSource, SimulatedGazeSource
from .sockets import broadcast_event, broadcast_session, socketio
from .store import SessionStore
from .transcription import TranscriptionService

logger = logging.getLogger(__name__)


class ProctorServices:
    """Everything the handlers need, built once per app."""

    def __init__(self, config, spawn, sleep):
        self.started_at = time.monotonic()
        self.store = SessionStore(config['DATABASE_URL'], config['STORAGE_TIMEOUT'])
        self.manager = SessionManager(self.store)
        self.recorder = EventRecorder(self.manager, self.store, ClassificationRules.from_config(config))
        self.recordings = RecordingStore(config['UPLOAD_FOLDER'])
        self.transcription = TranscriptionService()
        self.pump = None
        if config['SIGNAL_SIMULATION']:
            self.pump = MonitoringPump(
                self.recorder, SimulatedGazeSource(), SimulatedAudioSource(),
                spawn=spawn, sleep=sleep,
                gaze_interval=config['GAZE_INTERVAL'], audio_interval=config['AUDIO_INTERVAL'],
            )
            self.manager.add_listener(self.pump.on_session)


def create_app(overrides=None):
    config = load_config(overrides)

    app = Flask(__name__)
    app.config.update(config)
    CORS(app, resources={r"/api/*": {"origins": config['CORS_ORIGINS']}})

    socketio.init_app(app, cors_allowed_origins=config['CORS_ORIGINS'],
                      async_mode=config['SOCKETIO_ASYNC_MODE'])

    services = ProctorServices(config, socketio.start_background_task, socketio.sleep)
    services.recorder.add_listener(broadcast_event)
    services.manager.add_listener(broadcast_session)
    app.extensions['proctor'] = services

    app.register_blueprint(api_bp)
    app.register_blueprint(webhook_bp)
    register_error_handlers(app)
    return app


if __name__ == '__main__':
    settings = load_config()
    setup_logging(level=settings['LOG_LEVEL'], log_dir=settings['LOG_DIR'])
    app = create_app()
    print(f"Starting Flask-SocketIO server on http://{settings['HOST']}:{settings['PORT']}")
    socketio.run(app, host=settings['HOST'], port=settings['PORT'])
