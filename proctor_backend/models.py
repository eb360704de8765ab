from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.orm import declarative_base

from .domain import utcnow

Base = declarative_base()

class SessionRecord(Base):
    __tablename__ = "proctor_sessions"
    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), unique=True, nullable=False)
    user_id = Column(String(256), nullable=False, index=True)
    external_call_id = Column(String(256), nullable=False)
    call_platform = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False, default='active')
    start_time = Column(DateTime, nullable=False, default=utcnow)
    end_time = Column(DateTime, nullable=True)
    video_path = Column(String(512), nullable=True)
    audio_path = Column(String(512), nullable=True)
    screen_path = Column(String(512), nullable=True)
    client_metadata = Column(JSON, default=dict)

class EventRecord(Base):
    __tablename__ = "monitoring_events"
    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    gaze_data = Column(JSON, nullable=True)
    audio_data = Column(JSON, nullable=True)
    suspicious_activity = Column(JSON, default=list)

    __table_args__ = (Index('ix_monitoring_events_session', 'session_id', 'timestamp'),)
