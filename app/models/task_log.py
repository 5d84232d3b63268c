from sqlalchemy import Column, String, DateTime, JSON, Text, Integer, Uuid
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class TaskLog(Base):
    """Audit row for background maintenance runs (completion sweep, cleanup)"""
    __tablename__ = "task_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_name = Column(String(100), nullable=False)
    task_id = Column(String(200))  # Celery task ID
    status = Column(String(20), nullable=False)  # success, failure
    result = Column(JSON, default=dict)
    error_message = Column(Text)
    execution_time_ms = Column(Integer)
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
