from sqlalchemy import Column, Integer, String, Text, DateTime, func
from models.base import Base

class AIGenerationLog(Base):
    __tablename__ = "ai_generation_logs"

    id = Column(Integer, primary_key=True, index=True)
    slot_id = Column(Integer, nullable=True)
    format = Column(String(32), nullable=False)
    provider = Column(String(32), default="groq", nullable=False)
    status = Column(String(16), nullable=False)  # success, fallback, failed
    duration_ms = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), index=True, nullable=False)
