from sqlalchemy import Column, Integer, String, JSON, Boolean, DateTime, func
from models.base import Base

class QuizAttemptRecord(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), index=True, nullable=False)
    slot_id = Column(Integer, nullable=True)
    format = Column(String(32), nullable=False)
    brand = Column(String(64), nullable=False)
    questions_json = Column(JSON, nullable=False)
    user_answers = Column(JSON, nullable=False)
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    reviewed = Column(Boolean, default=False, nullable=False)
    reason = Column(String(255), nullable=True)  # disqualification cause
    timestamp = Column(DateTime, server_default=func.now(), index=True, nullable=False)
