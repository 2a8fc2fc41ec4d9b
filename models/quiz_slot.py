from sqlalchemy import Column, Integer, String, JSON, Text
from models.base import Base, TimestampMixin

class QuizSlot(Base, TimestampMixin):
    __tablename__ = "quiz_slots"

    id = Column(Integer, primary_key=True, index=True)
    format = Column(String(32), index=True, nullable=False)
    status = Column(String(16), default="scheduled", index=True, nullable=False)  # scheduled, live, completed, cancelled
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    questions_json = Column(JSON, nullable=False, default=list)
    questions_per_user = Column(Integer, default=5, nullable=False)

    # Generation bookkeeping is optional; older slots carry none of it
    generation_method = Column(String(16), nullable=True)  # ai, pool, manual
    generation_status = Column(String(16), nullable=True)  # success, fallback, failed, pending
