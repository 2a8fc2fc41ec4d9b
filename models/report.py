from sqlalchemy import Column, Integer, String, JSON, Text, DateTime, func
from models.base import Base

class QuestionReport(Base):
    __tablename__ = "reported_questions"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(String(64), index=True, nullable=False)
    question_text = Column(Text, nullable=False)
    reason = Column(String(255), nullable=False)
    comment = Column(Text, nullable=True)
    user_id = Column(String(128), index=True, nullable=False)
    status = Column(String(16), default="new", nullable=False)  # new, reviewed, resolved
    reported_at = Column(DateTime, server_default=func.now(), nullable=False)


class Contribution(Base):
    __tablename__ = "contributions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), index=True, nullable=False)
    type = Column(String(16), nullable=False)  # fact, question
    payload = Column(JSON, nullable=False)
    status = Column(String(16), default="pending", nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
