from sqlalchemy import Column, Integer, String, Boolean, Float
from models.base import Base, TimestampMixin

class Ad(Base, TimestampMixin):
    __tablename__ = "ads"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String(255), nullable=False, default="")
    ad_slot = Column(String(32), index=True, nullable=False)
    ad_type = Column(String(16), default="image", nullable=False)  # 'image' | 'video'
    media_url = Column(String(1024), nullable=False, default="")
    redirect_url = Column(String(1024), nullable=True)
    revenue = Column(Float, default=0.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
