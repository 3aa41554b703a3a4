"""UserCredits model holding the per-user credit balance and plan."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from database import Base


class UserCredits(Base):
    """Current credit balance and subscription plan for one user."""

    __tablename__ = "user_credits"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_user_credits_non_negative"),)
    __mapper_args__ = {"eager_defaults": True}

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, unique=True, nullable=False, index=True)
    credits = Column(Integer, nullable=False, default=0)
    plan = Column(String, nullable=False, default="free")
    plan_expires_at = Column(DateTime(timezone=True), nullable=True)
    external_subscription_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
