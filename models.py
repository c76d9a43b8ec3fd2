from sqlalchemy import Column, String, ForeignKey, DateTime, Boolean, BigInteger
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import uuid

from database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns below."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    twitter_id = Column(String, unique=True, nullable=False, index=True)
    username = Column(String, nullable=True)  # Twitter handle
    name = Column(String, nullable=True)  # Display name
    profile_img_url = Column(String, nullable=True)

    # Latest token pair issued by Twitter
    access_token = Column(String, nullable=True)
    refresh_token = Column(String, nullable=True)
    token_expires_at = Column(BigInteger, nullable=True)  # Epoch milliseconds

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    actions = relationship("UserAction", back_populates="user")

class UserAction(Base):
    __tablename__ = "user_actions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    tweet_id = Column(String, nullable=False)
    action = Column(String, nullable=False)  # "like" or "retweet"
    success = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    # Relationship
    user = relationship("User", back_populates="actions")
