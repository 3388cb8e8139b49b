from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Integer, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from connect_db import Base
import uuid


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to timestamps read back from backends that drop the offset."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationship
    interests = relationship(
        "UserInterest",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserInterest.position",
    )

    # Writers bump ``version`` themselves; the UPDATE is guarded by the old value
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    @property
    def interest_tags(self):
        return [interest.tag for interest in self.interests]


class UserInterest(Base):
    __tablename__ = "user_interests"

    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    tag = Column(String, primary_key=True, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Relationship
    user = relationship("User", back_populates="interests")


class Friendship(Base):
    """One directed half of a friendship; both halves are always written together."""

    __tablename__ = "friendships"
    __table_args__ = (CheckConstraint("user_id != friend_id", name="ck_friendship_not_self"),)

    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    friend_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class FriendRequest(Base):
    """A pending request addressed to ``target_id``."""

    __tablename__ = "friend_requests"
    __table_args__ = (CheckConstraint("requester_id != target_id", name="ck_request_not_self"),)

    requester_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    target_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
