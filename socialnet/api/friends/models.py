from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from socialnet.core.utils import utcnow
from socialnet.database.database import Base


class Friendship(Base):
    __tablename__ = "friendships"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    friend_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, accepted, rejected, blocked
    tier = Column(String(20), default="acquaintances", nullable=False)
    custom_tier_label = Column(String(50), nullable=True)

    action_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    cooling_period = Column(DateTime, nullable=True)
    request_count = Column(Integer, default=1, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Отношения
    user = relationship("User", foreign_keys=[user_id])
    friend = relationship("User", foreign_keys=[friend_id])

    __table_args__ = (
        UniqueConstraint('user_id', 'friend_id', name='unique_friendship'),
        Index('ix_friendships_user_status', 'user_id', 'status'),
        Index('ix_friendships_friend_status', 'friend_id', 'status'),
    )

    def other_id(self, user_id: int) -> int:
        """ID второй стороны дружбы относительно user_id"""
        return self.friend_id if self.user_id == user_id else self.user_id

    def direction_for(self, user_id: int) -> str:
        return "outgoing" if self.user_id == user_id else "incoming"

    def can_resend(self, now) -> bool:
        return self.cooling_period is None or now > self.cooling_period
