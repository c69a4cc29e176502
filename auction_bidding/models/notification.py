"""
Notification Model

auction_id is a plain reference, not a foreign key: notifications outlive
the auction they mention.
"""
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text

from auction_bidding.models import Base


class Notification(Base):
    __tablename__ = "notifications"

    notification_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    auction_id = Column(Integer, nullable=True, index=True)
    title = Column(String(200), nullable=False)
    text = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            "notification_id": self.notification_id,
            "user_id": self.user_id,
            "auction_id": self.auction_id,
            "title": self.title,
            "text": self.text,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
