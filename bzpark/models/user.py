# bzpark/models/user.py
"""Vehicle owners, identified by plate number."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from bzpark.database import Base
from bzpark.utils.timeutil import utcnow


class User(Base):
    __tablename__ = "user"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    plate_number = Column(String(20), unique=True, nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("service.service_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<User {self.user_id} plate={self.plate_number}>"
