# bzpark/models/parking_activity.py
"""
Parking sessions. An activity with end_time NULL is active; a user may hold at
most one active activity. `duration` (seconds) and `amount` are set on end.
"""

from sqlalchemy import Column, Integer, DateTime, Boolean, ForeignKey
from bzpark.database import Base
from bzpark.utils.timeutil import utcnow


class ParkingActivity(Base):
    __tablename__ = "parking_activity"

    act_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.user_id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False, default=utcnow, index=True)
    end_time = Column(DateTime, nullable=True, index=True)
    duration = Column(Integer)              # seconds
    amount = Column(Integer, nullable=False, default=0)
    is_paid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<ParkingActivity {self.act_id} user={self.user_id} end={self.end_time}>"
