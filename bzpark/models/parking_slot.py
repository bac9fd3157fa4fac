# bzpark/models/parking_slot.py
"""
Parking slots. `status` is derived from the monitoring sensor by the
reconciliation engine, and can be overridden through a direct slot update.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from bzpark.database import Base
from bzpark.utils.timeutil import utcnow


class ParkingSlot(Base):
    __tablename__ = "parking_slot"

    slot_id = Column(Integer, primary_key=True, autoincrement=True)
    location = Column(String(20), nullable=False, index=True)
    status = Column(String(20), default="maintenance", index=True)  # available | occupied | maintenance
    sensor_id = Column(Integer, ForeignKey("sensor.sensor_id"), nullable=True, index=True)
    service_id = Column(Integer, ForeignKey("service.service_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<ParkingSlot {self.slot_id} {self.location} status={self.status}>"
