# bzpark/models/service.py
"""Pricing per vehicle type: flat rate for the first two hours, then per started hour."""

from sqlalchemy import Column, Integer, String, DateTime
from bzpark.database import Base
from bzpark.utils.timeutil import utcnow


class Service(Base):
    __tablename__ = "service"

    service_id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_type = Column(String(20), unique=True, nullable=False, index=True)
    first_2_hrs = Column(Integer, nullable=False, default=0)
    per_succ_hr = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Service {self.service_id} {self.vehicle_type}>"
