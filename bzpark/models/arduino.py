# bzpark/models/arduino.py
"""
Arduino controllers: networked hubs for one or more distance sensors.
Setting status to 'maintenance' cascades to every sensor with this arduino_id.
"""

from sqlalchemy import Column, Integer, String, DateTime
from bzpark.database import Base
from bzpark.utils.timeutil import utcnow


class Arduino(Base):
    __tablename__ = "arduino"

    arduino_id = Column(Integer, primary_key=True, autoincrement=True)
    ip_address = Column(String(50), unique=True, nullable=False, index=True)
    location = Column(String(20), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="working")   # working | maintenance
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Arduino {self.arduino_id} ip={self.ip_address} status={self.status}>"
