# bzpark/models/sensor.py
"""
Distance sensors. `sensor_range` is the last reading in centimeters (0..1000).
Slots reference a sensor through parking_slot.sensor_id.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from bzpark.database import Base
from bzpark.utils.timeutil import utcnow


class Sensor(Base):
    __tablename__ = "sensor"

    sensor_id = Column(Integer, primary_key=True, autoincrement=True)
    sensor_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="maintenance")  # working | maintenance
    sensor_range = Column(Integer, nullable=False, default=0)
    arduino_id = Column(Integer, ForeignKey("arduino.arduino_id", ondelete="SET NULL"),
                        nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def __repr__(self):
        return f"<Sensor {self.sensor_id} status={self.status} range={self.sensor_range}cm>"
