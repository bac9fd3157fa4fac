# bzpark/models/parking_payment.py
"""Payments settling a parking activity."""

from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey
from bzpark.database import Base
from bzpark.utils.timeutil import utcnow


class ParkingPayment(Base):
    __tablename__ = "parking_payment"

    parking_payment_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.user_id"), nullable=False, index=True)
    act_id = Column(Integer, ForeignKey("parking_activity.act_id"), nullable=False, index=True)
    amount = Column(Numeric(6, 2, asdecimal=False), nullable=False)
    payment_method = Column(String(10), nullable=False)   # gcash | paymaya | cash
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<ParkingPayment {self.parking_payment_id} act={self.act_id} amount={self.amount}>"
