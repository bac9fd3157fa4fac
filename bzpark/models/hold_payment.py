# bzpark/models/hold_payment.py
"""
Pre-paid hold payments reserving slot capacity.
is_done NULL/False = pending (counts against the available-slot budget).
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric, ForeignKey
from bzpark.database import Base
from bzpark.utils.timeutil import utcnow


class HoldPayment(Base):
    __tablename__ = "hold_payment"

    hold_payment_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.user_id"), nullable=False, index=True)
    amount = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    payment_method = Column(String(10), nullable=False)   # gcash | paymaya
    is_done = Column(Boolean, default=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self):
        return f"<HoldPayment {self.hold_payment_id} user={self.user_id} done={self.is_done}>"
