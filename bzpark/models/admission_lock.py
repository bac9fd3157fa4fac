# bzpark/models/admission_lock.py
"""
Single-row table locked (SELECT ... FOR UPDATE) by every hold-payment admission,
so the count-and-insert runs serialized across workers.
"""

from sqlalchemy import Column, Integer, select
from sqlalchemy.orm import Session
from bzpark.database import Base

ADMISSION_LOCK_ID = 1


class AdmissionLock(Base):
    __tablename__ = "admission_lock"

    lock_id = Column(Integer, primary_key=True)


def ensure_admission_lock(bind):
    """Insert the lock row if it is missing. Called by create_tables()."""
    with Session(bind=bind) as db:
        exists = db.execute(
            select(AdmissionLock.lock_id).where(AdmissionLock.lock_id == ADMISSION_LOCK_ID)
        ).first()
        if not exists:
            db.add(AdmissionLock(lock_id=ADMISSION_LOCK_ID))
            db.commit()
