# BZpark Database Models
# Import all models here for SQLAlchemy discovery

from bzpark.models.arduino import Arduino                   # noqa
from bzpark.models.sensor import Sensor                     # noqa
from bzpark.models.service import Service                   # noqa
from bzpark.models.parking_slot import ParkingSlot          # noqa
from bzpark.models.user import User                         # noqa
from bzpark.models.parking_activity import ParkingActivity  # noqa
from bzpark.models.hold_payment import HoldPayment          # noqa
from bzpark.models.parking_payment import ParkingPayment    # noqa
from bzpark.models.admission_lock import AdmissionLock      # noqa
