# tests/conftest.py
"""Shared fixtures: an in-memory SQLite store with every table and row factories."""

import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Settings are read at import time, point them at SQLite before bzpark loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["API_KEY"] = ""
os.environ["ESP8266_POLLING_ENABLED"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bzpark.database import create_tables
from bzpark.models.arduino import Arduino
from bzpark.models.hold_payment import HoldPayment
from bzpark.models.parking_activity import ParkingActivity
from bzpark.models.parking_slot import ParkingSlot
from bzpark.models.sensor import Sensor
from bzpark.models.service import Service
from bzpark.models.user import User


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", poolclass=StaticPool,
                        connect_args={"check_same_thread": False})
    create_tables(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def _persist(db, row):
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@pytest.fixture
def make_arduino(db):
    counter = iter(range(1, 255))

    def _make(status="working", location="Level-1", ip_address=None):
        ip_address = ip_address or f"192.168.1.{next(counter)}"
        return _persist(db, Arduino(ip_address=ip_address, location=location, status=status))
    return _make


@pytest.fixture
def make_sensor(db):
    def _make(arduino_id=None, status="working", sensor_range=50, sensor_type="ultrasonic"):
        return _persist(db, Sensor(sensor_type=sensor_type, arduino_id=arduino_id,
                                   status=status, sensor_range=sensor_range))
    return _make


@pytest.fixture
def make_slot(db):
    def _make(status="available", sensor_id=None, service_id=None, location="A1"):
        return _persist(db, ParkingSlot(location=location, status=status,
                                        sensor_id=sensor_id, service_id=service_id))
    return _make


@pytest.fixture
def make_service(db):
    def _make(vehicle_type="car", first_2_hrs=50, per_succ_hr=20):
        return _persist(db, Service(vehicle_type=vehicle_type, first_2_hrs=first_2_hrs,
                                    per_succ_hr=per_succ_hr))
    return _make


@pytest.fixture
def make_user(db):
    counter = iter(range(1, 10_000))

    def _make(plate_number=None, service_id=None):
        plate_number = plate_number or f"ABC-{next(counter):04d}"
        return _persist(db, User(plate_number=plate_number, service_id=service_id))
    return _make


@pytest.fixture
def make_activity(db):
    def _make(user_id, start_time=None, end_time=None):
        kwargs = {"user_id": user_id, "end_time": end_time}
        if start_time is not None:
            kwargs["start_time"] = start_time
        return _persist(db, ParkingActivity(**kwargs))
    return _make


@pytest.fixture
def make_hold(db):
    def _make(user_id, is_done=False, amount=50.0, payment_method="gcash"):
        return _persist(db, HoldPayment(user_id=user_id, amount=amount,
                                        payment_method=payment_method, is_done=is_done))
    return _make
