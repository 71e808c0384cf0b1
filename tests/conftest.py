"""
Pytest fixtures for the test suite.

Data-layer tests use an in-memory SQLite engine and a session that rolls back
after each test, so tests do not affect each other.

API tests build a fresh app per test (in-memory SQLite, fast bcrypt) and talk
to it through FastAPI's TestClient.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from hms.db.base import Base
from hms.models import clinical as _clinical  # noqa: F401  (register tables)
from hms.models.clinical import Appointment, Doctor, Patient, Prescription
from hms.models.users import User
from hms.security.passwords import hash_password
from hms.settings import Settings

TEST_DB_URL = "sqlite:///:memory:"
TEST_JWT_SECRET = "test-secret-that-is-long-enough-for-hs256"
TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


# ---- API fixtures ---------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(
        db_url="sqlite://",
        jwt_secret=TEST_JWT_SECRET,
        bcrypt_rounds=4,
        log_level="DEBUG",
    )


@pytest.fixture
def app(settings):
    from hms.main import create_app

    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@dataclass
class World:
    """Seeded staff, doctors and clinical rows shared by the API tests."""

    admin: User
    receptionist: User
    doctor_user_1: User
    doctor_user_2: User
    unlinked_doctor_user: User
    doctor_1: Doctor
    doctor_2: Doctor
    patient: Patient
    appointment_1: Appointment
    appointment_2: Appointment
    prescription_1: Prescription
    prescription_2: Prescription


def _user(name: str, email: str, role: str, is_active: bool = True) -> User:
    return User(
        name=name,
        email=email,
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
        role=role,
        is_active=is_active,
    )


def _doctor(name: str, email: str, user: User) -> Doctor:
    return Doctor(
        user_id=user.id,
        name=name,
        email=email,
        phone="555-0100",
        specialization="General Medicine",
        experience=5,
        qualification="MBBS",
    )


@pytest.fixture
def world(client, app) -> World:
    with app.state.session_factory() as db:
        admin = _user("Admin", "admin@hms.test", "admin")
        receptionist = _user("Front Desk", "desk@hms.test", "receptionist")
        doctor_user_1 = _user("Dr One", "one@hms.test", "doctor")
        doctor_user_2 = _user("Dr Two", "two@hms.test", "doctor")
        unlinked = _user("Dr Nobody", "nobody@hms.test", "doctor")
        db.add_all([admin, receptionist, doctor_user_1, doctor_user_2, unlinked])
        db.flush()

        doctor_1 = _doctor("Dr One", "dr.one@hms.test", doctor_user_1)
        doctor_2 = _doctor("Dr Two", "dr.two@hms.test", doctor_user_2)
        patient = Patient(
            name="Jane Patient",
            email="jane@example.com",
            phone="555-0199",
            address="1 Main St",
            date_of_birth=date(1990, 4, 2),
            gender="female",
            emergency_contact="555-0111",
        )
        db.add_all([doctor_1, doctor_2, patient])
        db.flush()

        appointment_1 = Appointment(
            patient_id=patient.id, doctor_id=doctor_1.id, appointment_date=datetime(2030, 1, 10, 9, 0)
        )
        appointment_2 = Appointment(
            patient_id=patient.id, doctor_id=doctor_2.id, appointment_date=datetime(2030, 1, 11, 9, 0)
        )
        db.add_all([appointment_1, appointment_2])
        db.flush()

        prescription_1 = Prescription(
            patient_id=patient.id,
            doctor_id=doctor_1.id,
            appointment_id=appointment_1.id,
            diagnosis="Flu",
            medications=[{"name": "Paracetamol", "dosage": "500mg"}],
            frequency="twice daily",
        )
        prescription_2 = Prescription(
            patient_id=patient.id,
            doctor_id=doctor_2.id,
            diagnosis="Sprain",
            medications=[{"name": "Ibuprofen", "dosage": "200mg"}],
            frequency="daily",
        )
        db.add_all([prescription_1, prescription_2])
        db.commit()

        return World(
            admin=admin,
            receptionist=receptionist,
            doctor_user_1=doctor_user_1,
            doctor_user_2=doctor_user_2,
            unlinked_doctor_user=unlinked,
            doctor_1=doctor_1,
            doctor_2=doctor_2,
            patient=patient,
            appointment_1=appointment_1,
            appointment_2=appointment_2,
            prescription_1=prescription_1,
            prescription_2=prescription_2,
        )


@pytest.fixture
def auth_headers(app):
    """Return a function building a bearer header for a seeded user."""

    def _headers(user: User) -> dict[str, str]:
        token = app.state.token_issuer.issue(user).access_token
        return {"Authorization": f"Bearer {token}"}

    return _headers
