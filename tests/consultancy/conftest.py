import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from consultancy.core import config  # noqa: E402
from consultancy.database import Base  # noqa: E402
from consultancy.models.booking import BookingRecord  # noqa: E402
from consultancy.models.notification import NotificationOutbox  # noqa: E402
from consultancy.ports.payment import PaymentGateway  # noqa: E402
from consultancy.schemas.booking import Actor  # noqa: E402
from consultancy.services.lifecycle import BookingLifecycle  # noqa: E402
from consultancy.services.repository import BookingRepository  # noqa: E402

NOW = datetime(2025, 6, 1, 12, 0)


class FakePaymentGateway(PaymentGateway):
    def __init__(self, reference: str | None = 'pay-ref-1'):
        self.reference = reference
        self.requests = []

    def request_payment(self, request) -> str | None:
        self.requests.append(request)
        return self.reference


@pytest.fixture
def booking_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=[BookingRecord.__table__, NotificationOutbox.__table__])

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=[NotificationOutbox.__table__, BookingRecord.__table__])


@pytest.fixture
def repository(booking_db) -> BookingRepository:
    return BookingRepository(booking_db, deleted_block_policy=config.KEEP_OCCUPIED)


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def lifecycle(repository, gateway) -> BookingLifecycle:
    return BookingLifecycle(repository, payment_gateway=gateway, admin_email='', clock=lambda: NOW)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id='admin-1', role='admin')


@pytest.fixture
def client_user() -> Actor:
    return Actor(user_id='client-1')


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def booking_form():
    def build(slot: datetime, **overrides) -> dict:
        data = {
            'name': 'Ada Client',
            'email': 'ada@example.com',
            'phone': '+254 700 000 000',
            'consultation_type': 'general',
            'description': 'Boundary survey for a new plot.',
            'slot': slot,
        }
        data.update(overrides)
        return data

    return build
