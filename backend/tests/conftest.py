# backend/tests/conftest.py
"""
Shared pytest fixtures.

Every test that touches the database gets its own file-backed SQLite store
under ``tmp_path``, built through the same engine hooks, models, DDL
listeners and overlap triggers as production. Stripe is replaced by
``FakeStripeGateway`` unless a test patches the SDK directly.
"""

from dataclasses import dataclass, field, replace
import os
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

# Keep a developer's backend/.env out of test settings
os.environ.setdefault("CI", "true")

import pytest
from sqlalchemy.orm import Session, sessionmaker

from slotkeeper.core.config import Settings
from slotkeeper.core.exceptions import ExternalServiceException
from slotkeeper.database import Base, build_session_factory, create_engine_from_settings
import slotkeeper.models  # noqa: F401  registers every table on Base.metadata
from slotkeeper.models import AvailabilityWindow, Offering, Provider, Resource
from slotkeeper.services.stripe_gateway import PaymentIntentSnapshot, RefundResult

NEW_YORK = "America/New_York"

# (weekday, start_local, end_local); weekday 1 is Monday
MONDAY_MORNING: Tuple[Tuple[int, str, str], ...] = ((1, "09:00", "12:00"),)


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "database_url": f"sqlite+pysqlite:///{tmp_path / 'slotkeeper_test.db'}",
        "stripe_secret_key": "sk_test_slotkeeper",
        "stripe_webhook_secret": "whsec_slotkeeper",
        "payment_currency": "aud",
        "platform_fee_percentage": 0.10,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def engine(settings: Settings):
    engine = create_engine_from_settings(settings)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterable[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@dataclass
class SeededOffering:
    provider: Provider
    offering: Offering
    resources: List[Resource] = field(default_factory=list)

    @property
    def offering_id(self) -> str:
        return self.offering.id

    @property
    def resource_ids(self) -> List[str]:
        return [resource.id for resource in self.resources]


def seed_offering(
    db: Session,
    *,
    resource_ids: Sequence[str] = ("res-a",),
    windows: Sequence[Tuple[int, str, str]] = MONDAY_MORNING,
    timezone: str = NEW_YORK,
    duration: int = 60,
    buffer: int = 0,
    price_cents: int = 5000,
    advance_min: int = 0,
    advance_max: Optional[int] = None,
    stripe_status: str = "ACTIVE",
    offering_id: str = "off-1",
) -> SeededOffering:
    """Provider + resources + one offering, every resource sharing ``windows``."""
    provider = Provider(
        id="prov-1",
        name="Harbour Physio",
        stripe_account_id="acct_test_provider",
        stripe_account_status=stripe_status,
    )
    db.add(provider)
    resources = []
    for resource_id in resource_ids:
        resource = Resource(id=resource_id, provider_id=provider.id, name=f"Room {resource_id}")
        db.add(resource)
        resources.append(resource)
    offering = Offering(
        id=offering_id,
        provider_id=provider.id,
        name="Initial consult",
        slot_duration_minutes=duration,
        slot_buffer_minutes=buffer,
        advance_booking_min_minutes=advance_min,
        advance_booking_max_minutes=advance_max,
        price_cents=price_cents,
    )
    db.add(offering)
    db.flush()
    for resource in resources:
        for weekday, start_local, end_local in windows:
            db.add(
                AvailabilityWindow(
                    resource_id=resource.id,
                    weekday=weekday,
                    start_local=start_local,
                    end_local=end_local,
                    timezone=timezone,
                )
            )
    db.commit()
    return SeededOffering(provider=provider, offering=offering, resources=resources)


class FakeStripeGateway:
    """In-memory stand-in for StripeGateway."""

    def __init__(self) -> None:
        self.intents: Dict[str, PaymentIntentSnapshot] = {}
        self.created: List[dict] = []
        self.refunded: List[str] = []
        self.refund_error: Optional[ExternalServiceException] = None

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        currency: str,
        destination_account_id: str,
        application_fee_cents: int,
        metadata: Dict[str, str],
        description: Optional[str] = None,
    ) -> PaymentIntentSnapshot:
        intent = PaymentIntentSnapshot(
            id=f"pi_test_{len(self.created) + 1}",
            status="requires_payment_method",
            amount=amount_cents,
            currency=currency,
            metadata=dict(metadata),
            client_secret=f"pi_test_{len(self.created) + 1}_secret",
        )
        self.created.append(
            {
                "amount_cents": amount_cents,
                "currency": currency,
                "destination_account_id": destination_account_id,
                "application_fee_cents": application_fee_cents,
                "metadata": dict(metadata),
            }
        )
        self.intents[intent.id] = intent
        return intent

    def add_intent(self, intent: PaymentIntentSnapshot) -> PaymentIntentSnapshot:
        self.intents[intent.id] = intent
        return intent

    def succeed(self, payment_intent_id: str) -> PaymentIntentSnapshot:
        intent = replace(self.intents[payment_intent_id], status="succeeded")
        self.intents[payment_intent_id] = intent
        return intent

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentSnapshot:
        if payment_intent_id not in self.intents:
            raise ExternalServiceException("Failed to verify payment", code="STRIPE_ERROR")
        return self.intents[payment_intent_id]

    def refund_payment(self, payment_intent_id: str) -> RefundResult:
        if self.refund_error is not None:
            raise self.refund_error
        self.refunded.append(payment_intent_id)
        return RefundResult(id=f"re_{payment_intent_id}", status="succeeded")


@pytest.fixture
def fake_gateway() -> FakeStripeGateway:
    return FakeStripeGateway()


@pytest.fixture
def seed(db: Session):
    """Call with ``seed_offering`` keyword arguments to populate the test store."""

    def _seed(**kwargs) -> SeededOffering:
        return seed_offering(db, **kwargs)

    return _seed
