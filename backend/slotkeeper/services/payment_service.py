# backend/slotkeeper/services/payment_service.py
"""
Payment Reconciliation.

Two phases around the booking coordinator:

Intent phase
    Validate the slot (best effort), price it, and open a Stripe destination
    charge whose metadata mirrors the slot. No booking exists yet.

Confirmation phase
    Refuse a payment reference that already produced a booking, check the
    intent succeeded and matches the requested slot exactly, then commit the
    booking and its Payment row in one transaction.

Compensation
    If the commit loses to a competing booking, or the slot has already
    started by the time the payment is confirmed, refund in full and report a
    refunded conflict. If the refund fails, report CompensationFailed so an
    operator can follow up; it is never folded into a plain conflict.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Dict, NoReturn, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    CompensationFailedException,
    ExternalServiceException,
    NotFoundException,
    PaymentAlreadyConsumedException,
    PaymentMismatchException,
    PaymentNotCompletedException,
    SlotTakenRefundedException,
    ValidationException,
)
from ..core.timezones import ensure_utc, isoformat_utc, is_valid_timezone
from ..database.transactions import TxStatus
from ..integrations.calendar import BusyCalendarSource
from ..models.booking import Booking
from ..models.offering import Offering
from ..models.payment import Payment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_service import (
    BookingAttempt,
    BookingAttemptState,
    BookingService,
    ParticipantInfo,
    PaymentRecordDraft,
)
from .pricing_service import calculate_platform_fee
from .stripe_gateway import PaymentIntentSnapshot, StripeGateway

logger = logging.getLogger(__name__)

STRIPE_SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class PaymentIntentHandle:
    payment_intent_id: str
    client_secret: Optional[str]
    amount_cents: int
    platform_fee_cents: int
    currency: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class PaymentConfirmationRequest:
    offering_id: str
    start: datetime
    timezone: str
    payment_intent_id: str
    participant: ParticipantInfo
    notes: Optional[str] = None


def build_booking_metadata(
    offering: Offering, start: datetime, end: datetime, tz_name: str
) -> Dict[str, str]:
    """Metadata attached to the intent; confirmation requires an exact match."""
    return {
        "offeringId": offering.id,
        "providerId": offering.provider_id,
        "start": isoformat_utc(start),
        "end": isoformat_utc(end),
        "timezone": tz_name,
    }


class PaymentService(BaseService):
    def __init__(
        self,
        db: Session,
        settings: Settings,
        gateway: Optional[StripeGateway] = None,
        booking_service: Optional[BookingService] = None,
        calendar_source: Optional[BusyCalendarSource] = None,
    ):
        super().__init__(db)
        self.settings = settings
        self.gateway = gateway or StripeGateway(settings)
        self.booking_service = booking_service or BookingService(
            db, settings, calendar_source=calendar_source
        )
        self.payment_repository = RepositoryFactory.create_payment_repository(db)

    @property
    def availability_service(self):
        return self.booking_service.availability_service

    def _price(self, offering: Offering) -> tuple[int, int]:
        amount = offering.price_cents
        return amount, calculate_platform_fee(amount, self.settings.platform_fee_percentage)

    @BaseService.measure_operation("create_payment_intent")
    def create_payment_intent(
        self,
        offering_id: str,
        start: datetime,
        tz_name: str,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> PaymentIntentHandle:
        """
        Open a payment for a candidate slot.

        The availability check here is advisory; the slot is only secured
        when the confirmation commits.
        """
        offering = self.availability_service.get_offering(offering_id)
        provider = offering.provider
        if provider is None or not provider.accepts_payments:
            raise BusinessRuleException(
                "This provider is not accepting payments yet",
                code="PAYMENTS_UNAVAILABLE",
                details={"provider_id": offering.provider_id},
            )
        if not is_valid_timezone(tz_name):
            raise ValidationException(f"Unknown timezone: {tz_name}", code="INVALID_TIMEZONE")

        start, end = self.booking_service.validate_slot_request(offering, start, end, now=now)
        if not self.availability_service.check_slot(offering_id, start, end):
            raise BookingConflictException(
                "This time slot is not available",
                details={"offering_id": offering_id, "start": start.isoformat()},
            )

        amount, fee = self._price(offering)
        intent = self.gateway.create_payment_intent(
            amount_cents=amount,
            currency=self.settings.payment_currency,
            destination_account_id=provider.stripe_account_id,
            application_fee_cents=fee,
            metadata=build_booking_metadata(offering, start, end, tz_name),
            description=f"{offering.name} at {isoformat_utc(start)}",
        )
        self.log_operation(
            "payment_intent_created",
            payment_intent_id=intent.id,
            offering_id=offering_id,
            amount_cents=amount,
        )
        return PaymentIntentHandle(
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            amount_cents=amount,
            platform_fee_cents=fee,
            currency=self.settings.payment_currency,
            start=start,
            end=end,
        )

    def verify_payment_matches(
        self,
        intent: PaymentIntentSnapshot,
        *,
        amount_cents: int,
        currency: str,
        metadata: Dict[str, str],
    ) -> None:
        """
        Raises:
            PaymentNotCompletedException: intent has not succeeded
            PaymentMismatchException: amount, currency or any metadata key differs
        """
        if intent.status != STRIPE_SUCCEEDED:
            raise PaymentNotCompletedException(intent.id, intent.status)

        mismatched = []
        if intent.amount != amount_cents:
            mismatched.append("amount")
        if intent.currency.lower() != currency.lower():
            mismatched.append("currency")
        mismatched.extend(
            key for key, expected in metadata.items() if intent.metadata.get(key) != expected
        )
        if mismatched:
            self.logger.warning(
                "Payment %s does not match booking request: %s", intent.id, mismatched
            )
            raise PaymentMismatchException(
                "Payment does not match the requested booking",
                details={"payment_intent_id": intent.id, "mismatched_fields": mismatched},
            )

    @BaseService.measure_operation("confirm_booking_with_payment")
    def confirm_booking_with_payment(
        self, request: PaymentConfirmationRequest, now: Optional[datetime] = None
    ) -> Booking:
        """
        Turn a succeeded payment into a booking.

        A slot that has already started is refunded like a lost one.

        Raises:
            PaymentAlreadyConsumedException: the intent already produced a booking
            PaymentMismatchException: the intent does not describe this booking
            SlotTakenRefundedException: lost the slot, payment refunded
            CompensationFailedException: lost the slot and the refund failed
        """
        existing = self.payment_repository.get_by_payment_intent(request.payment_intent_id)
        if existing is not None:
            raise PaymentAlreadyConsumedException(request.payment_intent_id, existing.booking_id)

        offering = self.availability_service.get_offering(request.offering_id)
        # Advance bounds were enforced when the intent was created; the
        # metadata match below pins the confirmation to that same slot.
        # Only a slot that has already started is refused here.
        start, end = self.booking_service.validate_slot_request(
            offering, request.start, check_advance_bounds=False
        )

        intent = self.gateway.retrieve_payment_intent(request.payment_intent_id)
        amount, fee = self._price(offering)
        self.verify_payment_matches(
            intent,
            amount_cents=amount,
            currency=self.settings.payment_currency,
            metadata=build_booking_metadata(offering, start, end, request.timezone),
        )

        attempt = BookingAttempt(offering_id=offering.id)
        attempt.advance(BookingAttemptState.VALIDATING)

        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        if start <= now:
            attempt.advance(BookingAttemptState.REJECTED_CONFLICT)
            prometheus_metrics.inc_booking_attempt("conflict")
            self._compensate(intent.id, "slot already started")

        result = self.booking_service.commit_booking(
            offering,
            start,
            end,
            request.timezone,
            request.participant,
            request.notes,
            payment=PaymentRecordDraft(
                payment_intent_id=intent.id,
                amount_cents=intent.amount,
                platform_fee_cents=fee,
                currency=intent.currency,
                paid_at=datetime.now(timezone.utc),
            ),
        )
        if result.ok and result.value is not None:
            attempt.advance(BookingAttemptState.COMMITTED)
            prometheus_metrics.inc_booking_attempt("committed")
            self.log_operation(
                "paid_booking_committed", booking_id=result.value.id, payment_intent_id=intent.id
            )
            return result.value

        attempt.advance(BookingAttemptState.REJECTED_CONFLICT)
        if result.status is TxStatus.PAYMENT_CONSUMED:
            raise PaymentAlreadyConsumedException(intent.id)
        prometheus_metrics.inc_booking_attempt("conflict")
        self._compensate(intent.id, result.reason)

    def _compensate(self, payment_intent_id: str, reason: Optional[str]) -> NoReturn:
        # A concurrent confirmation with this same intent may be the winner
        winner = self.payment_repository.get_by_payment_intent(payment_intent_id)
        if winner is not None:
            raise PaymentAlreadyConsumedException(payment_intent_id, winner.booking_id)

        self.logger.warning(
            "Paid confirmation lost its slot (%s); refunding %s", reason, payment_intent_id
        )
        try:
            refund = self.gateway.refund_payment(payment_intent_id)
        except ExternalServiceException as exc:
            prometheus_metrics.inc_payment_compensation("refund_failed")
            self.logger.error(
                "Refund failed for payment %s after booking conflict: %s",
                payment_intent_id,
                exc.message,
            )
            raise CompensationFailedException(
                payment_intent_id, str(exc.details.get("stripe_error", exc.message))
            ) from exc

        prometheus_metrics.inc_payment_compensation("refunded")
        self.logger.info("Refund %s issued for payment %s", refund.id, payment_intent_id)
        raise SlotTakenRefundedException(payment_intent_id, refund.id)

    def get_payment_status(self, booking_id: str) -> Payment:
        payment = self.payment_repository.get_by_booking(booking_id)
        if payment is None:
            raise NotFoundException(
                f"No payment found for booking {booking_id}", code="PAYMENT_NOT_FOUND"
            )
        return payment
