'''
Checkout and payment settlement.
'''
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core import workflow
from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import ApplicationStatus, PaymentStatus, UserRole
from ..common.config import settings
from ..common.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError, UpstreamFailureError
from ..common.logger import log
from ..models import payment as payment_models
from .application_service import ApplicationService
from .payment_gateway import PaymentGateway, get_payment_gateway
from .security import authorize_roles
from .tuition_service import TuitionService


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1")))


def from_minor_units(amount: Optional[int]) -> Decimal:
    return (Decimal(amount or 0) / 100).quantize(Decimal("0.01"))


class PaymentService:
    """
    Service for starting checkouts and settling completed payments.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        application_service: Annotated[ApplicationService, Depends(ApplicationService)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)],
        gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)]
    ):
        self.db = db
        self.application_service = application_service
        self.tuition_service = tuition_service
        self.gateway = gateway

    # --- Private Helpers ---

    def _authorize_payer(self, tuition: db_models.Tuitions, current_user: db_models.Users):
        if current_user.role == UserRole.ADMIN.value:
            return
        if current_user.role == UserRole.STUDENT.value and tuition.student_email == current_user.email:
            return
        log.warning(f"SECURITY: User {current_user.email} tried to pay for tuition {tuition.id} owned by {tuition.student_email}.")
        raise ForbiddenError("You can only pay for your own tuitions.")

    async def _get_payment_by_transaction_id(self, transaction_id: str) -> db_models.Payments | None:
        stmt = select(db_models.Payments).filter(db_models.Payments.transaction_id == transaction_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    @staticmethod
    def _already_recorded(payment: db_models.Payments) -> payment_models.SettlementResult:
        return payment_models.SettlementResult(
            success=True,
            message="Payment already recorded.",
            tuition_name=payment.tuition_name,
            tutor_name=payment.tutor_name,
            transaction_id=payment.transaction_id,
            already_recorded=True,
        )

    # --- Checkout ---

    async def create_checkout_session(self, checkout_data: payment_models.CheckoutSessionCreate, current_user: db_models.Users) -> payment_models.CheckoutSessionRead:
        """
        Opens a hosted checkout for hiring the tutor of a pending application.
        """
        authorize_roles(current_user, [UserRole.STUDENT])
        if checkout_data.student_email.lower() != current_user.email:
            raise ForbiddenError("You can only start a checkout for your own account.")

        log.info(f"Student {current_user.email} starting checkout for application {checkout_data.application_id}.")
        try:
            application = await self.application_service.get_application_by_id_internal(checkout_data.application_id)
            if application.tuition_id != checkout_data.tuition_id:
                raise BadRequestError("The application does not belong to this tuition.")

            tuition = await self.tuition_service.get_tuition_by_id_internal(application.tuition_id)
            self._authorize_payer(tuition, current_user)

            if application.status != ApplicationStatus.PENDING.value:
                raise ConflictError(f"This application is already {application.status}.")
            if not workflow.is_tuition_open(tuition.status):
                raise ConflictError("This tuition has already been assigned.")

            metadata = {
                "applicationId": str(application.id),
                "tuitionId": str(tuition.id),
                "studentEmail": current_user.email,
                "tutorEmail": application.tutor_email,
                "tutorName": checkout_data.tutor_name,
                "tuitionName": tuition.subject,
            }
            created = await self.gateway.create_session(
                amount_minor=to_minor_units(checkout_data.amount),
                currency=settings.PAYMENT_CURRENCY,
                customer_email=current_user.email,
                metadata=metadata,
                success_url=f"{settings.CLIENT_DOMAIN}/dashboard/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{settings.CLIENT_DOMAIN}/dashboard/payment-cancelled",
                product_name=f"Tutor hire: {checkout_data.tutor_name} ({tuition.subject})",
            )
            return payment_models.CheckoutSessionRead(url=created.url, session_id=created.session_id)

        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in create_checkout_session for application {checkout_data.application_id}: {e}", exc_info=True)
            raise

    # --- Settlement ---

    async def settle_payment(self, session_id: str, current_user: db_models.Users) -> payment_models.SettlementResult:
        """
        Records a completed checkout exactly once.

        1. An unpaid session is reported back with success=False.
        2. A transaction that was already recorded returns the stored result.
        3. Otherwise the paid application is assigned (unless it already is)
           and the payment inserted, in the same transaction.
        """
        log.info(f"User {current_user.email} settling checkout session {session_id}.")

        # 1. Ask the gateway
        session = await self.gateway.retrieve_session(session_id)
        if not session.is_paid:
            log.info(f"Checkout session {session_id} is '{session.payment_status}', not settling.")
            return payment_models.SettlementResult(success=False, message="Payment not completed.")

        # 2. Idempotency guard
        transaction_id = session.payment_intent_id
        if not transaction_id:
            log.error(f"Paid checkout session {session_id} has no payment intent.")
            raise UpstreamFailureError("The payment provider did not report a transaction id.")

        existing = await self._get_payment_by_transaction_id(transaction_id)
        if existing:
            log.info(f"Transaction {transaction_id} already recorded as payment {existing.id}.")
            return self._already_recorded(existing)

        # 3. Assign and record
        try:
            application_id = UUID(session.metadata.get("applicationId", ""))
        except ValueError:
            raise NotFoundError("The application for this payment was not found.")

        application = await self.application_service.get_application_by_id_internal(application_id)
        tuition = await self.tuition_service.get_tuition_by_id_internal(application.tuition_id)
        self._authorize_payer(tuition, current_user)

        if application.status == ApplicationStatus.PENDING.value:
            try:
                await self.application_service.assign_application(application)
            except ConflictError:
                # a concurrent settlement of this transaction may have assigned first
                await self.db.rollback()
                winner = await self._get_payment_by_transaction_id(transaction_id)
                if winner is None:
                    raise
                log.info(f"Transaction {transaction_id} was settled concurrently; returning stored result.")
                return self._already_recorded(winner)
        elif application.status == ApplicationStatus.REJECTED.value:
            log.warning(f"Payment {transaction_id} targets rejected application {application_id}.")
            raise ConflictError("This application was rejected; the payment cannot be applied to it.")

        payment = db_models.Payments(
            transaction_id=transaction_id,
            application_id=application.id,
            tuition_id=tuition.id,
            student_email=tuition.student_email,
            tutor_email=application.tutor_email,
            tutor_name=application.tutor_name,
            tuition_name=tuition.subject,
            amount=from_minor_units(session.amount_total),
            currency=(session.currency or settings.PAYMENT_CURRENCY).lower(),
            payment_status=PaymentStatus.PAID.value,
        )
        try:
            self.db.add(payment)
            await self.db.flush()
        except IntegrityError:
            # a concurrent settlement of the same transaction won the insert
            await self.db.rollback()
            winner = await self._get_payment_by_transaction_id(transaction_id)
            if winner is None:
                raise
            log.info(f"Transaction {transaction_id} was recorded concurrently; returning stored result.")
            return self._already_recorded(winner)

        log.info(f"Payment {payment.id} recorded for transaction {transaction_id}.")

        # 4. Report
        return payment_models.SettlementResult(
            success=True,
            message="Payment successful.",
            tuition_name=tuition.subject,
            tutor_name=application.tutor_name,
            transaction_id=transaction_id,
        )

    # --- History ---

    async def list_payments(self, current_user: db_models.Users) -> list[db_models.Payments]:
        """
        Students see what they paid, tutors what they received, admins everything.
        """
        stmt = select(db_models.Payments).order_by(db_models.Payments.paid_at.desc())
        if current_user.role == UserRole.STUDENT.value:
            stmt = stmt.filter(db_models.Payments.student_email == current_user.email)
        elif current_user.role == UserRole.TUTOR.value:
            stmt = stmt.filter(db_models.Payments.tutor_email == current_user.email)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
