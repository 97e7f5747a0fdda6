'''
Tests for PaymentService: checkout creation and idempotent settlement.
'''
import pytest
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from etuition_backend.common.exceptions import BadRequestError, ConflictError, ForbiddenError, UpstreamFailureError
from etuition_backend.database import models as db_models
from etuition_backend.database.db_enums import ApplicationStatus, TuitionStatus
from etuition_backend.models import payment as payment_models
from etuition_backend.services.application_service import ApplicationService
from etuition_backend.services.payment_gateway import PaymentGateway
from etuition_backend.services.payment_service import PaymentService, to_minor_units, from_minor_units
from etuition_backend.services.tuition_service import TuitionService
from tests.constants import TEST_PAYMENT_INTENT_ID
from tests.database import factories
from tests.utils import paid_session_for


async def _payment_count(db_session: AsyncSession, transaction_id: str) -> int:
    return (await db_session.execute(
        select(func.count()).select_from(db_models.Payments)
        .filter(db_models.Payments.transaction_id == transaction_id)
    )).scalar_one()


def _payment_service_for(session: AsyncSession, gateway: PaymentGateway) -> PaymentService:
    """A PaymentService wired to its own session, as one request would be."""
    tuition_service = TuitionService(db=session)
    return PaymentService(
        db=session,
        application_service=ApplicationService(db=session, tuition_service=tuition_service),
        tuition_service=tuition_service,
        gateway=gateway,
    )


def test_minor_unit_conversion():
    assert to_minor_units(Decimal("5500")) == 550000
    assert to_minor_units(Decimal("12.345")) == 1234
    assert from_minor_units(550000) == Decimal("5500.00")
    assert from_minor_units(None) == Decimal("0.00")


@pytest.mark.anyio
class TestCreateCheckoutSession:

    def _checkout(self, application: db_models.Applications, student_email: str) -> payment_models.CheckoutSessionCreate:
        return payment_models.CheckoutSessionCreate(
            amount=Decimal("5500"),
            tutorName=application.tutor_name,
            studentEmail=student_email,
            applicationId=application.id,
            tuitionId=application.tuition_id,
        )

    async def test_create_success(
        self,
        payment_service: PaymentService,
        mock_payment_gateway: PaymentGateway,
        test_student: db_models.Users,
        test_application: db_models.Applications
    ):
        result = await payment_service.create_checkout_session(
            self._checkout(test_application, test_student.email), test_student
        )
        print(f"\n--- Checkout session: {result} ---")
        assert result.url.startswith("https://checkout.stripe.com/")

        mock_payment_gateway.create_session.assert_awaited_once()
        kwargs = mock_payment_gateway.create_session.await_args.kwargs
        assert kwargs["amount_minor"] == 550000
        assert kwargs["customer_email"] == test_student.email
        assert kwargs["metadata"]["applicationId"] == str(test_application.id)
        assert kwargs["metadata"]["tuitionId"] == str(test_application.tuition_id)
        assert kwargs["metadata"]["tutorEmail"] == test_application.tutor_email
        assert kwargs["success_url"].endswith("session_id={CHECKOUT_SESSION_ID}")

    async def test_create_as_tutor_forbidden(
        self,
        payment_service: PaymentService,
        mock_payment_gateway: PaymentGateway,
        test_tutor_user: db_models.Users,
        test_application: db_models.Applications
    ):
        with pytest.raises(ForbiddenError):
            await payment_service.create_checkout_session(
                self._checkout(test_application, test_tutor_user.email), test_tutor_user
            )
        mock_payment_gateway.create_session.assert_not_awaited()

    async def test_create_for_other_account_forbidden(
        self,
        payment_service: PaymentService,
        test_student: db_models.Users,
        test_other_student: db_models.Users,
        test_application: db_models.Applications
    ):
        with pytest.raises(ForbiddenError):
            await payment_service.create_checkout_session(
                self._checkout(test_application, test_other_student.email), test_student
            )

    async def test_create_for_tuition_of_other_student_forbidden(
        self,
        payment_service: PaymentService,
        test_other_student: db_models.Users,
        test_application: db_models.Applications
    ):
        with pytest.raises(ForbiddenError):
            await payment_service.create_checkout_session(
                self._checkout(test_application, test_other_student.email), test_other_student
            )

    async def test_create_with_mismatched_tuition(
        self,
        payment_service: PaymentService,
        test_student: db_models.Users,
        test_application: db_models.Applications
    ):
        checkout = self._checkout(test_application, test_student.email)
        checkout.tuition_id = uuid4()
        with pytest.raises(BadRequestError):
            await payment_service.create_checkout_session(checkout, test_student)

    async def test_create_for_rejected_application_conflict(
        self,
        payment_service: PaymentService,
        test_student: db_models.Users,
        test_tuition: db_models.Tuitions,
        test_other_tutor_user: db_models.Users
    ):
        rejected = factories.ApplicationFactory(
            tuition_id=test_tuition.id,
            tutor_email=test_other_tutor_user.email,
            status=ApplicationStatus.REJECTED.value
        )
        with pytest.raises(ConflictError):
            await payment_service.create_checkout_session(
                self._checkout(rejected, test_student.email), test_student
            )


@pytest.mark.anyio
class TestSettlePayment:

    async def test_unpaid_session_changes_nothing(
        self,
        payment_service: PaymentService,
        db_session: AsyncSession,
        test_student: db_models.Users,
        test_application: db_models.Applications
    ):
        result = await payment_service.settle_payment("cs_test_unpaid", test_student)

        assert result.success is False
        assert result.message == "Payment not completed."
        application = await db_session.get(db_models.Applications, test_application.id)
        assert application.status == ApplicationStatus.PENDING.value

    async def test_paid_session_assigns_and_records(
        self,
        payment_service: PaymentService,
        mock_payment_gateway: PaymentGateway,
        db_session: AsyncSession,
        test_student: db_models.Users,
        test_application: db_models.Applications,
        test_rival_application: db_models.Applications
    ):
        mock_payment_gateway.retrieve_session.return_value = paid_session_for(test_application, TEST_PAYMENT_INTENT_ID)

        result = await payment_service.settle_payment("cs_test_a1B2c3D4", test_student)
        print(f"\n--- Settlement: {result} ---")

        assert result.success is True
        assert result.already_recorded is False
        assert result.transaction_id == TEST_PAYMENT_INTENT_ID
        assert result.tutor_name == test_application.tutor_name
        assert result.tuition_name == "Physics"

        payment = (await db_session.execute(
            select(db_models.Payments).filter(db_models.Payments.transaction_id == TEST_PAYMENT_INTENT_ID)
        )).scalar_one()
        assert payment.amount == Decimal("5500.00")
        assert payment.application_id == test_application.id
        assert payment.student_email == test_student.email
        assert payment.tutor_email == test_application.tutor_email

        tuition = await db_session.get(db_models.Tuitions, test_application.tuition_id)
        approved = await db_session.get(db_models.Applications, test_application.id)
        rival = await db_session.get(db_models.Applications, test_rival_application.id)
        assert tuition.status == TuitionStatus.ASSIGNED.value
        assert approved.status == ApplicationStatus.APPROVED.value
        assert rival.status == ApplicationStatus.REJECTED.value

    async def test_settle_twice_records_once(
        self,
        payment_service: PaymentService,
        mock_payment_gateway: PaymentGateway,
        db_session: AsyncSession,
        test_student: db_models.Users,
        test_application: db_models.Applications
    ):
        mock_payment_gateway.retrieve_session.return_value = paid_session_for(test_application, TEST_PAYMENT_INTENT_ID)

        first = await payment_service.settle_payment("cs_test_a1B2c3D4", test_student)
        second = await payment_service.settle_payment("cs_test_a1B2c3D4", test_student)

        assert first.already_recorded is False
        assert second.success is True
        assert second.already_recorded is True
        assert second.message == "Payment already recorded."
        assert second.transaction_id == first.transaction_id
        assert await _payment_count(db_session, TEST_PAYMENT_INTENT_ID) == 1

    async def test_settle_after_manual_approval(
        self,
        payment_service: PaymentService,
        application_service: ApplicationService,
        mock_payment_gateway: PaymentGateway,
        db_session: AsyncSession,
        test_student: db_models.Users,
        test_application: db_models.Applications
    ):
        await application_service.approve_application(test_application.id, test_student)
        mock_payment_gateway.retrieve_session.return_value = paid_session_for(test_application, TEST_PAYMENT_INTENT_ID)

        result = await payment_service.settle_payment("cs_test_a1B2c3D4", test_student)

        assert result.success is True
        assert await _payment_count(db_session, TEST_PAYMENT_INTENT_ID) == 1

    async def test_settle_rejected_application_conflict(
        self,
        payment_service: PaymentService,
        mock_payment_gateway: PaymentGateway,
        db_session: AsyncSession,
        test_student: db_models.Users,
        test_tuition: db_models.Tuitions,
        test_other_tutor_user: db_models.Users
    ):
        rejected = factories.ApplicationFactory(
            tuition_id=test_tuition.id,
            tutor_email=test_other_tutor_user.email,
            status=ApplicationStatus.REJECTED.value
        )
        mock_payment_gateway.retrieve_session.return_value = paid_session_for(rejected, TEST_PAYMENT_INTENT_ID)

        with pytest.raises(ConflictError):
            await payment_service.settle_payment("cs_test_a1B2c3D4", test_student)
        assert await _payment_count(db_session, TEST_PAYMENT_INTENT_ID) == 0

    async def test_paid_session_without_intent(
        self,
        payment_service: PaymentService,
        mock_payment_gateway: PaymentGateway,
        test_student: db_models.Users,
        test_application: db_models.Applications
    ):
        session = paid_session_for(test_application, TEST_PAYMENT_INTENT_ID)
        session.payment_intent_id = None
        mock_payment_gateway.retrieve_session.return_value = session

        with pytest.raises(UpstreamFailureError):
            await payment_service.settle_payment("cs_test_a1B2c3D4", test_student)

    async def test_gateway_failure_propagates(
        self,
        payment_service: PaymentService,
        mock_payment_gateway: PaymentGateway,
        test_student: db_models.Users
    ):
        mock_payment_gateway.retrieve_session.side_effect = UpstreamFailureError()
        with pytest.raises(UpstreamFailureError) as e:
            await payment_service.settle_payment("cs_test_a1B2c3D4", test_student)
        assert e.value.status_code == 502

    async def test_settle_by_other_student_forbidden(
        self,
        payment_service: PaymentService,
        mock_payment_gateway: PaymentGateway,
        db_session: AsyncSession,
        test_other_student: db_models.Users,
        test_application: db_models.Applications
    ):
        mock_payment_gateway.retrieve_session.return_value = paid_session_for(test_application, TEST_PAYMENT_INTENT_ID)
        with pytest.raises(ForbiddenError):
            await payment_service.settle_payment("cs_test_a1B2c3D4", test_other_student)
        assert await _payment_count(db_session, TEST_PAYMENT_INTENT_ID) == 0

    async def test_concurrent_settlement_returns_winner(
        self,
        async_session_factory: async_sessionmaker[AsyncSession],
        mock_payment_gateway: PaymentGateway,
        test_student: db_models.Users,
        test_application: db_models.Applications,
        mocker
    ):
        """
        The losing settlement passed its duplicate check before the winner
        committed; the unique transaction id makes it fall back to the
        stored record.
        """
        mock_payment_gateway.retrieve_session.return_value = paid_session_for(test_application, TEST_PAYMENT_INTENT_ID)

        async with async_session_factory() as session_a:
            winner = await _payment_service_for(session_a, mock_payment_gateway).settle_payment("cs_test_a1B2c3D4", test_student)
            await session_a.commit()

        async with async_session_factory() as session_b:
            loser_service = _payment_service_for(session_b, mock_payment_gateway)
            real_lookup = loser_service._get_payment_by_transaction_id
            lookups = []

            async def racing_lookup(transaction_id: str):
                lookups.append(transaction_id)
                if len(lookups) == 1:
                    return None
                return await real_lookup(transaction_id)

            mocker.patch.object(loser_service, "_get_payment_by_transaction_id", side_effect=racing_lookup)
            loser = await loser_service.settle_payment("cs_test_a1B2c3D4", test_student)
            await session_b.commit()

        assert winner.already_recorded is False
        assert loser.success is True
        assert loser.already_recorded is True
        assert len(lookups) == 2

        async with async_session_factory() as check:
            assert await _payment_count(check, TEST_PAYMENT_INTENT_ID) == 1

    async def test_concurrent_settlement_both_read_pending(
        self,
        async_session_factory: async_sessionmaker[AsyncSession],
        mock_payment_gateway: PaymentGateway,
        test_student: db_models.Users,
        test_application: db_models.Applications,
        test_rival_application: db_models.Applications,
        mocker
    ):
        """
        Both settlements read the application as pending before either
        committed. The second one loses the tuition claim and must still
        return the stored record instead of a conflict.
        """
        mock_payment_gateway.retrieve_session.return_value = paid_session_for(test_application, TEST_PAYMENT_INTENT_ID)

        async with async_session_factory() as session_a, async_session_factory() as session_b:
            winner_service = _payment_service_for(session_a, mock_payment_gateway)
            loser_service = _payment_service_for(session_b, mock_payment_gateway)

            # the loser's view of the application is taken before the winner commits
            stale = await loser_service.application_service.get_application_by_id_internal(test_application.id)
            assert stale.status == ApplicationStatus.PENDING.value

            real_lookup = loser_service._get_payment_by_transaction_id
            lookups = []

            async def racing_lookup(transaction_id: str):
                lookups.append(transaction_id)
                if len(lookups) == 1:
                    return None
                return await real_lookup(transaction_id)

            mocker.patch.object(loser_service, "_get_payment_by_transaction_id", side_effect=racing_lookup)

            winner = await winner_service.settle_payment("cs_test_a1B2c3D4", test_student)
            await session_a.commit()

            loser = await loser_service.settle_payment("cs_test_a1B2c3D4", test_student)
            await session_b.commit()

        assert winner.already_recorded is False
        assert loser.success is True
        assert loser.already_recorded is True
        assert loser.transaction_id == TEST_PAYMENT_INTENT_ID
        assert loser.tutor_name == winner.tutor_name
        assert len(lookups) == 2

        async with async_session_factory() as check:
            assert await _payment_count(check, TEST_PAYMENT_INTENT_ID) == 1
            tuition = await check.get(db_models.Tuitions, test_application.tuition_id)
            approved = await check.get(db_models.Applications, test_application.id)
            rival = await check.get(db_models.Applications, test_rival_application.id)
        assert tuition.status == TuitionStatus.ASSIGNED.value
        assert approved.status == ApplicationStatus.APPROVED.value
        assert rival.status == ApplicationStatus.REJECTED.value


@pytest.mark.anyio
class TestListPayments:

    @pytest.fixture
    def seeded_payments(
        self,
        test_student: db_models.Users,
        test_other_student: db_models.Users,
        test_tutor_user: db_models.Users,
        test_other_tutor_user: db_models.Users
    ) -> list[db_models.Payments]:
        return [
            factories.PaymentFactory(
                application_id=uuid4(), tuition_id=uuid4(),
                student_email=test_student.email, tutor_email=test_tutor_user.email
            ),
            factories.PaymentFactory(
                application_id=uuid4(), tuition_id=uuid4(),
                student_email=test_other_student.email, tutor_email=test_other_tutor_user.email
            ),
        ]

    async def test_student_sees_own(
        self,
        payment_service: PaymentService,
        test_student: db_models.Users,
        seeded_payments: list[db_models.Payments]
    ):
        payments = await payment_service.list_payments(test_student)
        assert [p.id for p in payments] == [seeded_payments[0].id]

    async def test_tutor_sees_received(
        self,
        payment_service: PaymentService,
        test_other_tutor_user: db_models.Users,
        seeded_payments: list[db_models.Payments]
    ):
        payments = await payment_service.list_payments(test_other_tutor_user)
        assert [p.id for p in payments] == [seeded_payments[1].id]

    async def test_admin_sees_all(
        self,
        payment_service: PaymentService,
        test_admin: db_models.Users,
        seeded_payments: list[db_models.Payments]
    ):
        payments = await payment_service.list_payments(test_admin)
        assert {p.id for p in payments} == {p.id for p in seeded_payments}
