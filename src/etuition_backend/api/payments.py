'''
API endpoints for tutor checkout and payment settlement.
'''
from typing import Annotated
from fastapi import APIRouter, Depends, Query

from ..database import models as db_models
from ..models import payment as payment_models
from ..services.security import verify_token_and_get_user
from ..services.payment_service import PaymentService


class PaymentsAPI:
    """
    A class to encapsulate the checkout, settlement and payment history endpoints.
    """
    def __init__(self):
        self.router = APIRouter(tags=["Payments"])
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/create-tutor-checkout-session",
                self.create_checkout_session,
                methods=["POST"],
                response_model=payment_models.CheckoutSessionRead)
        self.router.add_api_route(
                "/tutor-payment-success",
                self.payment_success,
                methods=["PATCH"],
                response_model=payment_models.SettlementResult)
        self.router.add_api_route(
                "/payments",
                self.list_payments,
                methods=["GET"],
                response_model=list[payment_models.PaymentRead])

    async def create_checkout_session(
        self,
        checkout_data: payment_models.CheckoutSessionCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ):
        """
        Starts a hosted checkout to hire the tutor of a pending application.
        The response `url` is where the client should redirect.
        """
        return await payment_service.create_checkout_session(checkout_data, current_user)

    async def payment_success(
        self,
        session_id: Annotated[str, Query(min_length=1)],
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ):
        """
        Settles a checkout session. Safe to call repeatedly for the same session.
        """
        return await payment_service.settle_payment(session_id, current_user)

    async def list_payments(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        payment_service: Annotated[PaymentService, Depends(PaymentService)]
    ):
        return await payment_service.list_payments(current_user)


payments_api = PaymentsAPI()
router = payments_api.router
