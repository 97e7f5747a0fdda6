'''
Adapter for the hosted checkout provider (Stripe Checkout REST API).
'''
from typing import Optional

import httpx

from ..common.config import settings
from ..common.exceptions import UpstreamFailureError
from ..common.logger import log
from ..models.payment import CheckoutSessionCreated, CheckoutSessionInfo


class PaymentGateway:
    """
    Creates checkout sessions and reports their payment state.
    Uses the Stripe REST API directly over httpx.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY
        self.api_base = (api_base or settings.STRIPE_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.STRIPE_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_base,
            auth=(self.secret_key, ""),
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _encode_session_form(
        amount_minor: int,
        currency: str,
        customer_email: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        product_name: str,
    ) -> dict[str, str]:
        """Flattens the session parameters into Stripe's bracketed form encoding."""
        form = {
            "mode": "payment",
            "customer_email": customer_email,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "line_items[0][quantity]": "1",
            "line_items[0][price_data][currency]": currency,
            "line_items[0][price_data][unit_amount]": str(amount_minor),
            "line_items[0][price_data][product_data][name]": product_name,
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)
        return form

    async def create_session(
        self,
        amount_minor: int,
        currency: str,
        customer_email: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        product_name: str,
    ) -> CheckoutSessionCreated:
        """
        Creates a hosted checkout session and returns its redirect URL.
        """
        log.info(f"Creating checkout session for {customer_email}: {amount_minor} {currency}")
        form = self._encode_session_form(
            amount_minor, currency, customer_email, metadata, success_url, cancel_url, product_name
        )
        data = await self._request("POST", "/checkout/sessions", data=form)
        try:
            return CheckoutSessionCreated(url=data["url"], session_id=data["id"])
        except KeyError as e:
            log.error(f"Checkout session response is missing {e}: {data}")
            raise UpstreamFailureError("The payment provider returned an unexpected response.")

    async def retrieve_session(self, session_id: str) -> CheckoutSessionInfo:
        """
        Fetches a checkout session and reports its payment state.
        """
        log.info(f"Retrieving checkout session {session_id}")
        data = await self._request("GET", f"/checkout/sessions/{session_id}")

        if "id" not in data:
            log.error(f"Checkout session response is missing an id: {data}")
            raise UpstreamFailureError("The payment provider returned an unexpected response.")

        payment_intent = data.get("payment_intent")
        if isinstance(payment_intent, dict):
            payment_intent = payment_intent.get("id")

        return CheckoutSessionInfo(
            session_id=data["id"],
            payment_status=data.get("payment_status") or "unpaid",
            payment_intent_id=payment_intent,
            amount_total=data.get("amount_total"),
            currency=data.get("currency"),
            customer_email=data.get("customer_email") or (data.get("customer_details") or {}).get("email"),
            metadata=data.get("metadata") or {},
        )

    async def _request(self, method: str, path: str, data: Optional[dict] = None) -> dict:
        try:
            async with self._client() as client:
                response = await client.request(method, path, data=data)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            log.error(f"Payment gateway returned an error for {method} {path}: {e.response.status_code} - {e.response.text}", exc_info=True)
            raise UpstreamFailureError("The payment provider rejected the request.")
        except httpx.RequestError as e:
            log.error(f"HTTP request to payment gateway failed for {method} {path}: {e}", exc_info=True)
            raise UpstreamFailureError()
        except ValueError as e:
            log.error(f"Unexpected payment gateway response for {method} {path}: {e}", exc_info=True)
            raise UpstreamFailureError("The payment provider returned an unexpected response.")


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning a gateway built from settings."""
    return PaymentGateway()
