# app/utils/payment_gateway.py
import hashlib
import hmac
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount (e.g. rupees) to minor units (paise)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class RazorpayGateway:
    """Razorpay orders API client and payment signature verifier"""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    async def create_order(
        self,
        amount_minor_units: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Create an order at the gateway.

        Args:
            amount_minor_units: Amount in the currency's smallest unit
            currency: ISO currency code
            receipt: Merchant receipt reference (max 40 chars)
            notes: Free-form key/value notes stored with the order

        Returns:
            The gateway order (at least id, amount, currency)
        """
        body = {
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt[:40],
            "notes": {k: "" if v is None else str(v) for k, v in (notes or {}).items()},
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                auth=(self.key_id, self.key_secret),
                timeout=15,
                transport=self.transport,
            ) as client:
                response = await client.post("/orders", json=body)
                response.raise_for_status()
                order = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to create payment order (receipt {receipt}): {e}")
            raise UpstreamError("Failed to create payment order")

        logger.info(f"Payment order {order.get('id')} created for receipt {receipt}")
        return order

    def generate_signature(self, order_id: str, payment_id: str) -> str:
        return hmac.new(
            self.key_secret.encode("utf-8"),
            f"{order_id}|{payment_id}".encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Check HMAC-SHA256(secret, order_id|payment_id) against the supplied signature."""
        if not (order_id and payment_id and signature):
            return False
        expected = self.generate_signature(order_id, payment_id)
        return hmac.compare_digest(expected, signature)


# Create a singleton instance
payment_gateway = RazorpayGateway(
    key_id=settings.payment_key_id,
    key_secret=settings.payment_key_secret,
    base_url=settings.payment_api_url,
)
