# tradesphere/services/payment_service.py
import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote
import aiohttp
from ..config import Config
from ..database.protocols import Store
from ..errors import (
    AlreadyApprovedError,
    GatewayVerificationError,
    InvalidPaymentStateError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from ..models.order import PaymentStatus
from ..models.user import Principal


class PaymentService:
    """Reconciles payment status from the gateway, customers and vendors"""

    def __init__(self, db: Store, gateway: Optional["PaystackGateway"] = None):
        self.db = db
        self.gateway = gateway or PaystackGateway(
            Config.PAYSTACK_SECRET_KEY,
            Config.PAYSTACK_BASE_URL,
            Config.GATEWAY_TIMEOUT_SECONDS,
        )
        self.logger = logging.getLogger(__name__)

    async def verify_payment(self, reference: Optional[str]) -> Dict[str, Any]:
        """Confirm a card payment with the gateway.

        One reference can cover several vendor orders from the same checkout;
        all of them are marked paid. Approved orders are left alone. The
        gateway is called once, callers retry on failure.
        """
        if not reference or not reference.strip():
            raise ValidationError("Payment reference is required")
        reference = reference.strip()

        transaction = await self.gateway.verify_transaction(reference)

        async with self.db.session() as session:
            orders = await session.orders.mark_paid_by_reference(reference)

        self.logger.info(
            f"Payment {reference} verified, {len(orders)} order(s) marked paid"
        )
        return {
            "reference": reference,
            "orders": orders,
            "gateway": transaction,
        }

    async def confirm_bank_transfer(self, order_id: str, transfer_reference: Optional[str],
                                    principal: Principal):
        """Record the customer's bank transfer reference for vendor review.

        Can be repeated to correct a mistyped reference until the payment is
        approved.
        """
        if not transfer_reference or not transfer_reference.strip():
            raise ValidationError("Transfer reference is required")

        async with self.db.session() as session:
            order = await session.orders.get(order_id, for_update=True)
            if order is None:
                raise NotFoundError("Order", order_id)

            if order.customer_id != principal.id:
                self.logger.warning(
                    f"User {principal.id} tried to submit a transfer for order {order_id}"
                )
                raise NotAuthorizedError()

            if order.payment_status == PaymentStatus.APPROVED:
                raise AlreadyApprovedError()
            if order.payment_status == PaymentStatus.PAID:
                raise InvalidPaymentStateError("Payment already confirmed by the gateway")

            order.payment_reference = transfer_reference.strip()
            order.payment_status = PaymentStatus.PENDING
            order = await session.orders.update(order)

        self.logger.info(f"Transfer reference submitted for order {order_id}")
        return order

    async def approve_payment(self, order_id: str, principal: Principal):
        """Vendor or admin sign-off; approved is final"""
        async with self.db.session() as session:
            order = await session.orders.get(order_id, for_update=True)
            if order is None:
                raise NotFoundError("Order", order_id)

            if not order.is_managed_by(principal):
                self.logger.warning(
                    f"User {principal.id} tried to approve payment for order {order_id}"
                )
                raise NotAuthorizedError("Not authorized to approve this payment")

            if order.is_payment_approved:
                raise AlreadyApprovedError()

            previous = order.payment_status
            order.payment_status = PaymentStatus.APPROVED
            order = await session.orders.update(order)

        self.logger.info(
            f"Payment for order {order_id} approved by {principal.id} "
            f"(was {previous.value})"
        )
        return order


class PaystackGateway:
    def __init__(self, secret_key: str, base_url: str = "https://api.paystack.co",
                 timeout: float = 15):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    async def verify_transaction(self, reference: str) -> Dict[str, Any]:
        """Return the gateway's transaction data when its status is success"""
        url = f"{self.base_url}/transaction/verify/{quote(reference, safe='')}"
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.get(
                    url,
                    headers={"Authorization": f"Bearer {self.secret_key}"}
                ) as response:
                    if response.status >= 500:
                        self.logger.error(
                            f"Gateway returned {response.status} for {reference}"
                        )
                        raise GatewayVerificationError(
                            status_code=500, reference=reference
                        )
                    body = await response.json(content_type=None)

        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.error(f"Gateway verification of {reference} failed: {e}")
            raise GatewayVerificationError(status_code=500, reference=reference) from e

        if not isinstance(body, dict):
            self.logger.error(f"Unexpected gateway response for {reference}")
            raise GatewayVerificationError(status_code=500, reference=reference)

        data = body.get("data")
        if not isinstance(data, dict) or data.get("status") != "success":
            self.logger.warning(f"Gateway did not confirm {reference}")
            raise GatewayVerificationError(status_code=400, reference=reference)

        return data
