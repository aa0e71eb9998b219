# tradesphere/handlers/order_handlers.py
from fastapi import APIRouter, Depends
from ..models.user import Principal
from ..services.fulfillment_service import FulfillmentService
from ..services.order_service import OrderService
from ..services.payment_service import PaymentService
from ..utils.messages import Messages
from .base_handler import (
    get_fulfillment_service,
    get_order_service,
    get_payment_service,
    get_principal,
    require_vendor,
    success,
)
from .schemas import (
    ConfirmTransferRequest,
    PaymentVerification,
    PlaceOrderRequest,
    UpdateStatusRequest,
    VerifyPaymentRequest,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("")
async def create_order(payload: PlaceOrderRequest,
                       principal: Principal = Depends(get_principal),
                       orders: OrderService = Depends(get_order_service)):
    """Place the caller's cart, one order per vendor"""
    placed = await orders.place_order(
        principal,
        shipping_address=payload.shipping_address,
        phone=payload.phone,
        payment_method=payload.payment_method,
        payment_reference=payload.payment_reference,
    )
    return success([o.to_api() for o in placed], Messages.ORDER_PLACED, status_code=201)


@router.post("/verify-payment")
async def verify_payment(payload: VerifyPaymentRequest,
                         principal: Principal = Depends(get_principal),
                         payments: PaymentService = Depends(get_payment_service)):
    result = await payments.verify_payment(payload.reference)
    return success(PaymentVerification(**result).to_api(), Messages.PAYMENT_VERIFIED)


@router.get("")
async def get_my_orders(principal: Principal = Depends(get_principal),
                        orders: OrderService = Depends(get_order_service)):
    return success([o.to_api() for o in await orders.get_my_orders(principal)])


@router.get("/{order_id}")
async def get_order(order_id: str,
                    principal: Principal = Depends(get_principal),
                    orders: OrderService = Depends(get_order_service)):
    order = await orders.get_order(order_id, principal)
    return success(order.to_api())


@router.put("/{order_id}/confirm-transfer")
async def confirm_bank_transfer(order_id: str, payload: ConfirmTransferRequest,
                                principal: Principal = Depends(get_principal),
                                payments: PaymentService = Depends(get_payment_service)):
    order = await payments.confirm_bank_transfer(
        order_id, payload.transfer_reference, principal
    )
    return success(order.to_api(), Messages.TRANSFER_SUBMITTED)


@router.put("/{order_id}/approve-payment")
async def approve_payment(order_id: str,
                          principal: Principal = Depends(require_vendor),
                          payments: PaymentService = Depends(get_payment_service)):
    order = await payments.approve_payment(order_id, principal)
    return success(order.to_api(), Messages.PAYMENT_APPROVED)


@router.put("/{order_id}/status")
async def update_order_status(order_id: str, payload: UpdateStatusRequest,
                              principal: Principal = Depends(require_vendor),
                              fulfillment: FulfillmentService = Depends(get_fulfillment_service)):
    order = await fulfillment.update_order_status(
        order_id, payload.status, principal, tracking_number=payload.tracking_number
    )
    return success(order.to_api(), Messages.STATUS_UPDATED)
