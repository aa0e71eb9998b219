# tradesphere/handlers/base_handler.py
from typing import Any, Optional
from fastapi import Depends, Header, Request
from fastapi.responses import JSONResponse
from ..errors import NotAuthenticatedError, NotAuthorizedError
from ..models.user import Principal
from ..services.fulfillment_service import FulfillmentService
from ..services.order_service import OrderService
from ..services.payment_service import PaymentService
from ..services.vendor_service import VendorService
from ..utils.messages import Messages
from ..utils.security import verify_access_token


def success(data: Any = None, message: Optional[str] = None,
            status_code: int = 200) -> JSONResponse:
    """Uniform success envelope"""
    content = {"success": True}
    if message:
        content["message"] = message
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=status_code, content=content)


def failure(message: str, status_code: int) -> JSONResponse:
    """Uniform failure envelope"""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


async def get_principal(request: Request,
                        authorization: Optional[str] = Header(None)) -> Principal:
    """Resolve the bearer token into the calling principal"""
    if not authorization or not authorization.startswith("Bearer "):
        raise NotAuthenticatedError()

    principal = verify_access_token(
        authorization[len("Bearer "):].strip(),
        secret_key=request.app.state.secret_key,
    )
    if principal is None:
        raise NotAuthenticatedError("Not authorized, token failed")
    return principal


async def require_vendor(principal: Principal = Depends(get_principal)) -> Principal:
    """Vendors and admins only"""
    if not principal.is_vendor:
        raise NotAuthorizedError(Messages.VENDOR_REQUIRED)
    return principal


def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service


def get_fulfillment_service(request: Request) -> FulfillmentService:
    return request.app.state.fulfillment_service


def get_vendor_service(request: Request) -> VendorService:
    return request.app.state.vendor_service
