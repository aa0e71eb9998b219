# tradesphere/handlers/vendor_handlers.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from ..models.user import Principal
from ..services.vendor_service import VendorService
from .base_handler import get_vendor_service, require_vendor, success
from .schemas import DashboardStats, VendorOrderPage

router = APIRouter(prefix="/vendor", tags=["vendor"])


@router.get("/orders")
async def get_vendor_orders(status: Optional[str] = None,
                            payment_status: Optional[str] = Query(None, alias="paymentStatus"),
                            page: int = 1,
                            limit: int = 20,
                            principal: Principal = Depends(require_vendor),
                            vendors: VendorService = Depends(get_vendor_service)):
    """Orders for the calling vendor, filterable by status and payment status"""
    result = await vendors.list_vendor_orders(
        principal, status=status, payment_status=payment_status, page=page, limit=limit
    )
    return success(VendorOrderPage(**result).to_api())


@router.get("/dashboard")
async def get_dashboard(principal: Principal = Depends(require_vendor),
                        vendors: VendorService = Depends(get_vendor_service)):
    stats = await vendors.get_dashboard(principal)
    return success(DashboardStats(**stats).to_api())
