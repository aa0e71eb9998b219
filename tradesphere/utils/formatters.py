# tradesphere/utils/formatters.py
import secrets
from datetime import datetime
from decimal import Decimal
from typing import Optional
import pytz
from ..config import Config


def format_price(amount: Decimal) -> str:
    """Format an amount for log lines"""
    return f"{amount:,.2f}"


def to_shop_time(dt: datetime) -> datetime:
    """Convert to the shop timezone"""
    shop_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    return dt.astimezone(shop_tz)


def generate_order_number(created_at: datetime, suffix: Optional[str] = None) -> str:
    """Human readable order number, e.g. TS-20261019-4F09A2"""
    suffix = suffix or secrets.token_hex(3).upper()
    return f"TS-{to_shop_time(created_at):%Y%m%d}-{suffix}"
