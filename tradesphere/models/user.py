# tradesphere/models/user.py
from enum import Enum
from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"


class Principal(BaseModel):
    """Authenticated caller, resolved per request"""
    id: str
    role: Role = Role.CUSTOMER

    model_config = ConfigDict(frozen=True)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role in (Role.VENDOR, Role.ADMIN)
