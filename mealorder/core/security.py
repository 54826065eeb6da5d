"""Caller identity supplied by the upstream auth gateway.

Token issuance and verification happen in front of this service; the gateway
forwards the verified identity in trusted ``X-User-*`` headers. Every service
call receives the resulting :class:`Caller` explicitly.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from mealorder.core.errors import ForbiddenError


class Role(str, Enum):
    CUSTOMER = "customer"
    MERCHANT = "merchant"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: Role
    name: str = ""
    phone: Optional[str] = None
    approved: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def require_role(caller: Caller, *roles: Role) -> Caller:
    """Raises ForbiddenError unless the caller has one of ``roles``.

    Merchants must additionally be approved.
    """
    if caller.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        raise ForbiddenError(f"Access denied. Required role: {allowed}")
    if caller.role == Role.MERCHANT and not caller.approved:
        raise ForbiddenError("Merchant account pending approval")
    return caller


async def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_phone: Optional[str] = Header(None),
    x_user_approved: Optional[str] = Header(None),
) -> Caller:
    """Builds the Caller from gateway headers; 401 when identity is missing."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access denied. No identity provided.")
    try:
        role = Role(x_user_role.lower())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown role.")

    approved = True
    if x_user_approved is not None:
        approved = x_user_approved.strip().lower() in ("1", "true", "yes")

    return Caller(
        user_id=x_user_id,
        role=role,
        name=x_user_name or "",
        phone=x_user_phone,
        approved=approved,
    )


def caller_with_role(*roles: Role):
    """Dependency factory: resolves the caller and enforces ``roles``."""
    async def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        return require_role(caller, *roles)
    return dependency
