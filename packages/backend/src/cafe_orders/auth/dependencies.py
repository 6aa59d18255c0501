"""FastAPI auth dependencies for staff routes."""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from cafe_orders.auth.jwt import TokenError, verify_token

STAFF_ROLES = frozenset({"staff", "admin"})


class StaffIdentity:
    """The staff member making the request."""

    def __init__(self, subject: str, role: str = "staff"):
        self.subject = subject
        self.role = role


async def get_staff_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[StaffIdentity]:
    """Decode a Bearer token if one is present; None otherwise."""
    if not authorization or not authorization.startswith("Bearer "):
        return None

    try:
        payload = verify_token(authorization[7:])
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not payload.get("sub"):
        raise HTTPException(
            status_code=401,
            detail="Token has no subject",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return StaffIdentity(subject=payload["sub"], role=payload.get("role", ""))


async def require_staff(
    identity: Optional[StaffIdentity] = Depends(get_staff_optional),
) -> StaffIdentity:
    """Require a valid staff token (401 if missing, 403 if wrong role)."""
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if identity.role not in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Staff access required")
    return identity
