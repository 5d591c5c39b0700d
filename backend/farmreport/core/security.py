# farmreport/core/security.py
"""
Bearer-token handling.

Tokens are issued by the farm backend at login; this service only verifies
them and turns their claims into an explicit Principal that is passed down to
the permission matrix.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError

from farmreport.config import get_settings
from farmreport.services.permissions import Role, can_access_all_farms, parse_role

bearer = HTTPBearer()


@dataclass(frozen=True)
class Principal:
    username: str
    role: Role
    farm_id: Optional[int] = None
    farm_ids: Tuple[int, ...] = field(default_factory=tuple)
    all_farms_mode: bool = False
    token: Optional[str] = None

    @property
    def assigned_farm_ids(self) -> Tuple[int, ...]:
        ids = list(self.farm_ids)
        if self.farm_id is not None and self.farm_id not in ids:
            ids.append(self.farm_id)
        return tuple(ids)

    @property
    def sees_all_farms(self) -> bool:
        """All-farms mode only counts for roles allowed to read every farm."""
        return self.all_farms_mode and can_access_all_farms(self.role)

    def resolve_farm(self, requested: Optional[int]) -> Optional[int]:
        """Farm the request is scoped to: the requested one, else the session's selected farm."""
        if requested is not None:
            return requested
        if self.sees_all_farms:
            return None
        if self.farm_id is None and len(self.farm_ids) == 1:
            return self.farm_ids[0]
        return self.farm_id


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)

def _ts(d: dt.datetime) -> int:
    if d.tzinfo is None:
        d = d.replace(tzinfo=dt.timezone.utc)
    else:
        d = d.astimezone(dt.timezone.utc)
    return int(d.timestamp())

def create_access(
    sub: str,
    role: str,
    *,
    farm_id: Optional[int] = None,
    farm_ids: Iterable[int] = (),
    all_farms_mode: bool = False,
    minutes: Optional[int] = None,
) -> str:
    """Mint a token with the same claims the farm backend puts in its access tokens."""
    settings = get_settings()
    now = _utc_now()
    exp_dt = now + dt.timedelta(minutes=minutes if minutes is not None else settings.JWT_ACCESS_MIN)
    payload = {
        "sub": sub,
        "typ": "access",
        "role": role,
        "farmId": farm_id,
        "farmIds": list(farm_ids),
        "allFarmsMode": all_farms_mode,
        "iat": _ts(now),
        "exp": _ts(exp_dt),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def decode_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError as e:
        raise ValueError(str(e))

def principal_from_claims(claims: dict, token: Optional[str] = None) -> Principal:
    if claims.get("typ", "access") != "access":
        raise ValueError("Not an access token")
    username = claims.get("sub")
    if not username:
        raise ValueError("Missing subject")
    role = parse_role(claims.get("role") or claims.get("selectedRole"))
    if role is None:
        raise ValueError("Missing or unknown role")

    farm_id = claims.get("farmId", claims.get("selectedFarmId"))
    farm_ids = tuple(int(f) for f in (claims.get("farmIds") or []) if f is not None)
    return Principal(
        username=str(username),
        role=role,
        farm_id=int(farm_id) if farm_id is not None else None,
        farm_ids=farm_ids,
        all_farms_mode=bool(claims.get("allFarmsMode", False)),
        token=token,
    )

async def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    FastAPI dependency that validates an access token and returns the caller's principal.

    The principal is kept on `request.state` and its role and farm are bound to
    the log context for the rest of the request.
    """
    try:
        claims = decode_token(creds.credentials)
        principal = principal_from_claims(claims, token=creds.credentials)
    except (ValueError, TypeError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    request.state.principal = principal
    structlog.contextvars.bind_contextvars(
        role=principal.role.value,
        farm_id=principal.farm_id,
        all_farms=principal.sees_all_farms,
    )
    return principal
