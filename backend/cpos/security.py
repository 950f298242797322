"""Bearer token handling that identifies the actor behind each request."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

TOKEN_SECRET_ENV = "POS_TOKEN_SECRET"
TOKEN_EXPIRE_MINUTES_ENV = "POS_TOKEN_EXPIRE_MINUTES"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class SecurityConfigurationError(RuntimeError):
    """Raised when mandatory security settings are missing or invalid."""


@dataclass(frozen=True)
class ActorIdentity:
    """The user on whose behalf sales and stock changes are recorded."""

    id: str
    role: str


@lru_cache(maxsize=1)
def _load_token_key() -> bytes:
    raw_secret = os.getenv(TOKEN_SECRET_ENV)
    if not raw_secret:
        raise SecurityConfigurationError(f"Environment variable '{TOKEN_SECRET_ENV}' is required")
    try:
        return base64.urlsafe_b64decode(raw_secret)
    except (ValueError, binascii.Error):
        return raw_secret.encode("utf-8")


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _unauthorized(detail: str = "Invalid token") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _encode_jwt(payload: dict[str, Any], key: bytes) -> str:
    header = {"typ": "JWT", "alg": "HS256"}
    header_b64 = _b64url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    signature = hmac.new(key, signing_input, hashlib.sha256).digest()
    return f"{header_b64}.{payload_b64}.{_b64url_encode(signature)}"


def _decode_jwt(token: str, key: bytes) -> dict[str, Any]:
    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
        signature = _b64url_decode(signature_b64)
    except (ValueError, binascii.Error) as exc:
        raise _unauthorized() from exc

    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    expected_signature = hmac.new(key, signing_input, hashlib.sha256).digest()
    if not hmac.compare_digest(signature, expected_signature):
        raise _unauthorized()

    try:
        payload_data = json.loads(_b64url_decode(payload_b64).decode("utf-8"))
    except (ValueError, binascii.Error) as exc:
        raise _unauthorized() from exc
    if not isinstance(payload_data, dict) or payload_data.get("exp") is None:
        raise _unauthorized()
    exp = int(payload_data["exp"])
    if datetime.now(timezone.utc) >= datetime.fromtimestamp(exp, tz=timezone.utc):
        raise _unauthorized("Token expired")
    return payload_data


def _resolve_access_token_expiry() -> timedelta:
    raw = os.getenv(TOKEN_EXPIRE_MINUTES_ENV)
    if not raw:
        return timedelta(minutes=30)
    try:
        minutes = int(raw)
    except ValueError as exc:
        raise SecurityConfigurationError(f"{TOKEN_EXPIRE_MINUTES_ENV} must be an integer") from exc
    if minutes <= 0:
        raise SecurityConfigurationError(f"{TOKEN_EXPIRE_MINUTES_ENV} must be positive")
    return timedelta(minutes=minutes)


def create_access_token(identity: ActorIdentity) -> str:
    expiry = datetime.now(timezone.utc) + _resolve_access_token_expiry()
    payload: dict[str, Any] = {
        "sub": identity.id,
        "role": identity.role,
        "exp": int(expiry.timestamp()),
    }
    return _encode_jwt(payload, _load_token_key())


def get_current_actor(token: str = Depends(oauth2_scheme)) -> ActorIdentity:
    payload = _decode_jwt(token, _load_token_key())
    actor_id = payload.get("sub")
    role = payload.get("role")
    if not isinstance(actor_id, str) or not actor_id or not isinstance(role, str):
        raise _unauthorized()
    return ActorIdentity(id=actor_id, role=role.lower())


def require_roles(*roles: str) -> Callable[..., ActorIdentity]:
    """FastAPI dependency factory restricting a route to the given roles."""

    allowed = {role.lower() for role in roles}

    def _dependency(actor: ActorIdentity = Depends(get_current_actor)) -> ActorIdentity:
        if allowed and actor.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return actor

    return _dependency
