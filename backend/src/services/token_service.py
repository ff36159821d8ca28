"""Issue and verify signed identity tokens (JWT, HS256)."""
import logging
from datetime import UTC, datetime, timedelta
from typing import Literal

import jwt

from core.config import Settings
from schemas.token import TokenClaim, TokenPair
from services.exceptions import InvalidOrExpiredTokenError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

TokenType = Literal["access", "refresh"]


def _encode(claim: TokenClaim, token_type: TokenType, lifetime: timedelta, settings: Settings) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": str(claim.user_id),
        "username": claim.username,
        "email": claim.email,
        "type": token_type,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def _claim_from_payload(payload: dict) -> TokenClaim:
    return TokenClaim(
        user_id=int(payload["sub"]),
        username=payload["username"],
        email=payload["email"],
    )


def issue_token_pair(claim: TokenClaim, settings: Settings) -> TokenPair:
    """
    Issue an access token and a refresh token for the same claim.

    Both share the signing secret and issuer/audience; only lifetime and the
    `type` claim differ.
    """
    return TokenPair(
        access_token=_encode(
            claim, "access", timedelta(minutes=settings.jwt_access_expire_minutes), settings,
        ),
        refresh_token=_encode(
            claim, "refresh", timedelta(days=settings.jwt_refresh_expire_days), settings,
        ),
    )


def verify_token(
    token: str,
    settings: Settings,
    token_type: TokenType = "access",
) -> TokenClaim:
    """
    Verify signature, issuer, audience, expiry and token type.

    Raises:
        InvalidOrExpiredTokenError: For any reason the token can't be trusted.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iss", "aud", "sub"]},
        )
        if payload.get("type") != token_type:
            raise InvalidOrExpiredTokenError()
        return _claim_from_payload(payload)
    except jwt.PyJWTError as e:
        logger.debug("Token verification failed: %s", e)
        raise InvalidOrExpiredTokenError() from e
    except (KeyError, TypeError, ValueError) as e:
        logger.debug("Malformed token payload: %s", e)
        raise InvalidOrExpiredTokenError() from e


def decode_token(token: str) -> TokenClaim | None:
    """
    Return the embedded claim without checking signature or expiry.

    For non-trust-critical inspection only. Returns None on malformed input.
    """
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
        return _claim_from_payload(payload)
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        return None
