from datetime import datetime, timezone
from typing import Optional
import logging

from jose import jwt, JWTError

logger = logging.getLogger(__name__)


# ===== JWT helpers =====
# The client never holds the signing secret, so claims are read unverified and
# only used for display and logging. The server stays the authority on validity.
def get_token_claims(token: Optional[str]) -> dict:
    if not token:
        return {}
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        logger.debug("Token is not a decodable JWT; treating it as opaque")
        return {}


def get_token_expiry(token: Optional[str]) -> Optional[datetime]:
    exp = get_token_claims(token).get("exp")
    if exp is None:
        return None
    try:
        return datetime.fromtimestamp(float(exp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def get_token_subject(token: Optional[str]) -> Optional[str]:
    claims = get_token_claims(token)
    subject = claims.get("sub") or claims.get("id") or claims.get("_id")
    return str(subject) if subject is not None else None


def is_token_expired(token: Optional[str], now: Optional[datetime] = None) -> bool:
    """True only when the token carries an ``exp`` claim in the past."""
    expiry = get_token_expiry(token)
    if expiry is None:
        return False
    return expiry <= (now or datetime.now(timezone.utc))
