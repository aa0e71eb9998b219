# tradesphere/utils/security.py
import hashlib
import hmac
import time
from typing import Optional
from ..config import Config
from ..models.user import Principal, Role


def _sign(message: str, secret_key: str) -> str:
    return hmac.new(
        secret_key.encode(),
        message.encode(),
        hashlib.sha256
    ).hexdigest()


def issue_access_token(user_id: str, role: Role, secret_key: Optional[str] = None,
                       issued_at: Optional[int] = None) -> str:
    """Issue a bearer token for a user"""
    if ":" in user_id:
        raise ValueError("user_id must not contain ':'")
    timestamp = int(time.time()) if issued_at is None else issued_at
    message = f"{user_id}:{Role(role).value}:{timestamp}"
    return f"{message}:{_sign(message, secret_key or Config.SECRET_KEY)}"


def verify_access_token(token: str, secret_key: Optional[str] = None,
                        ttl_seconds: Optional[int] = None) -> Optional[Principal]:
    """Resolve a bearer token to its principal, or None if it is not valid"""
    try:
        message, signature = token.rsplit(':', 1)
        user_id, role, timestamp = message.split(':')

        expected_signature = _sign(message, secret_key or Config.SECRET_KEY)
        if not hmac.compare_digest(signature, expected_signature):
            return None

        ttl = Config.TOKEN_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        if int(time.time()) - int(timestamp) > ttl:
            return None

        return Principal(id=user_id, role=Role(role))

    except ValueError:
        return None
