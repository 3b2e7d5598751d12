import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from docassist.core.config import settings

# Token "role" claim carried by end users; anon and service-level keys carry others.
END_USER_CLAIM = "authenticated"
REJECTED_CLAIMS = frozenset({"anon", "service_role"})


def create_access_token(user_id: str, role_claim: str = END_USER_CLAIM,
                        expires_delta: Optional[timedelta] = None,
                        secret_key: Optional[str] = None) -> str:
    """
    Create a signed access token for a user.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    payload = {
        "sub": user_id,
        "role": role_claim,
        "exp": expire,
    }
    return jwt.encode(payload, secret_key or settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_jwt_token(token: str, secret_key: Optional[str] = None) -> Optional[dict]:
    """
    Verify a token and return its payload if valid
    """
    try:
        return jwt.decode(token, secret_key or settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def is_end_user_payload(payload: dict) -> bool:
    """True when the payload identifies a real end user rather than an anon or service key."""
    if not payload.get("sub"):
        return False
    role_claim = payload.get("role")
    if role_claim in REJECTED_CLAIMS:
        return False
    return role_claim == END_USER_CLAIM
