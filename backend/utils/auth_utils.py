from typing import Dict, List
import logging
import os

from fastapi import Depends, HTTPException, status, Request
from jose import jwt
from jose.exceptions import JWTError
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# === Auth service configuration ===
# Tokens are issued by the hosted auth service and signed with a shared secret.
AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET", "")
AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUTH_JWT_AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE", "authenticated")
# Claim that carries the caller's application role ("admin" / "user")
AUTH_ROLE_CLAIM = os.getenv("AUTH_ROLE_CLAIM", "user_role")


def get_current_user(request: Request) -> Dict[str, any]:
    """
    FastAPI dependency to validate the bearer JWT from the Authorization header.

    Usage:
        @app.get("/secure-data", dependencies=[Depends(get_current_user)])
        def secure_endpoint():
            return {"message": "This is secure data."}
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is missing",
        )

    # The token is expected to be in the format "Bearer <token>"
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )

    if not AUTH_JWT_SECRET:
        logger.error("AUTH_JWT_SECRET is not configured; rejecting request")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Token validation is not configured on the server.",
        )

    try:
        payload = jwt.decode(
            parts[1],
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE,
        )
        return payload
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired"
        )
    except jwt.JWTClaimsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token claims: {e}"
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token validation failed: {e}"
        )


def get_user_identifier(user: dict) -> str:
    """Stable, human-readable identifier for audit columns and log lines."""
    if not user:
        return "system"
    return user.get("email") or user.get("sub") or "unknown"


def get_user_role(user: dict) -> str:
    if not user:
        return ""
    role = user.get(AUTH_ROLE_CLAIM)
    if role is None:
        role = (user.get("app_metadata") or {}).get("role", "")
    return str(role).lower()


def require_role(roles: List[str]):
    """
    Dependency factory that re-checks the caller's role claim.

    Used on bulk and destructive operations (ledger initialization, backfill,
    backup restore) regardless of what the client UI already enforced.
    """
    allowed = {r.lower() for r in roles}

    def _checker(user: dict = Depends(get_current_user)) -> dict:
        if get_user_role(user) not in allowed:
            logger.warning(f"User {get_user_identifier(user)} denied; requires one of {sorted(allowed)}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to perform this action",
            )
        return user

    return _checker
