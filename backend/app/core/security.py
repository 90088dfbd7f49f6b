"""Security dependencies, rate limiting and access logging"""
import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional

import jwt
import redis
from fastapi import Request

from app.core.config import settings
from app.core.exceptions import Unauthorized
from app.db.redis import check_rate_limit as redis_check_rate_limit

security_logger = logging.getLogger("security")
api_access_logger = logging.getLogger("api_access")


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract the raw token from an ``Authorization: Bearer <token>`` header"""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def verify_access_token(token: str) -> str:
    """Verify a Supabase access token and return the caller's user id (``sub``)

    Raises:
        Unauthorized: token invalid, expired, for another audience, or no secret configured
    """
    if not settings.SUPABASE_JWT_SECRET:
        security_logger.error("SUPABASE_JWT_SECRET not configured - rejecting bearer token")
        raise Unauthorized("Invalid authentication")

    try:
        claims = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Invalid authentication", details="Token expired")
    except jwt.InvalidTokenError as e:
        security_logger.warning(f"Bearer token rejected: {e}")
        raise Unauthorized("Invalid authentication")

    user_id = claims.get("sub")
    if not user_id:
        raise Unauthorized("Invalid authentication", details="Token has no subject")
    return str(user_id)


def require_auth(request: Request) -> str:
    """Dependency: Require a valid bearer token, return user_id"""
    token = get_bearer_token(request)
    if not token:
        raise Unauthorized("No authorization header")
    return verify_access_token(token)


def get_client_identifier(request: Request) -> str:
    """Get a unique identifier for rate limiting"""
    token = get_bearer_token(request)
    if token:
        # Never key Redis on the raw credential
        return f"token:{hashlib.sha256(token.encode()).hexdigest()[:32]}"

    # Fallback to IP address
    client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"


def check_rate_limit(identifier: str, strict: bool = False) -> bool:
    """Check if request is within rate limit

    Args:
        identifier: Client identifier (token hash or IP)
        strict: If True, use stricter rate limits for state-changing operations

    Returns:
        True if within limit, False if exceeded. Fails open when Redis is unreachable.
    """
    try:
        return redis_check_rate_limit(identifier, strict=strict)
    except redis.RedisError as e:
        security_logger.error(f"Rate limit check failed, allowing request: {e}")
        return True


def log_api_access(
    request: Request,
    status_code: int = 200,
    error: Optional[str] = None
):
    """Log detailed API access information"""
    client_ip = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    if not client_ip:
        client_ip = request.client.host if request.client else "unknown"

    log_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "method": request.method,
        "path": request.url.path,
        "query": str(request.url.query) if request.url.query else None,
        "authenticated": get_bearer_token(request) is not None,
        "client_ip": client_ip,
        "user_agent": request.headers.get("User-Agent", "unknown"),
        "origin": request.headers.get("Origin", "none"),
        "status_code": status_code,
        "error": error
    }

    if error or status_code >= 400:
        api_access_logger.warning(f"API Access: {json.dumps(log_data)}")
    else:
        api_access_logger.info(f"API Access: {json.dumps(log_data)}")
