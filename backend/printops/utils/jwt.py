"""JWT Token Validation for session-issued bearer tokens"""
import jwt
from typing import Any, Dict, Optional
from datetime import datetime, timedelta, timezone

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """
    Validates bearer tokens issued by the session service.

    Tokens are HMAC-signed and carry the actor identity:
    sub, email, name, roles[], departments[].
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None
    ):
        self._secret = secret or settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm
        self._audience = audience if audience is not None else settings.jwt_audience

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate JWT token

        Args:
            token: Bearer token (with or without 'Bearer ' prefix)

        Returns:
            Decoded token claims

        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                options={
                    "verify_exp": True,
                    "verify_aud": self._audience is not None,
                    "require": ["sub"],
                }
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidAudienceError as e:
            logger.warning(f"Invalid token audience: {e}")
            raise AuthenticationError("Invalid token audience")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def get_actor_context(self, token: str) -> ActorContext:
        """
        Extract actor context from validated token

        Args:
            token: Bearer token

        Returns:
            ActorContext with user information
        """
        claims = self.validate_token(token)

        user_id = str(claims.get("sub", "")).strip()
        email = claims.get("email") or ""
        if not user_id or not email:
            logger.warning(f"Token is missing identity claims. Available claims: {list(claims.keys())}")
            raise AuthenticationError("Unable to determine user identity from token")

        roles = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        departments = claims.get("departments") or []
        if isinstance(departments, str):
            departments = [departments]

        return ActorContext(
            user_id=user_id,
            email=email,
            display_name=claims.get("name") or email,
            roles=[str(r).lower() for r in roles],
            departments=[str(d).strip().lower() for d in departments if str(d).strip()]
        )

    def issue_token(self, actor: ActorContext, expires_in_minutes: int = 60) -> str:
        """Issue a token for an actor (used by scripts and tests)"""
        now = datetime.now(timezone.utc)
        claims: Dict[str, Any] = {
            "sub": actor.user_id,
            "email": actor.email,
            "name": actor.display_name,
            "roles": actor.roles,
            "departments": actor.departments,
            "iat": now,
            "exp": now + timedelta(minutes=expires_in_minutes),
        }
        if self._audience:
            claims["aud"] = self._audience
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """
    Get current user from authorization header

    Args:
        authorization: Authorization header value

    Returns:
        ActorContext
    """
    if not authorization:
        raise AuthenticationError("Authorization header is missing")

    validator = get_jwt_validator()
    return validator.get_actor_context(authorization)
