"""Authentication against the external identity provider's bearer tokens."""
from typing import Optional
import os
import logging
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

# Configuration
SECRET_KEY = os.getenv("AUTH_JWT_SECRET", "your-secret-key-here-change-in-production")
ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE")


class TokenPayload(BaseModel):
    """Claims this service relies on."""
    sub: str  # subject (user id)
    exp: int  # expiration time
    email: Optional[str] = None


class AuthService:
    """Service class for decoding the provider's access tokens."""

    @staticmethod
    def decode_token(token: str) -> Optional[TokenPayload]:
        """Decode and validate a JWT token."""
        options = {"verify_aud": AUDIENCE is not None}
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], audience=AUDIENCE, options=options)
            return TokenPayload(**payload)
        except (JWTError, PydanticValidationError) as e:
            logger.info(f"Rejected access token: {e}")
            return None

    @staticmethod
    def get_user_id(token: Optional[str]) -> Optional[str]:
        """The signed-in user's id, or None when signed out."""
        if not token:
            return None
        payload = AuthService.decode_token(token)
        if payload is None or not payload.sub:
            return None
        return payload.sub
