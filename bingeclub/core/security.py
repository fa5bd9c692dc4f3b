# Bearer-token verification and the auth dependencies
# bingeclub/core/security.py

import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol

from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from bingeclub.core.config import get_settings
from bingeclub.core.errors import ApiError
from bingeclub.models.identity import Identity

logger = logging.getLogger(__name__)

# Scheme for extracting "Bearer <token>" from Authorization header
# auto_error=False means we handle the error manually if token is missing/malformed
token_bearer_scheme = HTTPBearer(auto_error=False)


# --- Exceptions ---
class TokenVerificationError(Exception):
    """Raised by a TokenVerifier when a credential cannot be accepted."""
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class CredentialsException(ApiError):
    def __init__(self, error: str = "Invalid token.", message: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error=error,
            message=message,
            headers={"WWW-Authenticate": "Bearer"},
        )


class MissingTokenException(CredentialsException):
    def __init__(self):
        super().__init__(error="Access denied. No token provided.")


# --- Verifiers ---
class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Identity:
        ...


class JwtTokenVerifier:
    """
    Verifies Supabase-issued JWTs with the project's shared secret and maps
    the claims onto an Identity.
    """
    def __init__(self, secret: str, algorithm: str = "HS256", audience: Optional[str] = "authenticated",
                 issuer: Optional[str] = None):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience
        self.issuer = issuer

    def decode(self, token: str) -> Dict[str, Any]:
        return jwt.decode(
            token,
            self.secret,
            algorithms=[self.algorithm],
            audience=self.audience,
            issuer=self.issuer,
            options={
                "verify_signature": True,
                "verify_aud": self.audience is not None,
                "verify_exp": True,
                "verify_iss": self.issuer is not None,
            }
        )

    async def verify(self, token: str) -> Identity:
        """
        Raises:
            TokenVerificationError: expired token, bad claims, bad signature or
                a missing/non-string 'sub' claim.
        """
        try:
            payload = self.decode(token)
        except ExpiredSignatureError:
            raise TokenVerificationError("Token has expired")
        except JWTClaimsError as e:
            raise TokenVerificationError(f"Invalid token claims: {e}")
        except JWTError as e:
            raise TokenVerificationError(f"Invalid token: {e}")

        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise TokenVerificationError("User identifier not found in token")
        return Identity.from_claims(payload)


@lru_cache()
def get_token_verifier() -> TokenVerifier:
    """FastAPI dependency providing the process-wide verifier (override in tests)."""
    settings = get_settings()
    return JwtTokenVerifier(
        secret=settings.SUPABASE_JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
        audience=settings.JWT_AUDIENCE,
    )


# --- FastAPI Dependencies ---

async def require_identity(
    auth_credentials: Optional[HTTPAuthorizationCredentials] = Depends(token_bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Identity:
    """
    Authenticates the request and returns the caller's Identity.

    Raises:
        MissingTokenException: No `Authorization: Bearer <token>` header.
        CredentialsException: The verifier rejected the token (detail in `message`).
    """
    if auth_credentials is None or not auth_credentials.credentials:
        logger.warning("Authentication attempt failed: No token provided in Authorization header.")
        raise MissingTokenException()

    try:
        identity = await verifier.verify(auth_credentials.credentials)
    except TokenVerificationError as e:
        logger.warning(f"Authentication attempt failed: {e.detail}")
        raise CredentialsException(message=e.detail)
    except Exception as e:
        logger.error(f"Unexpected error during token verification: {e}", exc_info=True)
        raise CredentialsException(error="Authentication failed.", message=str(e))

    return identity


async def optional_identity(
    auth_credentials: Optional[HTTPAuthorizationCredentials] = Depends(token_bearer_scheme),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> Optional[Identity]:
    """
    Like `require_identity`, but a missing or rejected token yields None and
    leaves the decision to the handler.
    """
    if auth_credentials is None or not auth_credentials.credentials:
        return None
    try:
        return await verifier.verify(auth_credentials.credentials)
    except Exception as e:
        logger.warning(f"Optional authentication ignored an invalid token: {e}")
        return None
