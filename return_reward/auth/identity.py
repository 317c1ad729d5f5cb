"""JWT identity verification and the per-session identity state."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
import logging
import uuid

from jose import JWTError, jwt

from return_reward.errors import StoreUnavailable
from return_reward.utils.clock import utc_now

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = 7


@dataclass(frozen=True)
class Principal:
    """An authenticated identity as issued by the identity provider."""
    user_id: str
    email: Optional[str] = None
    anonymous: bool = False


class IdentityProvider(ABC):
    """Resolves opaque credentials to a principal."""

    @abstractmethod
    def resolve(self, token: Optional[str]) -> Principal:
        """
        Resolve a credential.

        Args:
            token: Bearer token, or None for an anonymous session

        Raises:
            StoreUnavailable: If the credential is invalid or expired
        """


class JwtIdentityProvider(IdentityProvider):
    """Verifies HS256 tokens whose `sub` claim is the principal."""

    def __init__(self, secret: str, allow_anonymous: bool = True):
        self.secret = secret
        self.allow_anonymous = allow_anonymous

    def resolve(self, token: Optional[str]) -> Principal:
        if not token:
            if not self.allow_anonymous:
                raise StoreUnavailable("sign in", message="Sign-in requires a token.")
            principal = Principal(user_id=anonymous_principal(), anonymous=True)
            logger.info(f"Anonymous session started: {principal.user_id}")
            return principal

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError as e:
            logger.warning("Token expired")
            raise StoreUnavailable("sign in", e, "Your session has expired. Please sign in again.")
        except JWTError as e:
            logger.error(f"JWT decode error: {str(e)}")
            raise StoreUnavailable("sign in", e, "Failed to sign in. Please try again.")

        user_id = payload.get("sub")
        if not user_id:
            raise StoreUnavailable("sign in", message="Invalid token: missing user ID")

        return Principal(user_id=user_id, email=payload.get("email"))

    def issue_token(self, user_id: str, email: Optional[str] = None, expires: Optional[timedelta] = None) -> str:
        """Issue a token for development and tests; production tokens come from the identity provider."""
        now = utc_now()
        payload = {
            "sub": user_id,
            "iat": now,
            "exp": now + (expires if expires is not None else timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)),
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)


def anonymous_principal() -> str:
    return f"anon-{uuid.uuid4().hex}"


class IdentitySession:
    """Tracks the authenticated principal of one interactive session."""

    def __init__(self, provider: IdentityProvider):
        self.provider = provider
        self.principal: Optional[Principal] = None
        self.ready = False

    @property
    def user_id(self) -> Optional[str]:
        return self.principal.user_id if self.principal else None

    def resolve(self, token: Optional[str]) -> Principal:
        """Resolve the token and remember the principal. Clears state on failure."""
        try:
            principal = self.provider.resolve(token)
        except StoreUnavailable:
            self.principal = None
            self.ready = True
            raise
        self.principal = principal
        self.ready = True
        return principal

    def clear(self) -> None:
        self.principal = None
