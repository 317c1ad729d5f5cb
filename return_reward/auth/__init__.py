"""Identity session and token verification."""

from .identity import IdentityProvider, IdentitySession, JwtIdentityProvider, Principal

__all__ = ["IdentityProvider", "IdentitySession", "JwtIdentityProvider", "Principal"]
