"""Credential hashing and verifier selection."""

import logging

from passlib.context import CryptContext

from ..domain.production.services.verification_gate import (
    CredentialVerifier,
    HashedCredentialVerifier,
    PlaintextCredentialVerifier,
)
from .config import Settings, settings

logger = logging.getLogger(__name__)


def build_password_context(schemes: list[str]) -> CryptContext:
    """Hashing context; the first scheme hashes, every listed scheme verifies."""
    return CryptContext(schemes=schemes, deprecated="auto")


def build_credential_verifier(config: Settings | None = None) -> CredentialVerifier:
    """Verifier matching how the personnel registry stores credentials."""
    config = config or settings
    if config.CREDENTIAL_SCHEME == "hashed":
        return HashedCredentialVerifier(build_password_context(config.PASSWORD_SCHEMES))
    if config.ENVIRONMENT == "production":
        logger.warning("Personnel credentials are compared as plaintext")
    return PlaintextCredentialVerifier()


def hash_credential(credential: str, config: Settings | None = None) -> str:
    """Hash a credential for storage in the personnel registry."""
    config = config or settings
    return build_password_context(config.PASSWORD_SCHEMES).hash(credential)
