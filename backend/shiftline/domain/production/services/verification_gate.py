"""
Verification Gate

Challenges an actor for their employee number and credential before a guarded
transition. Credential comparison sits behind ``CredentialVerifier`` so stored
plaintext credentials and hashed ones can be checked the same way.
"""

import logging
import secrets
from abc import ABC, abstractmethod

from passlib.context import CryptContext

from ...shared.exceptions import VerificationFailed
from ..entities.reference import Personnel
from ..repositories.reference_registry import ReferenceRegistry
from ..value_objects.enums import Role

logger = logging.getLogger(__name__)


class CredentialVerifier(ABC):
    """Compares a supplied credential with the one held by the registry."""

    @abstractmethod
    def matches(self, supplied: str, stored: str) -> bool: ...


class PlaintextCredentialVerifier(CredentialVerifier):
    """Constant-time comparison against credentials stored as entered."""

    def matches(self, supplied: str, stored: str) -> bool:
        return secrets.compare_digest(supplied.encode("utf-8"), stored.encode("utf-8"))


class HashedCredentialVerifier(CredentialVerifier):
    """Verification against credentials stored as passlib hashes."""

    def __init__(self, context: CryptContext) -> None:
        self._context = context

    def matches(self, supplied: str, stored: str) -> bool:
        try:
            return self._context.verify(supplied, stored)
        except (ValueError, TypeError):
            # Stored value is not a hash this context understands.
            logger.warning("Stored credential could not be identified as a hash")
            return False

    def hash(self, credential: str) -> str:
        return self._context.hash(credential)


class VerificationGate:
    """
    Role and credential challenge used by every lifecycle before it writes.

    Only active personnel with a configured credential can pass; an inactive
    person or one without a credential never verifies, whatever is typed.
    """

    def __init__(
        self,
        registry: ReferenceRegistry,
        verifier: CredentialVerifier | None = None,
    ) -> None:
        """
        Initialize the gate.

        Args:
            registry: Personnel directory
            verifier: Credential comparison strategy (plaintext by default)
        """
        self._registry = registry
        self._verifier = verifier or PlaintextCredentialVerifier()

    async def authenticate(
        self, role: Role, identifier: str, credential: str
    ) -> Personnel | None:
        """
        Personnel matching employee number, role and credential.

        Returns:
            The matching person, or None when nobody matches
        """
        if not identifier or not credential:
            return None

        candidates = await self._registry.get_personnel(
            employee_number=identifier, role=role.value
        )
        for person in candidates:
            if person.role != role or not person.can_sign_off:
                continue
            if self._verifier.matches(credential, person.credential or ""):
                return person
        return None

    async def verify(self, role: Role, identifier: str, credential: str) -> bool:
        """Check a credential without raising on a mismatch."""
        return await self.authenticate(role, identifier, credential) is not None

    async def require(self, role: Role, identifier: str, credential: str) -> Personnel:
        """
        Authenticate or fail.

        Raises:
            VerificationFailed: If no active person with that role, employee
                number and credential exists
        """
        person = await self.authenticate(role, identifier, credential)
        if person is None:
            logger.info(
                "Verification failed for %s with employee number %s",
                role.value,
                identifier,
            )
            raise VerificationFailed(role.value, identifier)
        logger.debug("Verified %s %s", role.value, person.id)
        return person
