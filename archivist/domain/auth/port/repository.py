"""Repository port for owning identities."""

from abc import abstractmethod
from typing import Protocol

from archivist.domain.auth.model.value import UserId
from archivist.domain.shared.port import Port


class UserRepository(Port, Protocol):
    """Registry of identities that can own records."""

    @abstractmethod
    async def ensure(self, user_id: UserId) -> None:
        """Register the user if unknown. Idempotent."""
        ...

    @abstractmethod
    async def delete(self, user_id: UserId) -> bool:
        """Delete the user and, by cascade, every record they own.

        Returns False if the user was unknown.
        """
        ...
