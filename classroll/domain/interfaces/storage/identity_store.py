"""Identity store interface for persisting the registry."""
from abc import ABC, abstractmethod
from typing import List, Set

from ...entities.identity import Identity


class IdentityStore(ABC):
    """Interface for persisting enrolled identities."""

    @abstractmethod
    async def list_identities(self) -> List[Identity]:
        """
        Load every active identity in enrollment order.

        Raises:
            RegistryStorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def list_retired_ids(self) -> Set[str]:
        """
        Load the ids of removed identities.

        Raises:
            RegistryStorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def save_identity(self, identity: Identity) -> None:
        """
        Insert or replace an identity.

        Raises:
            RegistryStorageError: If the write fails; nothing is persisted
        """
        pass

    @abstractmethod
    async def retire_identity(self, identity_id: str) -> None:
        """
        Mark an identity as removed so its id is never reused.

        Raises:
            RegistryStorageError: If the write fails; nothing is persisted
        """
        pass
