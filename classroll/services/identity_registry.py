"""Process-wide registry of enrolled identities."""
import asyncio
import uuid
from typing import Dict, List, Optional, Set, Tuple

from classroll.core.exceptions import (
    EmbeddingDimensionError,
    IdentityNotFoundError,
    IdentityRetiredError,
    RegistryStorageError,
)
from classroll.core.logging import get_logger
from classroll.domain.entities.identity import Identity
from classroll.domain.interfaces.storage.identity_store import IdentityStore

logger = get_logger(__name__)


class IdentityRegistry:
    """Holds one embedding and metadata per enrolled identity.

    Readers never lock: the registry keeps its identities in a dict that is
    replaced wholesale on every mutation, so ``snapshot()`` sees either the
    state before or after a mutation, never a half-applied one. Mutations are
    serialized with an ``asyncio.Lock``.

    When an ``IdentityStore`` is configured every mutation is written to the
    store first; if the write fails the in-memory state is left untouched and
    ``RegistryStorageError`` propagates to the caller.

    Removed ids are retired and refused by later ``add`` calls.

    Example:
        ```python
        registry = IdentityRegistry(store=SqlIdentityStore(session_factory), embedding_dimension=512)
        await registry.load()
        await registry.add(Identity(id=registry.new_identity_id(), group_key="5A"))
        roster = registry.get_all(group_key="5A")
        ```
    """

    def __init__(
        self,
        store: Optional[IdentityStore] = None,
        embedding_dimension: Optional[int] = None,
    ) -> None:
        """Initialize an empty registry.

        Args:
            store: Optional persistence backend, written through on every mutation
            embedding_dimension: Required embedding length, checked on add/update
        """
        self._store = store
        self._embedding_dimension = embedding_dimension
        self._identities: Dict[str, Identity] = {}
        self._retired_ids: Set[str] = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._identities)

    def __contains__(self, identity_id: object) -> bool:
        return identity_id in self._identities

    async def load(self) -> int:
        """Replace the in-memory state with the contents of the store.

        Returns:
            Number of identities loaded
        """
        if self._store is None:
            return len(self._identities)

        async with self._lock:
            identities = await self._store.list_identities()
            retired = await self._store.list_retired_ids()
            for identity in identities:
                self._check_dimension(identity)
            self._identities = {identity.id: identity for identity in identities}
            self._retired_ids = set(retired)

        logger.info(
            "Identity registry loaded",
            identities=len(self._identities),
            retired=len(self._retired_ids),
        )
        return len(self._identities)

    def new_identity_id(self) -> str:
        """Generate an id that has never been used by this registry."""
        while True:
            identity_id = str(uuid.uuid4())
            if identity_id not in self._identities and identity_id not in self._retired_ids:
                return identity_id

    def is_retired(self, identity_id: str) -> bool:
        return identity_id in self._retired_ids

    def _check_dimension(self, identity: Identity) -> None:
        if (
            self._embedding_dimension is not None
            and identity.embedding is not None
            and identity.embedding.size != self._embedding_dimension
        ):
            raise EmbeddingDimensionError(
                f"Embedding of identity {identity.id} has dimension {identity.embedding.size}, "
                f"expected {self._embedding_dimension}",
                details={"identity_id": identity.id},
            )

    async def add(self, identity: Identity) -> Identity:
        """Add an identity, replacing in place any identity with the same id.

        Replacing keeps the identity's original insertion position, so the
        matcher's tie-break order is stable across re-enrollment.

        Raises:
            IdentityRetiredError: If the id belongs to a removed identity
            EmbeddingDimensionError: If the embedding has the wrong dimension
            RegistryStorageError: If the store write fails
        """
        self._check_dimension(identity)
        async with self._lock:
            if identity.id in self._retired_ids:
                raise IdentityRetiredError(
                    f"Identity id {identity.id} was removed and cannot be reused",
                    details={"identity_id": identity.id},
                )
            await self._write(identity)
            identities = dict(self._identities)
            identities[identity.id] = identity
            self._identities = identities

        logger.info(
            "Identity stored",
            identity_id=identity.id,
            group_key=identity.group_key,
            has_embedding=identity.has_embedding,
        )
        return identity

    async def update(self, identity: Identity) -> Identity:
        """Replace an existing identity.

        Raises:
            IdentityNotFoundError: If the id is not registered
        """
        if identity.id not in self._identities:
            raise IdentityNotFoundError(
                f"Identity not found: {identity.id}",
                details={"identity_id": identity.id},
            )
        return await self.add(identity)

    async def remove(self, identity_id: str) -> Identity:
        """Remove an identity from all subsequent matching and retire its id.

        Returns:
            The removed identity

        Raises:
            IdentityNotFoundError: If the id is not registered
            RegistryStorageError: If the store write fails
        """
        async with self._lock:
            removed = self._identities.get(identity_id)
            if removed is None:
                raise IdentityNotFoundError(
                    f"Identity not found: {identity_id}",
                    details={"identity_id": identity_id},
                )
            if self._store is not None:
                try:
                    await self._store.retire_identity(identity_id)
                except RegistryStorageError:
                    logger.error("Failed to retire identity", identity_id=identity_id)
                    raise
            identities = dict(self._identities)
            del identities[identity_id]
            self._identities = identities
            self._retired_ids = self._retired_ids | {identity_id}

        logger.info("Identity removed", identity_id=identity_id)
        return removed

    async def _write(self, identity: Identity) -> None:
        if self._store is None:
            return
        try:
            await self._store.save_identity(identity)
        except RegistryStorageError:
            logger.error("Failed to persist identity", identity_id=identity.id)
            raise

    def get(self, identity_id: str) -> Identity:
        """
        Raises:
            IdentityNotFoundError: If the id is not registered
        """
        identity = self._identities.get(identity_id)
        if identity is None:
            raise IdentityNotFoundError(
                f"Identity not found: {identity_id}",
                details={"identity_id": identity_id},
            )
        return identity

    def get_all(self, group_key: Optional[str] = None) -> List[Identity]:
        """List identities in insertion order, optionally only one group."""
        return list(self.snapshot(group_key))

    def snapshot(self, group_key: Optional[str] = None) -> Tuple[Identity, ...]:
        """Consistent, immutable view of the registry for one matching pass."""
        identities = self._identities
        if group_key is None:
            return tuple(identities.values())
        return tuple(identity for identity in identities.values() if identity.group_key == group_key)
