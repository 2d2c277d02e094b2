"""Tests for the identity registry."""
import numpy as np
import pytest

from classroll.core.exceptions import (
    EmbeddingDimensionError,
    IdentityNotFoundError,
    IdentityRetiredError,
    RegistryStorageError,
)
from classroll.domain.entities.identity import Identity
from classroll.services.identity_registry import IdentityRegistry

from tests.fakes import DIM, axis


async def test_re_enrolling_replaces_the_embedding(registry):
    await registry.add(Identity(id="S1", embedding=axis(0)))
    await registry.add(Identity(id="S1", embedding=axis(1)))

    identities = registry.get_all()
    assert [identity.id for identity in identities] == ["S1"]
    assert np.array_equal(identities[0].embedding, axis(1))


async def test_replacement_keeps_insertion_position(registry):
    for identity_id in ("a", "b", "c"):
        await registry.add(Identity(id=identity_id, embedding=axis(0)))

    await registry.add(Identity(id="a", embedding=axis(2)))

    assert [identity.id for identity in registry.get_all()] == ["a", "b", "c"]


async def test_group_filter(registry):
    await registry.add(Identity(id="a", group_key="5A"))
    await registry.add(Identity(id="b", group_key="5B"))
    await registry.add(Identity(id="c", group_key="5A"))

    assert [identity.id for identity in registry.get_all("5A")] == ["a", "c"]
    assert len(registry.get_all()) == 3


async def test_remove_retires_the_id(registry):
    await registry.add(Identity(id="S1", embedding=axis(0)))

    removed = await registry.remove("S1")

    assert removed.id == "S1"
    assert "S1" not in registry
    assert registry.is_retired("S1")
    assert registry.snapshot() == ()
    with pytest.raises(IdentityRetiredError):
        await registry.add(Identity(id="S1", embedding=axis(0)))


async def test_remove_unknown(registry):
    with pytest.raises(IdentityNotFoundError):
        await registry.remove("ghost")


async def test_update_requires_existing_identity(registry):
    with pytest.raises(IdentityNotFoundError):
        await registry.update(Identity(id="ghost"))


async def test_get_unknown(registry):
    with pytest.raises(IdentityNotFoundError):
        registry.get("ghost")


async def test_snapshot_is_not_affected_by_later_mutations(registry):
    await registry.add(Identity(id="a", embedding=axis(0)))
    snapshot = registry.snapshot()

    await registry.add(Identity(id="b", embedding=axis(1)))
    await registry.remove("a")

    assert [identity.id for identity in snapshot] == ["a"]
    assert [identity.id for identity in registry.snapshot()] == ["b"]


async def test_wrong_dimension_is_rejected(registry):
    with pytest.raises(EmbeddingDimensionError):
        await registry.add(Identity(id="a", embedding=np.ones(DIM + 1)))
    assert len(registry) == 0


async def test_identity_without_embedding_is_accepted(registry):
    await registry.add(Identity(id="a", name="No photo yet"))

    assert not registry.get("a").has_embedding


async def test_new_identity_ids_are_unique(registry):
    await registry.add(Identity(id="a"))
    ids = {registry.new_identity_id() for _ in range(50)}

    assert len(ids) == 50
    assert "a" not in ids


async def test_writes_go_through_the_store(identity_store):
    registry = IdentityRegistry(store=identity_store, embedding_dimension=DIM)

    await registry.add(Identity(id="a", embedding=axis(0)))
    await registry.remove("a")

    assert identity_store.identities == {}
    assert identity_store.retired == {"a"}


async def test_failed_write_leaves_registry_unchanged(identity_store):
    registry = IdentityRegistry(store=identity_store, embedding_dimension=DIM)
    await registry.add(Identity(id="a", embedding=axis(0)))
    identity_store.fail_writes = True

    with pytest.raises(RegistryStorageError):
        await registry.add(Identity(id="a", embedding=axis(1)))
    with pytest.raises(RegistryStorageError):
        await registry.add(Identity(id="b", embedding=axis(1)))
    with pytest.raises(RegistryStorageError):
        await registry.remove("a")

    assert [identity.id for identity in registry.get_all()] == ["a"]
    assert np.array_equal(registry.get("a").embedding, axis(0))
    assert not registry.is_retired("a")


async def test_load_restores_identities_and_retired_ids(identity_store):
    first = IdentityRegistry(store=identity_store, embedding_dimension=DIM)
    await first.add(Identity(id="a", embedding=axis(0)))
    await first.add(Identity(id="b", embedding=axis(1)))
    await first.remove("b")

    second = IdentityRegistry(store=identity_store, embedding_dimension=DIM)
    loaded = await second.load()

    assert loaded == 1
    assert [identity.id for identity in second.get_all()] == ["a"]
    assert second.is_retired("b")
