"""
Unit tests for keyed repositories.

Tests storage operations and per-id locking.
"""

import threading
from contextlib import nullcontext

import pytest

from adage.storage import InMemoryRepository, Repository


class TestInMemoryRepository:
    """Tests for InMemoryRepository."""

    def test_put_and_get(self):
        """Test storing and retrieving an entity."""
        repo = InMemoryRepository(name="test")
        repo.put("a", 1)

        assert repo.get("a") == 1
        assert repo.get("missing") is None

    def test_list_and_ids(self):
        """Test listing entities and ids."""
        repo = InMemoryRepository()
        repo.put("a", 1)
        repo.put("b", 2)

        assert sorted(repo.list()) == [1, 2]
        assert sorted(repo.ids()) == ["a", "b"]
        assert len(repo) == 2

    def test_delete(self):
        """Test deleting present and missing entities."""
        repo = InMemoryRepository()
        repo.put("a", 1)

        assert repo.delete("a") is True
        assert repo.delete("a") is False
        assert "a" not in repo

    def test_delete_drops_entity_lock(self):
        """Test that deleting an entity also forgets its lock."""
        repo = InMemoryRepository()
        with repo.locked("a"):
            repo.put("a", 1)

        repo.delete("a")

        assert "a" not in repo._locks

    def test_delete_keeps_lock_held_by_other_thread(self):
        """Test that a lock in use elsewhere survives deletion of its entity."""
        repo = InMemoryRepository()
        repo.put("a", 1)
        holding = threading.Event()
        release = threading.Event()

        def hold():
            with repo.locked("a"):
                holding.set()
                release.wait(timeout=2.0)

        thread = threading.Thread(target=hold)
        thread.start()
        assert holding.wait(timeout=2.0)

        assert repo.delete("a") is True
        assert "a" in repo._locks

        release.set()
        thread.join()

    def test_contains(self):
        """Test membership checks."""
        repo = InMemoryRepository()
        repo.put("a", 1)

        assert "a" in repo
        assert "b" not in repo
        assert 42 not in repo

    def test_get_or_create_creates_once(self):
        """Test that the factory only runs for a missing id."""
        repo = InMemoryRepository()
        calls = []

        def factory():
            calls.append(1)
            return object()

        first = repo.get_or_create("a", factory)
        second = repo.get_or_create("a", factory)

        assert first is second
        assert len(calls) == 1

    def test_locked_is_reentrant(self):
        """Test that the same thread can re-acquire an entity lock."""
        repo = InMemoryRepository()

        with repo.locked("a"):
            with repo.locked("a"):
                repo.put("a", 1)

        assert repo.get("a") == 1

    def test_concurrent_get_or_create_yields_single_instance(self):
        """Test that concurrent callers observe a single created entity."""
        repo = InMemoryRepository()
        results = []

        def worker():
            results.append(repo.get_or_create("shared", object))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len({id(r) for r in results}) == 1

    def test_locks_are_per_entity(self):
        """Test that holding one entity's lock does not block another."""
        repo = InMemoryRepository()
        acquired = threading.Event()

        def other():
            with repo.locked("b"):
                acquired.set()

        with repo.locked("a"):
            thread = threading.Thread(target=other)
            thread.start()
            assert acquired.wait(timeout=2.0)
            thread.join()


class TestRepositoryInterface:
    """Tests for the Repository abstract base."""

    def test_ids_must_be_implemented(self):
        """Test that a repository without ids cannot be instantiated."""

        class NoIds(Repository):
            def get(self, entity_id):
                return None

            def put(self, entity_id, entity):
                pass

            def list(self):
                return []

            def delete(self, entity_id):
                return False

            def locked(self, entity_id):
                return nullcontext()

        with pytest.raises(TypeError):
            NoIds()
