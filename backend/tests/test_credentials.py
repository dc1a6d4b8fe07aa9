"""
NoteForge Backend — Credential Lifecycle Tests
================================================

What we test:
    ✅ Blank credentials are rejected without touching state
    ✅ Rebinding replaces the client (only the newest key is used)
    ✅ ensure_bound() loads the stored key once, then reuses the client
    ✅ Invalidated keys are not silently reloaded from the store
    ✅ Stale clients cannot tear down a newer binding
    ✅ Concurrent rebinds are serialized
    ✅ Discarded clients are closed once no call holds them
"""

import asyncio

import pytest

from noteforge.exceptions import EmptyCredentialError, ProviderInitError
from noteforge.services.credentials import (
    CredentialManager,
    SettingsCredentialStore,
    StaticCredentialStore,
)


def make_manager(fake_factory, credential=None, settle_delay=0):
    return CredentialManager(
        store=StaticCredentialStore(credential),
        client_factory=fake_factory,
        settle_delay=settle_delay,
    )


class TestBind:
    """Tests for explicit bind() calls."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("credential", [None, "", "   ", "\n\t"])
    async def test_blank_credential_rejected(self, fake_factory, credential):
        """Blank credentials raise before any client is built."""
        manager = make_manager(fake_factory)

        with pytest.raises(EmptyCredentialError):
            await manager.bind(credential)

        assert manager.is_bound is False
        assert fake_factory.built == []

    @pytest.mark.asyncio
    async def test_blank_credential_keeps_existing_binding(self, fake_factory):
        """A rejected blank credential leaves the current client in place."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")
        client = manager.current_client()

        with pytest.raises(EmptyCredentialError):
            await manager.bind("")

        assert manager.current_client() is client

    @pytest.mark.asyncio
    async def test_bind_strips_whitespace(self, fake_factory):
        """Surrounding whitespace never reaches the client factory."""
        manager = make_manager(fake_factory)
        await manager.bind("  key-a \n")
        assert fake_factory.last.credential == "key-a"

    @pytest.mark.asyncio
    async def test_second_bind_replaces_first(self, fake_factory):
        """Rebinding builds a fresh client for the new key."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")
        await manager.bind("key-b")

        current = manager.current_client()
        assert current.credential == "key-b"
        assert [c.credential for c in fake_factory.built] == ["key-a", "key-b"]
        assert current is not fake_factory.built[0]

    @pytest.mark.asyncio
    async def test_factory_failure_leaves_unbound(self, fake_factory):
        """A client that cannot be built leaves the manager Unbound."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")
        fake_factory.fail_with = ValueError("bad key format")

        with pytest.raises(ProviderInitError):
            await manager.bind("key-b")

        assert manager.is_bound is False

    @pytest.mark.asyncio
    async def test_settle_delay_between_teardown_and_rebuild(self, fake_factory):
        """The old client is gone during the settle interval."""
        manager = make_manager(fake_factory, settle_delay=0.05)
        await manager.bind("key-a")

        task = asyncio.create_task(manager.bind("key-b"))
        await asyncio.sleep(0.01)
        # Old client is gone before the new one exists
        assert manager.is_bound is False
        await task
        assert manager.current_client().credential == "key-b"

    @pytest.mark.asyncio
    async def test_concurrent_binds_are_serialized(self, fake_factory):
        """Overlapping binds run one after the other."""
        manager = make_manager(fake_factory, settle_delay=0.01)

        await asyncio.gather(manager.bind("key-a"), manager.bind("key-b"))

        assert manager.is_bound is True
        assert len(fake_factory.built) == 2
        # The last bind to acquire the lock wins, and only one client is live
        assert manager.current_client() is fake_factory.last


class TestEnsureBound:
    """Tests for lazy loading of the stored credential."""

    @pytest.mark.asyncio
    async def test_nothing_stored_returns_false(self, fake_factory):
        """No stored key means not configured, not an error."""
        manager = make_manager(fake_factory)
        assert await manager.ensure_bound() is False
        assert fake_factory.built == []

    @pytest.mark.asyncio
    async def test_loads_stored_credential_once(self, fake_factory):
        """The stored key is loaded once and the client reused."""
        manager = make_manager(fake_factory, credential="stored-key")

        assert await manager.ensure_bound() is True
        assert await manager.ensure_bound() is True

        assert len(fake_factory.built) == 1
        assert fake_factory.last.credential == "stored-key"

    @pytest.mark.asyncio
    async def test_concurrent_callers_build_one_client(self, fake_factory):
        """Concurrent ensure_bound() calls share one client."""
        manager = make_manager(fake_factory, credential="stored-key", settle_delay=0.01)

        results = await asyncio.gather(*(manager.ensure_bound() for _ in range(5)))

        assert results == [True] * 5
        assert len(fake_factory.built) == 1

    @pytest.mark.asyncio
    async def test_store_failure_is_not_configured(self, fake_factory):
        """An unreadable store reports not configured."""
        class BrokenStore(StaticCredentialStore):
            async def get_credential(self):
                raise OSError("settings file unreadable")

        manager = CredentialManager(BrokenStore(), fake_factory, settle_delay=0)
        assert await manager.ensure_bound() is False

    @pytest.mark.asyncio
    async def test_factory_failure_returns_false(self, fake_factory):
        """A stored key whose client cannot be built reports False."""
        fake_factory.fail_with = RuntimeError("boom")
        manager = make_manager(fake_factory, credential="stored-key")
        assert await manager.ensure_bound() is False

    @pytest.mark.asyncio
    async def test_settings_store_ignores_placeholder(self, test_settings, fake_factory):
        """The .env.example placeholder is treated as no key."""
        test_settings.gemini_api_key = "your_gemini_api_key_here"
        manager = CredentialManager(SettingsCredentialStore(test_settings), fake_factory, 0)
        assert await manager.ensure_bound() is False


class TestInvalidation:
    """Tests for invalidate(), refresh() and stale-client protection."""

    @pytest.mark.asyncio
    async def test_invalidate_is_idempotent(self, fake_factory):
        """Invalidating twice, or while Unbound, is harmless."""
        manager = make_manager(fake_factory)
        await manager.invalidate()
        await manager.bind("key-a")
        await manager.invalidate()
        await manager.invalidate()
        assert manager.is_bound is False
        assert manager.current_client() is None

    @pytest.mark.asyncio
    async def test_invalidated_stored_key_is_not_reloaded(self, fake_factory):
        """An invalidated stored key stays unbound until something changes."""
        manager = make_manager(fake_factory, credential="stored-key")
        assert await manager.ensure_bound() is True

        await manager.invalidate()

        assert await manager.ensure_bound() is False
        assert len(fake_factory.built) == 1

    @pytest.mark.asyncio
    async def test_new_stored_key_is_loaded_after_invalidation(self, fake_factory):
        """A different stored key lifts the block."""
        store = StaticCredentialStore("old-key")
        manager = CredentialManager(store, fake_factory, settle_delay=0)
        await manager.ensure_bound()
        await manager.invalidate()

        store.credential = "new-key"

        assert await manager.ensure_bound() is True
        assert manager.current_client().credential == "new-key"

    @pytest.mark.asyncio
    async def test_explicit_bind_clears_the_block(self, fake_factory):
        """bind() accepts a previously invalidated key."""
        manager = make_manager(fake_factory, credential="stored-key")
        await manager.ensure_bound()
        await manager.invalidate()

        await manager.bind("stored-key")

        assert manager.is_bound is True

    @pytest.mark.asyncio
    async def test_refresh_rebinds_stored_key(self, fake_factory):
        """refresh() rebinds the stored key even after invalidation."""
        manager = make_manager(fake_factory, credential="stored-key")
        await manager.ensure_bound()
        await manager.invalidate()

        assert await manager.refresh() is True
        assert manager.current_client().credential == "stored-key"

    @pytest.mark.asyncio
    async def test_refresh_without_stored_key(self, fake_factory):
        """refresh() with nothing stored reports False."""
        manager = make_manager(fake_factory)
        assert await manager.refresh() is False

    @pytest.mark.asyncio
    async def test_stale_client_cannot_invalidate_new_binding(self, fake_factory):
        """A failure of an old client leaves the newer binding alone."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")
        stale = manager.current_client()
        await manager.bind("key-b")

        assert await manager.invalidate_if_current(stale) is False
        assert manager.current_client().credential == "key-b"

    @pytest.mark.asyncio
    async def test_current_client_is_invalidated(self, fake_factory):
        """A failure of the bound client tears the binding down."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")

        assert await manager.invalidate_if_current(manager.current_client()) is True
        assert manager.is_bound is False


class TestClientRelease:
    """Tests that discarded provider clients are closed."""

    @pytest.mark.asyncio
    async def test_rebind_closes_previous_client(self, fake_factory):
        """An idle client is closed as soon as it is replaced."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")
        await manager.bind("key-b")

        assert fake_factory.built[0].closed is True
        assert fake_factory.built[1].closed is False

    @pytest.mark.asyncio
    async def test_invalidate_closes_client(self, fake_factory):
        """invalidate() closes the discarded client."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")
        await manager.invalidate()
        assert fake_factory.last.closed is True

    @pytest.mark.asyncio
    async def test_leased_client_closed_after_release(self, fake_factory):
        """A client in use stays open until its lease ends."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")

        async with manager.lease() as client:
            await manager.bind("key-b")
            assert client.closed is False

        assert client.closed is True
        assert manager.current_client().closed is False

    @pytest.mark.asyncio
    async def test_nested_leases(self, fake_factory):
        """The client is closed only when the last lease ends."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")

        async with manager.lease() as outer:
            async with manager.lease() as inner:
                assert inner is outer
                await manager.invalidate()
            assert outer.closed is False

        assert outer.closed is True

    @pytest.mark.asyncio
    async def test_lease_without_binding(self, fake_factory):
        """Leasing while Unbound yields None."""
        manager = make_manager(fake_factory)
        async with manager.lease() as client:
            assert client is None

    @pytest.mark.asyncio
    async def test_close_releases_everything(self, fake_factory):
        """close() discards the binding and closes leased clients too."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")

        async with manager.lease() as old:
            await manager.bind("key-b")
            await manager.close()
            assert old.closed is True

        assert fake_factory.last.closed is True
        assert manager.is_bound is False

    @pytest.mark.asyncio
    async def test_close_failure_is_logged(self, fake_factory, caplog):
        """A client that fails to close does not break the rebind."""
        manager = make_manager(fake_factory)
        await manager.bind("key-a")

        async def broken_close():
            raise RuntimeError("session already gone")

        fake_factory.last.close = broken_close
        await manager.bind("key-b")

        assert manager.current_client().credential == "key-b"
        assert "Failed to close discarded provider client" in caplog.text
