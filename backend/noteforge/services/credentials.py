"""
NoteForge Backend — Credential Lifecycle Manager
==================================================

What:  Owns the binding between a credential and a live ProviderClient.
Why:   A client must never outlive the credential it was built for, and
       credential-related provider failures must force a fresh lifecycle.
How:   A small state machine guarded by an asyncio.Lock:

           Unbound ──bind()/ensure_bound()──▶ Bound
              ▲                                 │
              └──── invalidate() / credential ──┘
                    related provider error

       bind() always tears down the current client, waits a short settle
       interval, then builds a new one. Rebinds are serialized by the lock.
       Generation calls do NOT take the lock: they lease the bound client once
       and use that reference for the whole call. A discarded client is
       closed as soon as its last lease is released.

Credential handling:
    The credential is never logged. Log lines refer to the binding by its
    sequence number ("binding #3") only.
"""

import asyncio
import hashlib
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Set

from noteforge.config import PLACEHOLDER_API_KEY, Settings
from noteforge.exceptions import EmptyCredentialError, ProviderInitError
from noteforge.services.provider_base import ClientFactory, ProviderClient

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Credential Stores (read-only views of the external settings store)
# ══════════════════════════════════════════════════════════════════════════

class CredentialStore(ABC):
    """Read-only access to a previously saved credential."""

    @abstractmethod
    async def get_credential(self) -> Optional[str]:
        """Return the saved credential, or None/"" when nothing is saved."""
        ...


class SettingsCredentialStore(CredentialStore):
    """Reads GEMINI_API_KEY from application settings."""

    def __init__(self, settings: Settings):
        self._settings = settings

    async def get_credential(self) -> Optional[str]:
        key = self._settings.gemini_api_key
        if not key or key == PLACEHOLDER_API_KEY:
            return None
        return key


class StaticCredentialStore(CredentialStore):
    """In-memory store holding a fixed value (embedding and tests)."""

    def __init__(self, credential: Optional[str] = None):
        self.credential = credential

    async def get_credential(self) -> Optional[str]:
        return self.credential


def _is_blank(credential: Optional[str]) -> bool:
    return credential is None or not str(credential).strip()


def _digest(credential: str) -> str:
    return hashlib.sha256(credential.encode("utf-8")).hexdigest()


async def _close_client(client: ProviderClient) -> None:
    try:
        await client.close()
    except Exception as e:
        logger.warning("Failed to close discarded provider client: %s", type(e).__name__)


# ══════════════════════════════════════════════════════════════════════════
# Credential Manager
# ══════════════════════════════════════════════════════════════════════════

class CredentialManager:
    """
    One authoritative credential/client binding per instance.

    Invalidation boundary:
        A credential discarded by invalidate() or by a credential-related
        provider error is remembered (as a SHA-256 digest, never the raw
        value). ensure_bound() refuses to reload that same credential from
        the store; only an explicit bind() or refresh() brings it back.

    Attributes:
        settle_delay:  Seconds to wait between teardown and rebuild
    """

    def __init__(
        self,
        store: CredentialStore,
        client_factory: ClientFactory,
        settle_delay: float = 0.2,
    ):
        self._store = store
        self._client_factory = client_factory
        self.settle_delay = settle_delay

        self._credential: Optional[str] = None
        self._client: Optional[ProviderClient] = None
        self._revoked_digest: Optional[str] = None
        self._binding_seq = 0
        self._lock = asyncio.Lock()
        self._leases: Dict[ProviderClient, int] = {}
        self._retired: Set[ProviderClient] = set()

    # ── State inspection ──────────────────────────────────────────────────

    @property
    def is_bound(self) -> bool:
        return self._client is not None

    def current_client(self) -> Optional[ProviderClient]:
        """Snapshot of the bound client, captured once per generation call."""
        return self._client

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[Optional[ProviderClient]]:
        """
        Hold the bound client for the duration of one call.

        Yields None when nothing is bound. A client discarded while leased is
        closed when the last lease ends.
        """
        client = self._client
        if client is None:
            yield None
            return

        self._leases[client] = self._leases.get(client, 0) + 1
        try:
            yield client
        finally:
            remaining = self._leases.pop(client, 1) - 1
            if remaining:
                self._leases[client] = remaining
            elif client in self._retired:
                self._retired.discard(client)
                await _close_client(client)

    # ── Transitions ───────────────────────────────────────────────────────

    async def bind(self, credential: Optional[str]) -> None:
        """
        Bind a new credential, replacing any existing binding.

        Raises:
            EmptyCredentialError: credential is None or blank. State unchanged.
            ProviderInitError:    the client could not be built. Left Unbound.
        """
        if _is_blank(credential):
            raise EmptyCredentialError()

        async with self._lock:
            self._revoked_digest = None
            await self._bind_locked(credential.strip())

    async def ensure_bound(self) -> bool:
        """
        Make sure a usable client exists, loading the stored credential if needed.

        Returns:
            True if a client is bound after the call, False if no usable
            credential is configured. "Not configured" is an expected state,
            not an error.
        """
        if self._client is not None:
            return True

        async with self._lock:
            # Another coroutine may have bound while we waited for the lock
            if self._client is not None:
                return True

            credential = await self._load_stored_credential()
            if _is_blank(credential):
                return False
            credential = credential.strip()

            if self._revoked_digest == _digest(credential):
                logger.info("Stored API key was invalidated; waiting for a new key")
                return False

            try:
                await self._bind_locked(credential)
            except ProviderInitError:
                return False
            return True

    async def invalidate(self) -> None:
        """Discard the current client and credential. Idempotent."""
        async with self._lock:
            await self._revoke_locked(reason="invalidated")

    async def close(self) -> None:
        """
        Discard the binding and close every client still open.

        Only for shutdown: leased clients are closed even if a call holds them.
        """
        async with self._lock:
            await self._teardown_locked(reason="shutdown")
            retired, self._retired = self._retired, set()
            self._leases.clear()
            for client in retired:
                await _close_client(client)

    async def invalidate_if_current(self, client: ProviderClient) -> bool:
        """
        Invalidate only if `client` is still the bound one.

        A call that started under an older binding must not tear down a
        newer binding when it fails.
        """
        async with self._lock:
            if client is None or client is not self._client:
                return False
            await self._revoke_locked(reason="credential error")
            return True

    async def refresh(self) -> bool:
        """
        Re-read the stored credential and rebind it.

        Returns:
            False when nothing is stored or the client could not be built.
        """
        async with self._lock:
            credential = await self._load_stored_credential()
            if _is_blank(credential):
                return False
            self._revoked_digest = None
            try:
                await self._bind_locked(credential.strip())
            except ProviderInitError:
                logger.error("Failed to refresh AI service binding")
                return False
            return True

    # ── Internals (lock must be held) ─────────────────────────────────────

    async def _bind_locked(self, credential: str) -> None:
        await self._teardown_locked(reason="rebind")

        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)

        try:
            client = self._client_factory(credential)
        except Exception as e:
            await self._teardown_locked(reason="init failure")
            logger.error("Provider client construction failed: %s", type(e).__name__)
            raise ProviderInitError(
                message="Failed to initialize AI service. Please check your API key.",
                context={"error_type": type(e).__name__},
            ) from e

        self._credential = credential
        self._client = client
        self._binding_seq += 1
        logger.info("AI provider bound (binding #%d)", self._binding_seq)

    async def _revoke_locked(self, reason: str) -> None:
        if self._credential is not None:
            self._revoked_digest = _digest(self._credential)
        await self._teardown_locked(reason=reason)

    async def _teardown_locked(self, reason: str) -> None:
        if self._client is None and self._credential is None:
            return
        logger.info("AI provider binding #%d discarded: %s", self._binding_seq, reason)
        client = self._client
        self._client = None
        self._credential = None
        if client is None:
            return
        # In-flight calls keep their own reference; close after the last one
        if client in self._leases:
            self._retired.add(client)
        else:
            await _close_client(client)

    async def _load_stored_credential(self) -> Optional[str]:
        try:
            return await self._store.get_credential()
        except Exception as e:
            logger.warning("Failed to fetch API key from settings store: %s", type(e).__name__)
            return None
