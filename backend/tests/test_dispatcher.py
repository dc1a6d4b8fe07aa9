"""
NoteForge Backend — Request Dispatcher Tests
==============================================

What we test:
    ✅ Network errors and timeouts are retried, up to the attempt limit
    ✅ Credential errors are raised on the first failure
    ✅ Every attempt is bounded by the timeout
    ✅ Cancellation propagates and is never retried
"""

import asyncio

import pytest

from noteforge.services.dispatcher import RequestDispatcher, is_transient


class TestIsTransient:
    """Tests for the retry predicate."""

    def test_network_error(self):
        """Network failures are retried."""
        assert is_transient(ConnectionError("connection refused")) is True

    def test_timeout(self):
        """Timeouts are retried."""
        assert is_transient(asyncio.TimeoutError()) is True

    def test_credential_error(self):
        """Credential failures are never retried."""
        assert is_transient(Exception("API key not valid")) is False

    def test_cancellation(self):
        """Cancellation is never retried."""
        assert is_transient(asyncio.CancelledError()) is False


class TestDispatch:
    """Tests for RequestDispatcher.dispatch()."""

    @pytest.mark.asyncio
    async def test_success(self, test_settings, make_client):
        """A successful call returns the raw reply text."""
        client = make_client("k", ["  reply  "])
        text = await RequestDispatcher(test_settings).dispatch(client, "hi", "generate note")
        assert text == "  reply  "
        assert client.prompts == ["hi"]

    @pytest.mark.asyncio
    async def test_retries_network_error_then_succeeds(self, test_settings, make_client):
        """A transient failure is retried on the same client."""
        client = make_client("k", [ConnectionError("network down"), "reply"])
        text = await RequestDispatcher(test_settings).dispatch(client, "hi", "generate note")
        assert text == "reply"
        assert len(client.prompts) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, test_settings, make_client):
        """The last transient failure propagates after max attempts."""
        client = make_client("k", [ConnectionError("network down")])
        with pytest.raises(ConnectionError):
            await RequestDispatcher(test_settings).dispatch(client, "hi", "generate note")
        assert len(client.prompts) == test_settings.retry_max_attempts

    @pytest.mark.asyncio
    async def test_credential_error_not_retried(self, test_settings, make_client):
        """A quota failure propagates after one attempt."""
        client = make_client("k", [RuntimeError("429 quota exceeded"), "reply"])
        with pytest.raises(RuntimeError, match="quota"):
            await RequestDispatcher(test_settings).dispatch(client, "hi", "generate note")
        assert len(client.prompts) == 1

    @pytest.mark.asyncio
    async def test_hanging_call_times_out(self, test_settings, make_client):
        """A call that never answers is abandoned at the timeout."""
        client = make_client("k", ["never"])
        client.gate = asyncio.Event()
        test_settings.retry_max_attempts = 2

        with pytest.raises(asyncio.TimeoutError):
            await RequestDispatcher(test_settings).dispatch(
                client, "hi", "generate note", timeout=0.01
            )
        # Timeouts are transient, so both attempts ran
        assert len(client.prompts) == 2

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, test_settings, make_client):
        """Cancelling the caller cancels the in-flight call."""
        client = make_client("k", ["never"])
        client.gate = asyncio.Event()
        dispatcher = RequestDispatcher(test_settings)

        task = asyncio.create_task(dispatcher.dispatch(client, "hi", "generate note"))
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(client.prompts) == 1
