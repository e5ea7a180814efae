"""
Tests for event sources.

============================================================
PURPOSE
============================================================
Connection state machine, reconnect backoff, HTTP retry and the
provider-specific fetch logic. No network access: transports
are replaced with fakes.

============================================================
"""

import asyncio
import json
import logging
from unittest.mock import AsyncMock

import aiohttp
import pytest
import websockets
import websockets.exceptions

from data_ingestion.collectors import (
    EventSource,
    HeliusMigrationSource,
    HttpPollingSource,
    MoralisGraduatedSource,
    PumpPortalSource,
    TwitterSearchSource,
)
from data_ingestion.collectors.twitter_search import split_search_response
from data_ingestion.creator_cache import CreatorCache
from data_ingestion.types import (
    HeliusConfig,
    MoralisConfig,
    PumpPortalConfig,
    SourceConfig,
    SourceState,
    SourceTag,
    SourceUnavailable,
    TwitterConfig,
)


# ============================================================
# FAKES
# ============================================================

def unavailable(message="down"):
    return SourceUnavailable(message, source="fake")


class ScriptedSource(EventSource):
    """
    Streaming source driven by a script of sessions.

    Each session is an exception raised by _connect or a list of
    payloads streamed before the connection drops. The source
    stops itself once the script is exhausted.
    """

    active_state = SourceState.STREAMING

    def __init__(self, sessions, reconnect_attempts=3, backoff_max_seconds=60.0):
        super().__init__(
            SourceConfig(
                source_name="scripted",
                reconnect_attempts=reconnect_attempts,
                backoff_max_seconds=backoff_max_seconds,
            ),
            SourceTag.ONCHAIN_FEED,
        )
        self._sessions = list(sessions)
        self._current = []
        self.closes = 0
        self._sleep = AsyncMock()

    async def _connect(self):
        if not self._sessions:
            self.stop()
            self._current = []
            return
        session = self._sessions.pop(0)
        if isinstance(session, Exception):
            raise session
        self._current = session

    async def _stream(self):
        for payload in self._current:
            yield payload

    async def _close(self):
        self.closes += 1


class ScriptedPoller(HttpPollingSource):
    """Polling source whose polls return scripted results."""

    def __init__(self, polls, **config):
        super().__init__(
            SourceConfig(source_name="poller", polling_interval_seconds=5, **config),
            SourceTag.INDEXER,
        )
        self._polls = list(polls)
        self._sleep = AsyncMock()

    async def _poll(self):
        if not self._polls:
            self.stop()
            return []
        result = self._polls.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeResponse:
    def __init__(self, status, body=None):
        self.status = status
        self._body = body

    async def json(self, content_type=None):
        return self._body

    async def text(self):
        return json.dumps(self._body)


class FakeRequest:
    def __init__(self, outcome):
        self._outcome = outcome

    async def __aenter__(self):
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession.request()."""

    def __init__(self, outcomes):
        self._outcomes = list(outcomes)
        self.calls = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return FakeRequest(self._outcomes.pop(0))

    async def close(self):
        self.closed = True


class FakeWebSocket:
    def __init__(self, messages, error=None):
        self._messages = messages
        self._error = error
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self._messages:
            yield message
        if self._error is not None:
            raise self._error

    async def close(self):
        self.closed = True


# ============================================================
# STATE MACHINE
# ============================================================

class TestEventSourceRun:
    """Tests for EventSource.run."""

    @pytest.mark.asyncio
    async def test_streams_until_stopped(self):
        """Test that every payload reaches the handler and stop ends run."""
        source = ScriptedSource([[{"n": 1}, {"n": 2}]])
        seen = []

        async def handler(src, payload):
            seen.append(payload["n"])
            if len(seen) == 2:
                src.stop()

        await source.run(handler)

        assert seen == [1, 2]
        assert source.stats.received == 2
        assert source.state is SourceState.DISCONNECTED
        assert source.closes == 1
        source._sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_gives_up_after_reconnect_attempts(self):
        """Test exponential backoff and giving up."""
        source = ScriptedSource([unavailable() for _ in range(5)], reconnect_attempts=2)

        await source.run(AsyncMock())

        assert [c.args[0] for c in source._sleep.await_args_list] == [2, 4]
        assert source.stats.reconnects == 2
        assert source.stats.last_error == "down"
        assert source.state is SourceState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_backoff_capped(self):
        """Test that waits never exceed backoff_max_seconds."""
        source = ScriptedSource(
            [unavailable() for _ in range(5)],
            reconnect_attempts=4,
            backoff_max_seconds=5,
        )
        await source.run(AsyncMock())
        assert [c.args[0] for c in source._sleep.await_args_list] == [2, 4, 5, 5]

    @pytest.mark.asyncio
    async def test_successful_connect_resets_failures(self):
        """Test that a stream that connected restarts the backoff sequence."""
        source = ScriptedSource(
            [unavailable(), [{"n": 1}], unavailable(), unavailable()],
            reconnect_attempts=2,
        )
        handler = AsyncMock()

        await source.run(handler)

        handler.assert_awaited_once_with(source, {"n": 1})
        assert [c.args[0] for c in source._sleep.await_args_list] == [2, 2, 4]
        assert source.stats.last_error == "down"

    @pytest.mark.asyncio
    async def test_stream_end_counts_as_failure(self):
        """Test that a connection ending on its own triggers a reconnect."""
        source = ScriptedSource([[{"n": 1}]])
        await source.run(AsyncMock())
        assert source.stats.reconnects == 1
        assert "stream ended" in source.stats.last_error

    @pytest.mark.asyncio
    async def test_backfill_unsupported_by_default(self):
        """Test that live-only sources refuse backfill."""
        source = ScriptedSource([])
        assert source.supports_backfill is False
        with pytest.raises(NotImplementedError):
            async for _ in source.backfill():
                pass


class TestHttpPollingSource:
    """Tests for the polling loop."""

    @pytest.mark.asyncio
    async def test_poll_cycle_and_recovery(self):
        """Test that a failed poll reconnects and polling resumes."""
        source = ScriptedPoller([[{"n": 1}, {"n": 2}], unavailable(), [{"n": 3}]])
        handler = AsyncMock()

        await source.run(handler)

        assert [c.args[1]["n"] for c in handler.await_args_list] == [1, 2, 3]
        assert source.stats.reconnects == 1
        sleeps = [c.args[0] for c in source._sleep.await_args_list]
        assert 2 in sleeps
        assert sleeps.count(5) >= 2
        assert source.state is SourceState.DISCONNECTED


# ============================================================
# HTTP RETRY
# ============================================================

class TestRequestJson:
    """Tests for HttpPollingSource._request_json."""

    def _source(self):
        return ScriptedPoller([], max_retries=3)

    @pytest.mark.asyncio
    async def test_retries_retryable_status(self):
        """Test that a 503 is retried and the next success returned."""
        source = self._source()
        source._session = FakeSession([FakeResponse(503), FakeResponse(200, {"ok": True})])

        data = await source._request_json("GET", "https://example.test/x")

        assert data == {"ok": True}
        assert len(source._session.calls) == 2
        source._sleep.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_client_error_exhausts_attempts(self):
        """Test that network errors are retried then surface as SourceUnavailable."""
        source = self._source()
        source._session = FakeSession([
            aiohttp.ClientConnectionError("refused"),
            asyncio.TimeoutError(),
            aiohttp.ClientConnectionError("refused"),
        ])

        with pytest.raises(SourceUnavailable) as exc_info:
            await source._request_json("GET", "https://example.test/x")

        assert "All 3 attempts failed" in exc_info.value.message
        assert [c.args[0] for c in source._sleep.await_args_list] == [1, 2]

    @pytest.mark.asyncio
    async def test_client_error_status_not_retried(self):
        """Test that a 404 fails immediately with its status code."""
        source = self._source()
        source._session = FakeSession([FakeResponse(404, {"message": "not found"})])

        with pytest.raises(SourceUnavailable) as exc_info:
            await source._request_json("GET", "https://example.test/x")

        assert exc_info.value.status_code == 404
        assert len(source._session.calls) == 1
        source._sleep.assert_not_awaited()


# ============================================================
# PUMPPORTAL
# ============================================================

class TestPumpPortalSource:
    """Tests for the websocket source."""

    def _source(self):
        return PumpPortalSource(PumpPortalConfig(source_name="pumpportal"))

    def test_subscriptions(self):
        """Test that both channels are subscribed by default."""
        methods = [s["method"] for s in self._source()._subscriptions()]
        assert methods == ["subscribeNewToken", "subscribeMigration"]

    @pytest.mark.parametrize("message,expected", [
        ({"message": "Successfully subscribed to token creation events."}, False),
        ({"errors": "Invalid message"}, False),
        (["not", "a", "dict"], False),
        ({"mint": "MINT", "txType": "create", "signature": "s"}, True),
        ({"mint": "MINT", "txType": "migration", "signature": "s"}, True),
    ])
    def test_is_data_message(self, message, expected):
        """Test that acks and errors are filtered."""
        assert self._source()._is_data_message(message) is expected

    @pytest.mark.asyncio
    async def test_stream_filters_and_counts_invalid_json(self):
        """Test that only data messages are yielded."""
        source = self._source()
        source._websocket = FakeWebSocket([
            json.dumps({"message": "subscribed"}),
            "not json",
            json.dumps({"mint": "MINT", "txType": "create", "signature": "s"}),
        ])

        payloads = [p async for p in source._stream()]

        assert payloads == [{"mint": "MINT", "txType": "create", "signature": "s"}]
        assert source.stats.rejected == 1

    @pytest.mark.asyncio
    async def test_connection_closed_is_unavailable(self):
        """Test that a dropped socket surfaces as SourceUnavailable."""
        source = self._source()
        source._websocket = FakeWebSocket(
            [], error=websockets.exceptions.ConnectionClosedError(None, None)
        )
        with pytest.raises(SourceUnavailable):
            async for _ in source._stream():
                pass

    @pytest.mark.asyncio
    async def test_close_releases_socket(self):
        """Test that closing drops the socket and is repeatable."""
        source = self._source()
        socket = FakeWebSocket([])
        source._websocket = socket

        await source._close()
        await source._close()

        assert socket.closed is True
        assert source._websocket is None


# ============================================================
# HELIUS
# ============================================================

class TestHeliusMigrationSource:
    """Tests for the Helius RPC poller."""

    def _source(self):
        return HeliusMigrationSource(HeliusConfig(source_name="helius", api_key="k"))

    @pytest.mark.asyncio
    async def test_poll_expands_successful_signatures(self):
        """Test signature listing, error filtering and oldest-first output."""
        source = self._source()
        source._request_json = AsyncMock(side_effect=[
            {"jsonrpc": "2.0", "result": [
                {"signature": "s3", "err": None, "blockTime": 300},
                {"signature": "s2", "err": {"InstructionError": [0, "x"]}, "blockTime": 200},
                {"signature": "s1", "err": None, "blockTime": 100},
            ]},
            [
                {"signature": "s3", "feePayer": "W", "timestamp": None},
                {"signature": "s1", "feePayer": "W", "timestamp": 100},
            ],
        ])

        payloads = await source._poll()

        assert [p["signature"] for p in payloads] == ["s1", "s3"]
        assert payloads[1]["timestamp"] == 300
        assert source.last_signature == "s3"

        enhanced_call = source._request_json.await_args_list[1]
        assert enhanced_call.kwargs["json"] == {"transactions": ["s3", "s1"]}

    @pytest.mark.asyncio
    async def test_next_poll_is_incremental(self):
        """Test that the last seen signature bounds the next listing."""
        source = self._source()
        source._last_signature = "s3"
        source._request_json = AsyncMock(return_value={"jsonrpc": "2.0", "result": []})

        assert await source._poll() == []

        rpc_body = source._request_json.await_args.kwargs["json"]
        assert rpc_body["method"] == "getSignaturesForAddress"
        assert rpc_body["params"][1]["until"] == "s3"
        assert source._request_json.await_count == 1

    @pytest.mark.asyncio
    async def test_full_page_pages_back_to_last_seen(self):
        """Test that a full page is followed with before= until the gap is covered."""
        config = HeliusConfig(source_name="helius", api_key="k", signature_limit=2)
        source = HeliusMigrationSource(config)
        source._last_signature = "s0"
        source._request_json = AsyncMock(side_effect=[
            {"result": [{"signature": "s5"}, {"signature": "s4"}]},
            {"result": [{"signature": "s3"}]},
            [{"signature": "s5", "feePayer": "W"}, {"signature": "s4", "feePayer": "W"}],
            [{"signature": "s3", "feePayer": "W"}],
        ])

        payloads = await source._poll()

        assert [p["signature"] for p in payloads] == ["s3", "s4", "s5"]
        assert source.last_signature == "s5"
        calls = source._request_json.await_args_list
        assert calls[1].kwargs["json"]["params"][1] == {"limit": 2, "before": "s4", "until": "s0"}
        assert calls[2].kwargs["json"] == {"transactions": ["s5", "s4"]}
        assert calls[3].kwargs["json"] == {"transactions": ["s3"]}

    @pytest.mark.asyncio
    async def test_catchup_cap_logged(self, caplog):
        """Test that hitting the page cap is reported."""
        config = HeliusConfig(
            source_name="helius", api_key="k", signature_limit=1, catchup_max_pages=2
        )
        source = HeliusMigrationSource(config)
        source._last_signature = "s0"
        source._request_json = AsyncMock(side_effect=[
            {"result": [{"signature": "s9"}]},
            {"result": [{"signature": "s8"}]},
            [{"signature": "s9", "feePayer": "W"}],
            [{"signature": "s8", "feePayer": "W"}],
        ])

        with caplog.at_level(logging.WARNING):
            payloads = await source._poll()

        assert [p["signature"] for p in payloads] == ["s8", "s9"]
        assert any("skipped" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_rpc_error(self):
        """Test that a JSON-RPC error is a source failure."""
        source = self._source()
        source._request_json = AsyncMock(return_value={"error": {"code": -32005, "message": "slow down"}})
        with pytest.raises(SourceUnavailable):
            await source._poll()


# ============================================================
# MORALIS
# ============================================================

class TestMoralisGraduatedSource:
    """Tests for the graduated-token indexer."""

    def _source(self, cache):
        return MoralisGraduatedSource(MoralisConfig(source_name="moralis", api_key="k"), cache)

    @pytest.mark.asyncio
    async def test_poll_enriches_creators_and_skips_seen(self):
        """Test creator lookup by cache then first swap, and seen-mint skipping."""
        cache = CreatorCache()
        cache.put("M1", "W1")
        source = self._source(cache)
        page = {"result": [{"tokenAddress": "M1"}, {"tokenAddress": "M2"}], "cursor": "c1"}
        source._request_json = AsyncMock(side_effect=[
            page,
            {"result": [{"walletAddress": "W2"}]},
            page,
        ])

        first = await source._poll()
        second = await source._poll()

        assert [(p["tokenAddress"], p["creator"]) for p in first] == [("M1", "W1"), ("M2", "W2")]
        assert second == []
        assert cache.get("M2") == "W2"
        assert source._request_json.await_count == 3

    @pytest.mark.asyncio
    async def test_seen_mints_bounded(self):
        """Test that the oldest seen mint is evicted beyond the size limit."""
        config = MoralisConfig(source_name="moralis", api_key="k", seen_mints_max_size=2)
        source = MoralisGraduatedSource(config, CreatorCache())
        source._request_json = AsyncMock(side_effect=[
            {"result": [
                {"tokenAddress": "M1", "creator": "W1"},
                {"tokenAddress": "M2", "creator": "W2"},
                {"tokenAddress": "M3", "creator": "W3"},
            ]},
            {"result": [
                {"tokenAddress": "M1", "creator": "W1"},
                {"tokenAddress": "M3", "creator": "W3"},
            ]},
        ])

        first = await source._poll()
        second = await source._poll()

        assert [p["tokenAddress"] for p in first] == ["M1", "M2", "M3"]
        assert [p["tokenAddress"] for p in second] == ["M1"]
        assert len(source._seen_mints) == 2

    @pytest.mark.asyncio
    async def test_failed_page_releases_mints(self):
        """Test that a page aborted by a lookup failure is emitted again on the next poll."""
        source = self._source(CreatorCache())
        page = {"result": [{"tokenAddress": "M1", "creator": "W1"}, {"tokenAddress": "M2"}]}
        source._request_json = AsyncMock(side_effect=[
            page,
            SourceUnavailable("HTTP 500", source="moralis", status_code=500),
            page,
            {"result": [{"walletAddress": "W2"}]},
        ])

        with pytest.raises(SourceUnavailable):
            await source._poll()
        payloads = await source._poll()

        assert [(p["tokenAddress"], p["creator"]) for p in payloads] == [("M1", "W1"), ("M2", "W2")]

    @pytest.mark.asyncio
    async def test_missing_swaps_leave_creator_unset(self):
        """Test that a 404 on the swap lookup yields a record without a creator."""
        source = self._source(CreatorCache())
        source._request_json = AsyncMock(side_effect=[
            {"result": [{"tokenAddress": "M9"}]},
            SourceUnavailable("HTTP 404", source="moralis", status_code=404),
        ])

        payloads = await source._poll()

        assert payloads == [{"tokenAddress": "M9"}]

    @pytest.mark.asyncio
    async def test_backfill_walks_cursors(self):
        """Test that backfill follows cursors until none is returned."""
        source = self._source(CreatorCache())
        source._request_json = AsyncMock(side_effect=[
            {"result": [{"tokenAddress": "M1", "creator": "W1"}], "cursor": "c1"},
            {"result": [{"tokenAddress": "M2", "creator": "W2"}], "cursor": None},
        ])

        payloads = [p async for p in source.backfill(max_pages=5)]

        assert [p["tokenAddress"] for p in payloads] == ["M1", "M2"]
        second_call = source._request_json.await_args_list[1]
        assert second_call.kwargs["params"]["cursor"] == "c1"
        assert source._session is None


# ============================================================
# TWITTER
# ============================================================

class TestTwitterSearchSource:
    """Tests for the recent-search poller."""

    SEARCH_RESPONSE = {
        "data": [
            {"id": "2", "text": "newer", "author_id": "u1"},
            {"id": "1", "text": "older", "author_id": "u2"},
        ],
        "includes": {"users": [{"id": "u1", "username": "alice", "name": "Alice"}]},
        "meta": {"newest_id": "2", "result_count": 2},
    }

    def test_split_pairs_authors_oldest_first(self):
        """Test tweet/author pairing and ordering."""
        payloads = split_search_response(self.SEARCH_RESPONSE)
        assert [p["tweet"]["id"] for p in payloads] == ["1", "2"]
        assert payloads[0]["author"] == {}
        assert payloads[1]["author"]["username"] == "alice"

    def test_split_empty_response(self):
        """Test that a response without data yields nothing."""
        assert split_search_response({"meta": {"result_count": 0}}) == []

    @pytest.mark.asyncio
    async def test_poll_tracks_since_id(self):
        """Test that the newest id is sent on the following poll."""
        source = TwitterSearchSource(TwitterConfig(source_name="twitter", bearer_token="t", max_results=500))
        source._request_json = AsyncMock(side_effect=[self.SEARCH_RESPONSE, {"meta": {}}])

        await source._poll()
        await source._poll()

        first_params = source._request_json.await_args_list[0].kwargs["params"]
        second_params = source._request_json.await_args_list[1].kwargs["params"]
        assert "since_id" not in first_params
        assert first_params["max_results"] == 100
        assert second_params["since_id"] == "2"

    def test_bearer_header(self):
        """Test that requests authenticate with the bearer token."""
        source = TwitterSearchSource(TwitterConfig(source_name="twitter", bearer_token="t"))
        assert source._default_headers()["Authorization"] == "Bearer t"
