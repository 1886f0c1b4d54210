#!/usr/bin/env python
# -*- encoding: utf-8 -*-
"""
Unit tests for SPHttpClient: default headers, request digests and the
retry policy.

Rule: None of the tests in this file should initiate any internet
communication.  We use a FakeFetchClient to emulate the server, and
patch out the sleeping between retries.
"""
from unittest.mock import AsyncMock
from unittest.mock import call
from unittest.mock import patch

import pytest

from fixture_helpers import BASE_URL
from fixture_helpers import create_response
from fixture_helpers import digest_response
from fixture_helpers import FakeFetchClient
from spfluent.config import RuntimeConfig
from spfluent.digest import DigestStore
from spfluent.http import SPHttpClient
from spfluent.lib import error
from spfluent.protocol.constants import CLIENT_TAG
from spfluent.protocol.constants import USER_AGENT


def make_client(*responses, **config):
    fake = FakeFetchClient(*responses)
    client = SPHttpClient(RuntimeConfig(**config), DigestStore(), fake)
    return client, fake


class TestHeaders:
    @pytest.mark.asyncio
    async def test_default_headers(self) -> None:
        client, fake = make_client(create_response({}))
        await client.get(f"{BASE_URL}/_api/web")
        headers = fake.calls[0][1]["headers"]
        assert headers["Accept"] == "application/json"
        assert headers["Content-Type"] == "application/json;odata=verbose;charset=utf-8"
        assert headers["X-ClientService-ClientTag"] == CLIENT_TAG
        assert headers["User-Agent"] == USER_AGENT

    @pytest.mark.asyncio
    async def test_request_headers_win_over_global_headers(self) -> None:
        client, fake = make_client(
            create_response({}),
            headers={"Accept": "application/json;odata=nometadata", "X-Global": "1"},
        )
        await client.get(
            f"{BASE_URL}/_api/web", {"headers": {"accept": "application/json;odata=verbose"}}
        )
        headers = fake.calls[0][1]["headers"]
        assert headers["Accept"] == "application/json;odata=verbose"
        assert headers["X-Global"] == "1"

    @pytest.mark.asyncio
    async def test_relative_url_is_refused(self) -> None:
        client, fake = make_client()
        with pytest.raises(error.APIUrlException):
            await client.get("_api/web")
        assert fake.calls == []


class TestDigest:
    @pytest.mark.asyncio
    async def test_post_fetches_digest(self) -> None:
        client, fake = make_client(digest_response("0xABC"), create_response({"d": {}}))
        response = await client.post(f"{BASE_URL}/_api/web/lists", {"body": "{}"})
        assert response.status == 200
        assert fake.urls == [
            f"{BASE_URL}/_api/contextinfo",
            f"{BASE_URL}/_api/web/lists",
        ]
        assert fake.methods == ["POST", "POST"]
        assert fake.calls[1][1]["headers"]["X-RequestDigest"] == "0xABC"

    @pytest.mark.asyncio
    async def test_digest_is_cached_per_web(self) -> None:
        client, fake = make_client(
            digest_response("0xABC"),
            create_response(status=204),
            create_response(status=204),
        )
        await client.post(f"{BASE_URL}/_api/web/lists")
        await client.delete(f"{BASE_URL}/_api/web/lists('x')")
        assert len(fake.calls) == 3
        assert fake.calls[2][1]["headers"]["X-RequestDigest"] == "0xABC"

    @pytest.mark.asyncio
    async def test_authorization_makes_digest_superfluous(self) -> None:
        client, fake = make_client(
            create_response(status=204), headers={"Authorization": "Bearer t"}
        )
        await client.post(f"{BASE_URL}/_api/web/lists")
        assert fake.urls == [f"{BASE_URL}/_api/web/lists"]
        assert "X-RequestDigest" not in fake.calls[0][1]["headers"]

    @pytest.mark.asyncio
    async def test_explicit_digest_is_kept(self) -> None:
        client, fake = make_client(create_response(status=204))
        await client.post(f"{BASE_URL}/_api/web", {"headers": {"X-RequestDigest": "mine"}})
        assert len(fake.calls) == 1
        assert fake.calls[0][1]["headers"]["X-RequestDigest"] == "mine"

    @pytest.mark.asyncio
    async def test_post_without_api_segment(self) -> None:
        client, fake = make_client()
        with pytest.raises(error.APIUrlException):
            await client.post(f"{BASE_URL}/somewhere")
        assert fake.calls == []


class TestRetry:
    @pytest.mark.asyncio
    @patch("spfluent.http.asyncio.sleep", new_callable=AsyncMock)
    async def test_throttled_then_success(self, sleep) -> None:
        client, fake = make_client(
            create_response(status=429, reason="Too Many Requests"),
            create_response(status=503, reason="Service Unavailable"),
            create_response({"d": {"Title": "x"}}),
        )
        response = await client.get(f"{BASE_URL}/_api/web")
        assert response.status == 200
        assert len(fake.calls) == 3
        assert sleep.await_args_list == [call(0.1), call(0.2)]

    @pytest.mark.asyncio
    @patch("spfluent.http.asyncio.sleep", new_callable=AsyncMock)
    async def test_gives_up_after_seven_attempts(self, sleep) -> None:
        client, fake = make_client(
            *[create_response(status=429, reason="Too Many Requests") for _ in range(10)]
        )
        with pytest.raises(error.HttpRequestError) as excinfo:
            await client.get(f"{BASE_URL}/_api/web")
        assert excinfo.value.status == 429
        assert len(fake.calls) == 7
        assert sleep.await_args_list == [
            call(0.1),
            call(0.2),
            call(0.4),
            call(0.8),
            call(1.6),
            call(3.2),
        ]

    @pytest.mark.asyncio
    @patch("spfluent.http.asyncio.sleep", new_callable=AsyncMock)
    async def test_other_errors_are_not_retried(self, sleep) -> None:
        client, fake = make_client(create_response(status=404, reason="Not Found"))
        response = await client.get(f"{BASE_URL}/_api/web")
        assert response.status == 404
        assert len(fake.calls) == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("spfluent.http.asyncio.sleep", new_callable=AsyncMock)
    async def test_exception_with_retry_status(self, sleep) -> None:
        throttled = error.HttpRequestError(
            "throttled", create_response(status=503, reason="Service Unavailable")
        )
        client, fake = make_client(throttled, create_response({}))
        response = await client.get(f"{BASE_URL}/_api/web")
        assert response.status == 200
        assert len(fake.calls) == 2

    @pytest.mark.asyncio
    @patch("spfluent.http.asyncio.sleep", new_callable=AsyncMock)
    async def test_transport_exception_is_raised(self, sleep) -> None:
        client, fake = make_client(ConnectionError("boom"), create_response({}))
        with pytest.raises(ConnectionError):
            await client.get(f"{BASE_URL}/_api/web")
        assert len(fake.calls) == 1
        sleep.assert_not_awaited()
