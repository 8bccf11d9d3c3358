"""
Tests for the HTTP transport

Tests redirect following, Retry-After parsing and the aiohttp transport
with aiohttp responses mocked by aioresponses.
"""

import asyncio

import aiohttp
from aioresponses import aioresponses
import pytest

from restaurant_kb.core.base import HTTPError, NetworkError
from restaurant_kb.core.http import (
    AiohttpTransport,
    HttpResponse,
    fetch_following_redirects,
    parse_retry_after,
)


class TestHttpHelpers:
    """Test suite for response helpers"""

    def test_header_lookup_is_case_insensitive(self):
        response = HttpResponse(url='https://torstens.se/', status=200, headers={'Retry-After': '5'})

        assert response.header('retry-after') == '5'
        assert response.header('Location') is None

    @pytest.mark.parametrize("value, expected", [
        ('5', 5.0),
        (' 2.5 ', 2.5),
        ('-3', 0.0),
        ('Wed, 21 Oct 2015 07:28:00 GMT', None),
        (None, None),
    ])
    def test_parse_retry_after(self, value, expected):
        assert parse_retry_after(value) == expected


class TestFetchFollowingRedirects:
    """Test suite for manual redirect handling"""

    @pytest.mark.asyncio
    async def test_relative_redirect(self, make_transport):
        transport = make_transport({
            'https://torstens.se/menu': (301, '', {'Location': '/meny'}),
            'https://torstens.se/meny': (200, '<h1>Meny</h1>'),
        })

        response = await fetch_following_redirects(transport, 'https://torstens.se/menu', timeout=5)

        assert response.url == 'https://torstens.se/meny'
        assert response.text == '<h1>Meny</h1>'
        assert transport.requests == ['https://torstens.se/menu', 'https://torstens.se/meny']

    @pytest.mark.asyncio
    async def test_redirect_without_location(self, make_transport):
        transport = make_transport({'https://torstens.se/': (302, '')})

        with pytest.raises(HTTPError) as exc_info:
            await fetch_following_redirects(transport, 'https://torstens.se/', timeout=5)
        assert exc_info.value.status == 302

    @pytest.mark.asyncio
    async def test_rate_limited(self, make_transport):
        transport = make_transport({'https://torstens.se/': (429, '', {'Retry-After': '7'})})

        with pytest.raises(HTTPError) as exc_info:
            await fetch_following_redirects(transport, 'https://torstens.se/', timeout=5)
        assert exc_info.value.status == 429
        assert exc_info.value.retry_after == 7.0

    @pytest.mark.asyncio
    async def test_too_many_redirects(self, make_transport):
        transport = make_transport({'https://torstens.se/a': (302, '', {'Location': '/a'})})

        with pytest.raises(NetworkError):
            await fetch_following_redirects(transport, 'https://torstens.se/a', timeout=5, max_redirects=2)
        assert len(transport.requests) == 3


class TestAiohttpTransport:
    """Test suite for AiohttpTransport"""

    @pytest.fixture
    def transport(self):
        return AiohttpTransport({'crawl': {'user_agent': 'TestBot/1.0'}})

    @pytest.mark.asyncio
    async def test_get_requires_initialize(self, transport):
        with pytest.raises(RuntimeError):
            await transport.get('https://torstens.se/', timeout=5)

    @pytest.mark.asyncio
    async def test_session_lifecycle(self, transport):
        async with transport:
            assert transport.is_initialized()
            assert transport.session.headers['User-Agent'] == 'TestBot/1.0'

        assert transport.session is None
        assert not transport.is_initialized()

    @pytest.mark.asyncio
    async def test_get(self, transport):
        with aioresponses() as m:
            m.get('https://torstens.se/', status=200, body='<p>Hej</p>', content_type='text/html')

            async with transport:
                result = await transport.get('https://torstens.se/', timeout=5)

        assert result.url == 'https://torstens.se/'
        assert result.status == 200
        assert result.text == '<p>Hej</p>'
        assert result.header('content-type').startswith('text/html')

    @pytest.mark.asyncio
    async def test_redirect_is_not_followed(self, transport):
        with aioresponses() as m:
            m.get('https://torstens.se/menu', status=301, headers={'Location': '/meny'})

            async with transport:
                result = await transport.get('https://torstens.se/menu', timeout=5)

        assert result.status == 301
        assert result.header('Location') == '/meny'

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, transport):
        with aioresponses() as m:
            m.get('https://torstens.se/', exception=asyncio.TimeoutError())

            async with transport:
                with pytest.raises(NetworkError) as exc_info:
                    await transport.get('https://torstens.se/', timeout=5)

        assert "Timeout after 5s" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_client_error_is_network_error(self, transport):
        with aioresponses() as m:
            m.get('https://torstens.se/', exception=aiohttp.ClientConnectionError("connection refused"))

            async with transport:
                with pytest.raises(NetworkError):
                    await transport.get('https://torstens.se/', timeout=5)
