"""
Shared test fixtures
"""

import pytest

from restaurant_kb.core.http import HttpResponse, HttpTransport
from restaurant_kb.core.logging import setup_logging_from_config


@pytest.fixture(scope="session", autouse=True)
def configure_logging(tmp_path_factory):
    """Components that use get_logger() need logging to be set up"""
    log_dir = tmp_path_factory.mktemp("logs")
    setup_logging_from_config({
        'logging': {'level': 'DEBUG', 'file': str(log_dir / "test_restaurant_kb.log")}
    })


class FakeTransport(HttpTransport):
    """
    In-memory transport.

    Routes map a URL to ``(status, body)``, ``(status, body, headers)``, an
    exception instance, or a list of those consumed one per request (the last
    entry repeats). Unknown URLs answer 404.
    """

    def __init__(self, routes=None):
        super().__init__({})
        self.routes = dict(routes or {})
        self.requests = []

    async def initialize(self):
        self._initialized = True

    async def cleanup(self):
        self._initialized = False

    async def get(self, url, timeout):
        self.requests.append(url)
        route = self.routes.get(url)
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if route is None:
            return HttpResponse(url=url, status=404)
        if isinstance(route, Exception):
            raise route
        status, text, *rest = route
        return HttpResponse(url=url, status=status, text=text, headers=rest[0] if rest else {})


@pytest.fixture
def make_transport():
    """Factory for FakeTransport instances"""
    return FakeTransport


@pytest.fixture
def no_sleep():
    """Records requested delays instead of sleeping"""
    delays = []

    async def sleep(delay):
        delays.append(delay)

    sleep.delays = delays
    return sleep
