"""Shared test fixtures."""

import importlib.util
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from types import ModuleType

import httpx
import pytest

from dhis2_api import Dhis2, Dhis2Config

PROJECT_ROOT = Path(__file__).resolve().parent.parent

BASE_URL = "https://dhis2.test"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def flow_module() -> Callable[[str], ModuleType]:
    """Factory fixture that imports a flow file by name.

    Usage::

        def test_something(flow_module):
            mod = flow_module("dhis2_data_value_import")
            mod.dhis2_data_value_import_flow()
    """

    class _Loader:
        @staticmethod
        def __call__(name: str) -> ModuleType:
            path = PROJECT_ROOT / "flows" / f"{name}.py"
            spec = importlib.util.spec_from_file_location(name, path)
            assert spec and spec.loader
            mod = importlib.util.module_from_spec(spec)
            sys.modules[name] = mod
            spec.loader.exec_module(mod)
            return mod

    return _Loader()


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> Dhis2Config:
    return Dhis2Config.basic(BASE_URL, "admin", "district", poll_interval=1.0, poll_timeout=10.0)


@pytest.fixture
def make_client(config: Dhis2Config) -> Iterator[Callable[[Handler], Dhis2]]:
    """Factory fixture: build a ``Dhis2`` client served by *handler*."""
    clients: list[httpx.Client] = []

    def _make(handler: Handler) -> Dhis2:
        http = httpx.Client(
            base_url=config.api_url,
            auth=config.auth,
            transport=httpx.MockTransport(handler),
        )
        clients.append(http)
        return Dhis2(config, http=http)

    yield _make

    for http in clients:
        http.close()
