"""测试公共 fixture"""

from datetime import datetime, timedelta, timezone

import pytest

from keyvault.plugins.api_keys import KeyStore, MemoryClipboard


class FakeClock:
    """每次调用前进 1 秒的时钟"""

    def __init__(self, start: datetime = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / ".keyvault" / "api-keys.json"


@pytest.fixture
def store(store_path, clock):
    return KeyStore(store_path, clock=clock)


@pytest.fixture
def clipboard():
    return MemoryClipboard()
