"""
Root conftest for tests.

Ensures:
1. No REALIP_* variables from the developer's shell leak into tests
2. Cached settings and request IDs are reset between tests
3. A stray .env file in the working directory is never read
"""

from collections.abc import Iterator
from pathlib import Path

import pytest

from libs.common.logging.context import clear_request_id
from libs.realip.settings import get_settings

_REALIP_ENV_VARS = (
    "REALIP_TRUSTED_HEADER",
    "REALIP_IP_HEADERS",
    "REALIP_TRUSTED_PROXIES",
    "REALIP_TRUST_ALL_PROXIES",
    "REALIP_DNS_TIMEOUT_SECONDS",
    "REALIP_SERVICE_NAME",
    "REALIP_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_realip_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Isolate each test from ambient REALIP_* configuration."""
    for name in _REALIP_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Settings read .env from the working directory
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    clear_request_id()
    yield
    get_settings.cache_clear()
    clear_request_id()

