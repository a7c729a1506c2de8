"""Pytest configuration and fixtures for pyblueshift tests.

This module provides fixtures for both unit tests (with mocks) and
integration tests (with a real receiver).

Configuration is loaded from tests/devices.yaml, with environment
variable overrides supported for CI/CD flexibility.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml
from aiohttp import ClientSession

from pyblueshift.config import reload_settings
from pyblueshift.exceptions import BluOSConnectionError
from pyblueshift.models import Receiver

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


# ============================================================================
# Configuration Loading
# ============================================================================

TESTS_DIR = Path(__file__).parent
CONFIG_FILE = TESTS_DIR / "devices.yaml"


def _load_config() -> dict[str, Any]:
    """Load test configuration from devices.yaml."""
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE) as f:
            return yaml.safe_load(f) or {}
    return {}


_CONFIG = _load_config()

# Environment variables override config file
# Example: BLUESHIFT_TEST_RECEIVER=192.168.1.40 pytest tests/integration/
BLUESHIFT_TEST_RECEIVER = os.getenv("BLUESHIFT_TEST_RECEIVER") or _CONFIG.get("receiver")
BLUESHIFT_TEST_PORT = int(os.getenv("BLUESHIFT_TEST_PORT", str(_CONFIG.get("port", 11000))))
BLUESHIFT_TEST_LOCAL_ADDRESS = os.getenv("BLUESHIFT_TEST_LOCAL_ADDRESS") or _CONFIG.get("local_address")
BLUESHIFT_TEST_NETMASK = os.getenv("BLUESHIFT_TEST_NETMASK") or _CONFIG.get("netmask")


# ============================================================================
# Sample protocol bodies
# ============================================================================

STATUS_XML = """<status etag="4e266c9fbfba6d13d1a4d6ff4bd2e1e6">
  <album>Kind of Blue</album>
  <artist>Miles Davis</artist>
  <name>Living Room</name>
  <modelName>NODE 2i</modelName>
  <state>stream</state>
  <title1>Jazz24</title1>
  <title2>Miles Davis - So What</title2>
  <title3>Bill Evans &amp; Jim Hall - Skating in Central Park</title3>
</status>"""

PRESETS_XML = """<presets prid="2">
  <preset id="1" name="Jazz24" url="TuneIn:s34682" image="http://cdn-radiotime-logos.tunein.com/s34682q.png"/>
  <preset id="2" name="FIP &amp; Friends" url="http://icecast.radiofrance.fr/fip-hifi.aac?id=radiofrance&amp;a=1" image="/images/fip.png"/>
  <preset
      id="3"
      name="Optical"
      url="Capture:bluos:optical1"/>
</presets>"""

RADIO_BROWSE_XML = """<radiotime service="TuneIn">
  <item text="Local Radio" URL="https%3A%2F%2Fapi.radiotime.com%2Fprofiles%3Fserial%3DABC123%26partnerId%3DpX9%26formats%3Dmp3" type="link"/>
</radiotime>"""


# ============================================================================
# Unit Test Fixtures (Mocks)
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep user config files and BLUESHIFT_* env vars out of unit tests."""
    for name in list(os.environ):
        if name.startswith("BLUESHIFT_") and not name.startswith("BLUESHIFT_TEST_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BLUESHIFT_CONFIG_FILE", str(tmp_path / "missing-config.json"))
    reload_settings()
    yield
    reload_settings()


@pytest.fixture
def receiver() -> Receiver:
    """A receiver used across unit tests."""
    return Receiver(host="192.168.1.40", label="Living Room")


@pytest.fixture
def mock_aiohttp_session(request):
    """Mock aiohttp ClientSession for testing.

    This fixture creates a mock session that properly simulates aiohttp's
    ClientSession behavior, including proper cleanup to avoid resource warnings.
    """
    session = MagicMock(spec=ClientSession)
    session._closed = False
    session.closed = False
    session.close = AsyncMock()

    def cleanup():
        session._closed = True
        session.closed = True

    request.addfinalizer(cleanup)

    return session


def create_mock_response(body: str, status: int = 200) -> MagicMock:
    """Create a mock HTTP response usable as ``async with session.get(...)``.

    Args:
        body: Text body.
        status: HTTP status code.

    Returns:
        Mock ClientResponse object.
    """
    response = MagicMock()
    response.status = status
    response.headers = {"Content-Type": "text/xml"}
    response.text = AsyncMock(return_value=body)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


@pytest.fixture
def make_response():
    """Factory for mock responses (see create_mock_response)."""
    return create_mock_response


@pytest.fixture
def status_xml() -> str:
    """A /Status body of a receiver streaming radio."""
    return STATUS_XML


@pytest.fixture
def presets_xml() -> str:
    """A /Presets body with a TuneIn, a direct and an input preset."""
    return PRESETS_XML


@pytest.fixture
def radio_browse_xml() -> str:
    """A /RadioBrowse?service=TuneIn body carrying partner credentials."""
    return RADIO_BROWSE_XML


class FakeHTTP:
    """Stand-in for ``fetch_text`` that answers by URL substring.

    Routes are checked in insertion order; unmatched URLs raise a connection error.
    """

    def __init__(self) -> None:
        self.routes: list[tuple[str, str | None, Exception | None]] = []
        self.calls: list[tuple[str, dict[str, str]]] = []

    def add(self, match: str, body: str | None = None, error: Exception | None = None) -> FakeHTTP:
        self.routes.append((match, body, error))
        return self

    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]

    async def __call__(self, url, connect_timeout, read_timeout, session=None, params=None) -> str:
        self.calls.append((url, dict(params or {})))
        for match, body, error in self.routes:
            if match in url:
                if error is not None:
                    raise error
                return body or ""
        raise BluOSConnectionError("Connection refused", url=url)


@pytest.fixture
def fake_http():
    """Patch every module-level ``fetch_text`` reference with one FakeHTTP."""
    fake = FakeHTTP()
    with (
        patch("pyblueshift.client.fetch_text", fake),
        patch("pyblueshift.resolver.fetch_text", fake),
        patch("pyblueshift.playlist.fetch_text", fake),
        patch("pyblueshift.discovery.fetch_text", fake),
    ):
        yield fake


# ============================================================================
# Integration Test Fixtures (Real Receiver)
# ============================================================================


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires real receiver)",
    )
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (may take longer to run)",
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark integration tests."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def real_receiver_available():
    """Check if a real receiver is available for integration testing."""
    return BLUESHIFT_TEST_RECEIVER is not None


@pytest.fixture
def real_receiver(real_receiver_available) -> Receiver:
    """Receiver for integration testing.

    Requires BLUESHIFT_TEST_RECEIVER (or `receiver:` in tests/devices.yaml).
    Example: BLUESHIFT_TEST_RECEIVER=192.168.1.40 pytest tests/integration/
    """
    if not real_receiver_available:
        pytest.skip("No real receiver configured. Set BLUESHIFT_TEST_RECEIVER environment variable.")
    return Receiver(host=BLUESHIFT_TEST_RECEIVER, port=BLUESHIFT_TEST_PORT, label="Test Receiver")


@pytest.fixture
def real_network():
    """(local_address, netmask) for scanning, skipping when not configured."""
    if not BLUESHIFT_TEST_LOCAL_ADDRESS:
        pytest.skip("Set BLUESHIFT_TEST_LOCAL_ADDRESS (and optionally BLUESHIFT_TEST_NETMASK) to scan.")
    return BLUESHIFT_TEST_LOCAL_ADDRESS, BLUESHIFT_TEST_NETMASK
