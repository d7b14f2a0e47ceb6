import platformdirs
import pytest
import requests

from provider_registry.utils import reset_api_tracking

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used across the suite."""
    config.addinivalue_line("markers", "unit: fast, isolated unit tests")
    config.addinivalue_line(
        "markers", "core_downloads: release harvesting and download resolution"
    )
    config.addinivalue_line(
        "markers", "infrastructure: logging, configuration, cache and CLI plumbing"
    )


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs and XDG directories at a temporary layout and clear registry environment variables.
    """
    base = tmp_path_factory.mktemp("provider_registry")
    cache_dir = base / "cache"
    config_dir = base / "config"
    state_dir = base / "state"

    for path in (cache_dir, config_dir, state_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CACHE_HOME", str(cache_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setenv("XDG_STATE_HOME", str(state_dir))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("PROVIDER_REGISTRY_CONFIG", raising=False)

    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_state_dir", lambda *_args, **_kwargs: str(state_dir)
    )


@pytest.fixture(autouse=True)
def _reset_api_tracking():
    reset_api_tracking()
    yield
    reset_api_tracking()


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.put = _block_network
    requests.delete = _block_network
    requests.head = _block_network
    requests.patch = _block_network
    requests.options = _block_network
    requests.Session.request = _block_network


@pytest.fixture
def provider_release():
    """A complete provider release: two platform archives, checksums, signature and manifest."""
    from tests.feed_test_utils import make_provider_release

    return make_provider_release("1.2.0")


@pytest.fixture
def feed():
    from tests.feed_test_utils import FakeReleaseFeed

    return FakeReleaseFeed()


@pytest.fixture
def memory_store():
    from tests.feed_test_utils import MemoryCacheStore

    return MemoryCacheStore()
