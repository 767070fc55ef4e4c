# tests/unit/test_config.py

import pytest

# Import the components to be tested
from s3_monitor.config import DEFAULT_APP_ID, DEFAULT_EVENT_SCHEMA, get_config
from s3_monitor.exceptions import ConfigurationError

_OPTIONAL_VARS = [
    "LOG_LEVEL",
    "APP_ID",
    "TRACKER_NAMESPACE",
    "EVENT_SCHEMA",
    "TIMEOUT_GUARD_THRESHOLD_SECONDS",
    "COLLECTOR_TIMEOUT_SECONDS",
    "EMITTER_BUFFER_SIZE",
    "EMITTER_MAX_WORKERS",
    "BASE64_ENCODE",
]


@pytest.fixture(autouse=True)
def clear_config_cache():
    """
    Fixture to automatically clear the lru_cache for get_config before each test.
    This ensures that each test gets a fresh configuration object based on its
    own monkeypatched environment, providing perfect test isolation.
    """
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def required_env(monkeypatch):
    """Sets only the required variables and clears every optional one."""
    monkeypatch.setenv("SERVICE_NAME", "test-service")
    monkeypatch.setenv("ENVIRONMENT", "test")
    for name in _OPTIONAL_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_valid_env(required_env, monkeypatch):
    """Sets a valid environment for a single test."""
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("APP_ID", "my-app")
    monkeypatch.setenv("TRACKER_NAMESPACE", "my-namespace")
    monkeypatch.setenv("EVENT_SCHEMA", "iglu:com.acme/event/jsonschema/2-0-0")
    monkeypatch.setenv("TIMEOUT_GUARD_THRESHOLD_SECONDS", "5")
    monkeypatch.setenv("COLLECTOR_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("EMITTER_BUFFER_SIZE", "10")
    monkeypatch.setenv("EMITTER_MAX_WORKERS", "4")
    monkeypatch.setenv("BASE64_ENCODE", "off")


def test_get_config_happy_path(mock_valid_env):
    """Tests that configuration loads correctly when all env vars are set."""
    # ACT: Call the factory function
    config = get_config()

    # ASSERT
    assert config.service_name == "test-service"
    assert config.environment == "test"
    assert config.log_level == "DEBUG"
    assert config.app_id == "my-app"
    assert config.tracker_namespace == "my-namespace"
    assert config.event_schema == "iglu:com.acme/event/jsonschema/2-0-0"
    assert config.timeout_guard_threshold_seconds == 5
    assert config.timeout_guard_threshold_ms == 5 * 1000
    assert config.collector_timeout_seconds == 2.5
    assert config.emitter_buffer_size == 10
    assert config.emitter_max_workers == 4
    assert config.base64_encode is False


def test_get_config_uses_defaults(required_env):
    """Tests that optional variables fall back to their default values."""
    # ACT
    config = get_config()

    # ASSERT: Check that defaults are used
    assert config.log_level == "INFO"
    assert config.app_id == DEFAULT_APP_ID == "s3-monitor-lambda"
    assert config.tracker_namespace == DEFAULT_APP_ID  # Falls back to the app id
    assert config.event_schema == DEFAULT_EVENT_SCHEMA
    assert config.timeout_guard_threshold_seconds == 2
    assert config.collector_timeout_seconds == 5
    assert config.emitter_buffer_size == 0
    assert config.emitter_max_workers == 1
    assert config.base64_encode is True


@pytest.mark.parametrize("missing", ["SERVICE_NAME", "ENVIRONMENT"])
def test_get_config_missing_required_env_var(required_env, monkeypatch, missing):
    """Tests that ConfigurationError is raised when required env vars are missing."""
    monkeypatch.delenv(missing)

    with pytest.raises(ConfigurationError, match=missing):
        get_config()


@pytest.mark.parametrize(
    "name, value",
    [
        ("LOG_LEVEL", "VERBOSE"),
        ("APP_ID", "   "),
        ("EVENT_SCHEMA", "https://example.com/schema.json"),
        ("TIMEOUT_GUARD_THRESHOLD_SECONDS", "0"),
        ("COLLECTOR_TIMEOUT_SECONDS", "-1"),
        ("COLLECTOR_TIMEOUT_SECONDS", "soon"),
        ("EMITTER_BUFFER_SIZE", "-1"),
        ("EMITTER_MAX_WORKERS", "0"),
        ("EMITTER_MAX_WORKERS", "not-a-number"),
    ],
)
def test_get_config_invalid_values(required_env, monkeypatch, name, value):
    """Tests that ConfigurationError is raised for invalid values."""
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        get_config()


def test_get_config_caching(required_env):
    """Tests that get_config returns the same instance when called multiple times."""
    # ACT
    config1 = get_config()
    config2 = get_config()

    # ASSERT
    assert config1 is config2  # Same object instance due to lru_cache
