import pytest

from vapi.config import AppConfig, expand_env, parse_duration
from vapi.config.settings import env_bool, env_int

_ENV_KEYS = (
    "VAPI_API_TOKEN",
    "VAPI_BASE_URL",
    "VAPI_TIMEOUT",
    "VAPI_DEBUG_DIR",
    "TUNNEL_PROVIDER",
    "NGROK_AUTH_TOKEN",
    "TUNNEL_PORT",
    "TUNNEL_SUBDOMAIN",
    "WEBHOOK_HOST",
    "EVENTS_BACKEND",
    "REDIS_HOST",
    "REDIS_PORT",
    "REDIS_DB",
    "REDIS_PASSWORD",
    "REDIS_SSL",
    "WORKERS_COUNT",
    "WORKERS_QUEUE_SIZE",
    "WORKERS_RETRY_ATTEMPTS",
    "WORKERS_RETRY_DELAY",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestParseDuration:
    @pytest.mark.parametrize(
        "raw, seconds",
        [("30s", 30.0), ("500ms", 0.5), ("1m", 60.0), ("2h", 7200.0), ("15", 15.0), (4, 4.0)],
    )
    def test_units(self, raw, seconds):
        assert parse_duration(raw) == seconds

    def test_empty_is_none(self):
        assert parse_duration(None) is None
        assert parse_duration("  ") is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_duration("soon")


class TestEnvHelpers:
    def test_env_int(self, monkeypatch):
        monkeypatch.setenv("SOME_PORT", "9000")
        assert env_int("SOME_PORT", 1) == 9000
        monkeypatch.setenv("SOME_PORT", "")
        assert env_int("SOME_PORT", 1) == 1

    def test_env_int_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("SOME_PORT", "eighty")
        with pytest.raises(ValueError, match="SOME_PORT"):
            env_int("SOME_PORT", 1)

    def test_env_bool(self, monkeypatch):
        monkeypatch.setenv("SOME_FLAG", "Yes")
        assert env_bool("SOME_FLAG") is True
        monkeypatch.setenv("SOME_FLAG", "off")
        assert env_bool("SOME_FLAG", True) is False
        monkeypatch.delenv("SOME_FLAG")
        assert env_bool("SOME_FLAG", True) is True


class TestFromEnv:
    def test_defaults(self, clean_env):
        config = AppConfig.from_env()

        assert config.vapi.base_url == "https://api.vapi.ai"
        assert config.vapi.timeout == 30.0
        assert config.tunnel.port == 8080
        assert config.events.backend == "redis"
        assert (config.events.redis.host, config.events.redis.port) == ("localhost", 6379)
        assert config.workers.count == 3
        assert config.workers.queue_size == 100
        assert config.workers.retry_attempts == 3
        assert config.workers.retry_delay == 5.0

    def test_overrides(self, clean_env):
        clean_env.setenv("VAPI_API_TOKEN", "secret")
        clean_env.setenv("VAPI_TIMEOUT", "1m")
        clean_env.setenv("TUNNEL_PORT", "9090")
        clean_env.setenv("REDIS_HOST", "cache")
        clean_env.setenv("REDIS_SSL", "true")
        clean_env.setenv("WORKERS_RETRY_ATTEMPTS", "0")
        clean_env.setenv("WORKERS_RETRY_DELAY", "250ms")

        config = AppConfig.from_env()

        assert config.vapi.api_token == "secret"
        assert config.vapi.timeout == 60.0
        assert config.tunnel.port == 9090
        assert config.events.redis.host == "cache"
        assert config.events.redis.ssl is True
        assert config.workers.retry_attempts == 0
        assert config.workers.retry_delay == 0.25


class TestFromYaml:
    def test_expands_environment_references(self, clean_env, tmp_path):
        clean_env.setenv("TEST_VAPI_TOKEN", "from-env")
        clean_env.delenv("TEST_UNSET_PASSWORD", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            "vapi:\n"
            "  api_token: ${TEST_VAPI_TOKEN}\n"
            "  timeout: 10s\n"
            "tunnel:\n"
            "  port: 9000\n"
            "events:\n"
            "  redis:\n"
            "    host: redis.internal\n"
            "    password: $TEST_UNSET_PASSWORD\n"
            "workers:\n"
            "  count: 8\n"
            "  retry_attempts: 0\n"
        )

        config = AppConfig.from_yaml(path)

        assert config.vapi.api_token == "from-env"
        assert config.vapi.timeout == 10.0
        assert config.vapi.base_url == "https://api.vapi.ai"
        assert config.tunnel.port == 9000
        assert config.events.backend == "redis"
        assert config.events.redis.host == "redis.internal"
        assert config.events.redis.password == ""
        assert config.workers.count == 8
        assert config.workers.retry_attempts == 0
        assert config.workers.queue_size == 100

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config = AppConfig.from_yaml(path)

        assert config.workers.retry_attempts == 3
        assert config.tunnel.host == "0.0.0.0"

    def test_non_mapping_document_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            AppConfig.from_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            AppConfig.from_yaml(tmp_path / "absent.yaml")


def test_expand_env(monkeypatch):
    monkeypatch.setenv("TEST_HOST", "example")
    monkeypatch.delenv("TEST_MISSING", raising=False)
    assert expand_env("http://${TEST_HOST}:$TEST_MISSING/") == "http://example:/"


def test_to_dict_redacts_secrets():
    config = AppConfig()
    config.vapi.api_token = "secret"
    config.events.redis.password = "hunter2"

    data = config.to_dict()

    assert data["vapi"]["api_token_set"] is True
    assert data["events"]["redis"]["password_set"] is True
    assert "secret" not in str(data)
    assert "hunter2" not in str(data)
