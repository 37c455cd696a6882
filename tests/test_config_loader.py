import pytest

from bulkproc.config import _ENV_OVERRIDES, EngineConfig, load_engine_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file():
    cfg = load_engine_config(load_env=False)
    assert cfg == EngineConfig()
    assert cfg.requests_per_minute == 60
    assert cfg.requests_per_day == 10_000
    assert cfg.max_concurrency == 10


def test_load_engine_config(tmp_path):
    yaml_text = """
model: deepseek-reasoner
request_timeout: 30
max_retries: 2
rate_limit_enabled: "false"
requests_per_minute: 20
team: research
"""
    cfg_path = tmp_path / "engine.yaml"
    cfg_path.write_text(yaml_text)
    cfg = load_engine_config(cfg_path, load_env=False)
    assert cfg.model == "deepseek-reasoner"
    assert cfg.request_timeout == 30
    assert cfg.max_retries == 2
    assert cfg.rate_limit_enabled is False
    assert cfg.requests_per_minute == 20
    assert cfg.extra["team"] == "research"


def test_env_overrides_file(tmp_path, monkeypatch):
    cfg_path = tmp_path / "engine.yaml"
    cfg_path.write_text("model: deepseek-chat\nmax_retries: 5\n")
    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-env")
    monkeypatch.setenv("BULKPROC_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("BULKPROC_MAX_RETRIES", "1")
    monkeypatch.setenv("BULKPROC_RATE_LIMIT_ENABLED", "0")
    monkeypatch.setenv("BULKPROC_REQUEST_TIMEOUT", "12.5")

    cfg = load_engine_config(cfg_path, load_env=False)

    assert cfg.api_key == "sk-env"
    assert cfg.model == "gpt-4o-mini"
    assert cfg.max_retries == 1
    assert cfg.rate_limit_enabled is False
    assert cfg.request_timeout == 12.5


def test_empty_env_value_ignored(monkeypatch):
    monkeypatch.setenv("BULKPROC_MODEL", "")
    cfg = load_engine_config(load_env=False)
    assert cfg.model == "deepseek-chat"


def test_empty_file_uses_defaults(tmp_path):
    cfg_path = tmp_path / "empty.yaml"
    cfg_path.write_text("")
    assert load_engine_config(cfg_path, load_env=False) == EngineConfig()


def test_non_mapping_file_rejected(tmp_path):
    cfg_path = tmp_path / "list.yaml"
    cfg_path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_engine_config(cfg_path, load_env=False)
