import pytest

from taskverse.config import MUMBAI_CHAIN_ID, ConfigError, load_settings

ENV_VARS = (
    "TASKVERSE_ENV",
    "TASKVERSE_TARGET_CHAIN_ID",
    "TASKVERSE_LATENCY_SECONDS",
    "TASKVERSE_LEDGER_LATENCY_SECONDS",
    "TASKVERSE_SEED_TASKS",
    "TASKVERSE_TASK_BACKEND",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # setenv first so monkeypatch restores anything load_dotenv adds.
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return tmp_path / ".env"


def test_defaults(clean_env):
    settings = load_settings(dotenv_path=clean_env)

    assert settings.environment == "local"
    assert settings.target_chain_id == MUMBAI_CHAIN_ID
    assert settings.latency_seconds == 0.5
    assert settings.ledger_latency_seconds == 2.0
    assert settings.seed_tasks is True
    assert settings.task_backend == "memory"


def test_env_overrides(clean_env, monkeypatch):
    monkeypatch.setenv("TASKVERSE_TARGET_CHAIN_ID", "0xAA36A7")
    monkeypatch.setenv("TASKVERSE_LATENCY_SECONDS", "0")
    monkeypatch.setenv("TASKVERSE_SEED_TASKS", "0")
    monkeypatch.setenv("TASKVERSE_TASK_BACKEND", "Store")

    settings = load_settings(dotenv_path=clean_env)

    assert settings.target_chain_id == "0xaa36a7"
    assert settings.latency_seconds == 0.0
    assert settings.seed_tasks is False
    assert settings.task_backend == "store"


def test_dotenv_file_is_loaded(clean_env):
    clean_env.write_text("TASKVERSE_ENV=staging\n", encoding="utf-8")

    assert load_settings(dotenv_path=clean_env).environment == "staging"


@pytest.mark.parametrize(
    "name,value",
    [
        ("TASKVERSE_LATENCY_SECONDS", "fast"),
        ("TASKVERSE_LEDGER_LATENCY_SECONDS", "-1"),
        ("TASKVERSE_TARGET_CHAIN_ID", "80001"),
        ("TASKVERSE_TASK_BACKEND", "postgres"),
    ],
)
def test_invalid_values_raise_config_error(clean_env, monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigError):
        load_settings(dotenv_path=clean_env)
