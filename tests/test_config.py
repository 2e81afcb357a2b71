import logging

import pytest
import yaml

from smz.config import EngineConfig
from smz.errors import ConfigurationError
from smz.utils.config_loader import load_config, load_credentials, load_engine_config


def test_defaults_are_valid():
    cfg = EngineConfig()
    cfg.validate()
    assert cfg.band_fraction("10m") == pytest.approx(0.0006)
    assert cfg.band_fraction("1h") == pytest.approx(0.0005)
    # unknown timeframe falls back to the widest band
    assert cfg.band_fraction("2h") == pytest.approx(0.0006)
    assert cfg.min_hits_for("30m") == 2


@pytest.mark.parametrize("overrides", [
    {"pin_wick_fraction": 1.5},
    {"min_body_outside_ratio": -0.1},
    {"cooldown_bars": -1},
    {"max_zones": 0},
    {"pivot_window": 2.5},
    {"band_basis_points": {"10m": 0.0}},
    {"min_hits": {"10m": 0}},
    {"base_timeframes": []},
    {"confirmation_timeframe": "fortnight"},
    {"dedupe_epsilon_pct": 1.0},
    {"lookback_days": 0},
    {"thrust_volume_ratio": 0},
])
def test_out_of_range_tunables(overrides):
    with pytest.raises(ConfigurationError):
        EngineConfig(**overrides).validate()


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


def test_from_dict_ignores_unknown_keys(caplog):
    with caplog.at_level(logging.WARNING, logger="SMZ.Config"):
        cfg = EngineConfig.from_dict({"cooldown_bars": 10, "colour": "blue"})
    assert cfg.cooldown_bars == 10
    assert "colour" in caplog.text


def test_from_dict_validates():
    with pytest.raises(ConfigurationError):
        EngineConfig.from_dict({"max_zones": -3})


def test_load_config_and_engine_section(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "system:\n"
        "  symbol_list: [XAUUSD]\n"
        "engine:\n"
        "  lookback_days: 5\n"
        "  band_basis_points: {'10m': 8.0, '30m': 6.0, '1h': 6.0}\n"
    )
    config = load_config(str(path))
    assert config["system"]["symbol_list"] == ["XAUUSD"]

    engine_cfg = load_engine_config(config)
    assert engine_cfg.lookback_days == 5
    assert engine_cfg.band_fraction("10m") == pytest.approx(0.0008)

    assert load_engine_config({}) == EngineConfig()


def test_load_config_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))

    bad = tmp_path / "bad.yaml"
    bad.write_text("engine: [unclosed\n")
    with pytest.raises(yaml.YAMLError):
        load_config(str(bad))


@pytest.fixture
def telegram_env(monkeypatch):
    # register both keys with monkeypatch so whatever load_dotenv sets is undone
    for key in ("TELEGRAM_TOKEN", "TELEGRAM_CHAT_ID"):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_load_credentials(tmp_path, telegram_env):
    env = tmp_path / ".env"
    env.write_text("TELEGRAM_TOKEN=abc123\nTELEGRAM_CHAT_ID=42\n")

    creds = load_credentials(str(env))
    assert creds == {"telegram_token": "abc123", "telegram_chat_id": "42"}
