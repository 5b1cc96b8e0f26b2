"""Tests for settings loading, validation and application wiring."""

import pytest
from pydantic import ValidationError

from conftest import TEST_MNEMONIC
from swaprefund.config import ConfigError, Settings
from swaprefund.main import Application, main, parse_crontab

REQUIRED_ENV = {
    "KAVA_LCD_URL": "http://kava.test",
    "KAVA_MNEMONIC": TEST_MNEMONIC,
    "BINANCE_CHAIN_LCD_URL": "http://bnb.test",
    "BINANCE_CHAIN_MNEMONIC": TEST_MNEMONIC,
    "BINANCE_CHAIN_DEPUTY_ADDRESSES": "bnb1deputya, bnb1deputyb,",
}


@pytest.fixture
def full_env(monkeypatch):
    for name, value in REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.scan_limit == 100
        assert settings.query_timeout_seconds == 5.0
        assert settings.kava_pacing_seconds == 25.0
        assert settings.binance_chain_pacing_seconds == 5.0
        assert settings.binance_chain_network == "mainnet"

    def test_deputy_addresses_parsed(self, full_env):
        settings = Settings(_env_file=None)

        assert settings.deputy_addresses == ["bnb1deputya", "bnb1deputyb"]

    def test_validate_required_lists_missing(self, monkeypatch):
        monkeypatch.setenv("KAVA_LCD_URL", "http://kava.test")
        monkeypatch.delenv("KAVA_MNEMONIC", raising=False)
        monkeypatch.delenv("BINANCE_CHAIN_DEPUTY_ADDRESSES", raising=False)
        settings = Settings(_env_file=None)

        with pytest.raises(ConfigError) as exc_info:
            settings.validate_required()

        message = str(exc_info.value)
        assert "KAVA_MNEMONIC" in message
        assert "BINANCE_CHAIN_DEPUTY_ADDRESSES" in message
        assert "KAVA_LCD_URL" not in message

    def test_validate_required_passes(self, full_env):
        Settings(_env_file=None).validate_required()

    def test_network_normalized(self, monkeypatch):
        monkeypatch.setenv("BINANCE_CHAIN_NETWORK", " Testnet ")

        assert Settings(_env_file=None).binance_chain_network == "testnet"

    def test_unknown_network_rejected(self, monkeypatch):
        monkeypatch.setenv("BINANCE_CHAIN_NETWORK", "devnet")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_negative_offset_rejected(self, monkeypatch):
        monkeypatch.setenv("OFFSET_KAVA", "-1")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_safe_dict_redacts_mnemonics(self, full_env):
        safe = Settings(_env_file=None).get_safe_dict()

        assert safe["kava"]["mnemonic"] == "***"
        assert safe["binance_chain"]["mnemonic"] == "***"
        assert TEST_MNEMONIC not in str(safe)


class TestApplication:
    """Tests for application wiring."""

    def test_build(self, full_env):
        app = Application(Settings(_env_file=None))

        orchestrator = app.build()

        assert app.kava_client.address.startswith("kava1")
        assert app.bnb_client.address.startswith("bnb1")
        assert orchestrator.deputy_addresses == ["bnb1deputya", "bnb1deputyb"]

    def test_build_testnet(self, full_env, monkeypatch):
        monkeypatch.setenv("BINANCE_CHAIN_NETWORK", "testnet")
        app = Application(Settings(_env_file=None))

        app.build()

        assert app.bnb_client.address.startswith("tbnb1")

    def test_build_bad_mnemonic(self, full_env, monkeypatch):
        monkeypatch.setenv("KAVA_MNEMONIC", "definitely not twelve words")
        app = Application(Settings(_env_file=None))

        with pytest.raises(ConfigError):
            app.build()

    def test_parse_crontab(self):
        parse_crontab("*/5 * * * *", "CRONTAB")

        with pytest.raises(ConfigError):
            parse_crontab("every five minutes", "CRONTAB")

    def test_main_exits_on_missing_config(self, monkeypatch):
        for name in REQUIRED_ENV:
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("swaprefund.main.get_settings", lambda: Settings(_env_file=None))

        assert main([]) == 1
