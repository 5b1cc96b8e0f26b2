"""Application configuration using pydantic-settings.

Values come from the environment and from the dotenv file named by ENV_FILE
(default: .env).
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BNB_NETWORKS = ("mainnet", "testnet")


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Schedule
    # ======================
    crontab: str = Field(default="*/5 * * * *", description="Refund cycle cron expression")
    offset_report_crontab: str = Field(
        default="0 * * * *", description="Cursor offset report cron expression"
    )

    # ======================
    # Kava
    # ======================
    kava_lcd_url: str = Field(default="", description="Kava REST server URL")
    kava_mnemonic: Optional[str] = Field(default=None, description="Kava signer mnemonic")
    kava_broadcast_path: str = Field(
        default="/txs", description="REST route accepting amino JSON transactions"
    )
    kava_fee_amount: int = Field(default=50000, description="Refund fee amount")
    kava_fee_denom: str = Field(default="ukava", description="Refund fee denom")
    kava_gas: int = Field(default=300000, description="Refund gas limit")
    kava_pacing_seconds: float = Field(
        default=25.0, description="Seconds to wait between Kava refunds"
    )

    # ======================
    # Binance Chain
    # ======================
    binance_chain_lcd_url: str = Field(default="", description="Binance Chain REST API URL")
    binance_chain_mnemonic: Optional[str] = Field(
        default=None, description="Binance Chain signer mnemonic"
    )
    binance_chain_network: str = Field(default="mainnet", description="mainnet or testnet")
    binance_chain_deputy_addresses: str = Field(
        default="", description="Comma-separated list of deputy addresses"
    )
    binance_chain_pacing_seconds: float = Field(
        default=5.0, description="Seconds to wait between Binance Chain refunds"
    )

    # ======================
    # Scanning
    # ======================
    scan_limit: int = Field(default=100, gt=0, description="Page size for swap queries")
    query_timeout_seconds: float = Field(default=5.0, gt=0, description="Query timeout")
    offset_incoming: int = Field(default=0, ge=0, description="Initial incoming offset")
    offset_outgoing: int = Field(default=0, ge=0, description="Initial outgoing offset")
    offset_kava: int = Field(default=0, ge=0, description="Initial Kava offset")

    # ======================
    # Runtime
    # ======================
    dry_run: bool = Field(default=False, description="Log refunds without broadcasting")
    debug: bool = Field(default=False, description="Enable debug logging")

    @field_validator("binance_chain_network")
    @classmethod
    def _check_network(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in BNB_NETWORKS:
            raise ValueError(f"must be one of {', '.join(BNB_NETWORKS)}")
        return value

    @property
    def deputy_addresses(self) -> list[str]:
        """Parse deputy addresses into a list."""
        return [
            addr.strip()
            for addr in self.binance_chain_deputy_addresses.split(",")
            if addr.strip()
        ]

    def validate_required(self) -> None:
        """Check that every value needed to start the bot is present.

        Raises:
            ConfigError: Listing every missing value
        """
        required = {
            "KAVA_LCD_URL": self.kava_lcd_url,
            "KAVA_MNEMONIC": self.kava_mnemonic,
            "BINANCE_CHAIN_LCD_URL": self.binance_chain_lcd_url,
            "BINANCE_CHAIN_MNEMONIC": self.binance_chain_mnemonic,
            "BINANCE_CHAIN_DEPUTY_ADDRESSES": self.deputy_addresses,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "crontab": self.crontab,
            "offset_report_crontab": self.offset_report_crontab,
            "dry_run": self.dry_run,
            "kava": {
                "lcd": self.kava_lcd_url,
                "mnemonic": "***" if self.kava_mnemonic else "(not set)",
                "fee": f"{self.kava_fee_amount}{self.kava_fee_denom}",
                "gas": self.kava_gas,
                "pacing": self.kava_pacing_seconds,
            },
            "binance_chain": {
                "lcd": self.binance_chain_lcd_url,
                "mnemonic": "***" if self.binance_chain_mnemonic else "(not set)",
                "network": self.binance_chain_network,
                "deputies": self.deputy_addresses,
                "pacing": self.binance_chain_pacing_seconds,
            },
            "scan": {
                "limit": self.scan_limit,
                "timeout": self.query_timeout_seconds,
                "offsets": {
                    "kava": self.offset_kava,
                    "incoming": self.offset_incoming,
                    "outgoing": self.offset_outgoing,
                },
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings(_env_file=os.environ.get("ENV_FILE", ".env"))
