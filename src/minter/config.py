"""
Configuration management for the Batch Minter.

Supports configuration via environment variables and .env files.
"""

from enum import Enum
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Largest value representable as an unsigned 256-bit integer
UINT256_MAX = 2**256 - 1


class NetworkType(str, Enum):
    """Cardano network types."""
    MAINNET = "mainnet"
    PREPROD = "preprod"
    PREVIEW = "preview"
    LOCAL = "local"


class MinterConfig(BaseSettings):
    """
    Configuration settings for the Batch Minter.

    All settings can be configured via environment variables with the MINTER_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="MINTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Network settings
    network: NetworkType = Field(
        default=NetworkType.PREPROD,
        description="Cardano network recipient and admin addresses belong to"
    )

    # Minting limits
    max_batch_size: int = Field(
        default=50,
        ge=1,
        description="Maximum number of tokens minted in a single call"
    )
    max_token_id: int = Field(
        default=UINT256_MAX,
        ge=1,
        description="Largest token ID the counter may allocate"
    )

    # Pricing and metadata
    unit_price: int = Field(
        default=0,
        ge=0,
        description="Initial price per token in lovelace"
    )
    base_uri: str = Field(
        default="",
        description="Initial shared prefix for token metadata references"
    )

    # Administrative authority
    admin_address: Optional[str] = Field(
        default=None,
        description="Bech32 address of the single administrative account"
    )

    # Database settings
    database_url: Optional[str] = Field(
        default="sqlite+aiosqlite:///minter.db",
        description="SQLAlchemy database URL for ledger persistence"
    )

    # Event settings
    event_history_size: int = Field(
        default=1000,
        ge=0,
        description="Number of published events kept in memory"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )


# Global config instance
_config: Optional[MinterConfig] = None


def get_config() -> MinterConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = MinterConfig()
    return _config


def set_config(config: MinterConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
