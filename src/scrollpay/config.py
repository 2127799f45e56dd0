"""Configuration system using pydantic-settings with environment variable loading."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class OracleSettings(BaseSettings):
    """Price resolution parameters and price feed source."""

    model_config = SettingsConfigDict(env_prefix="ORACLE_")

    address: str = "0x00000000000000000000000000000000000000a1"
    owner: str = "0x00000000000000000000000000000000000000f0"
    heartbeat_period: int = 3600  # seconds a reading stays fresh
    grace_period: int = 3600  # extra seconds a fallback stays usable
    price_precision: int = 8

    # "manual" = in-process feed seeded with initial_price, "exchange" = ccxt ticker
    feed_mode: Literal["manual", "exchange"] = "manual"
    exchange_id: str = "binance"
    symbol: str = "ETH/USDC"
    initial_price: int = 2000 * 10**8


class LedgerSettings(BaseSettings):
    """Payment ledger parameters."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    address: str = "0x00000000000000000000000000000000000000b2"
    owner: str = "0x00000000000000000000000000000000000000f0"
    withdrawal_delay: int = 72 * 3600
    dispute_window: int = 72 * 3600
    subscription_batch_size: int = 100  # subscriptions scanned per processing call


class SwapSettings(BaseSettings):
    """Swap parameters for native payments and native payouts."""

    model_config = SettingsConfigDict(env_prefix="SWAP_")

    router_address: str = "0x00000000000000000000000000000000000000c3"
    pool_fee: int = 3000  # 0.3% pool
    deadline_seconds: int = 15
    slippage_bps: int = 30  # simulated router slippage
    max_slippage_bps: int = 100  # tolerance the ledger accepts on native swaps

    # Reserves minted to the simulated router at startup
    simulated_stable_reserve: int = 1_000_000 * 10**6
    simulated_native_reserve: int = 500 * 10**18


class KeeperSettings(BaseSettings):
    """Subscription keeper loop."""

    model_config = SettingsConfigDict(env_prefix="KEEPER_")

    enabled: bool = True
    address: str = "0x00000000000000000000000000000000000000d4"
    interval: int = 60  # seconds between processing runs


class IndexerSettings(BaseSettings):
    """Event indexer persistence."""

    model_config = SettingsConfigDict(env_prefix="INDEXER_")

    enabled: bool = True
    db_path: str = "data/events.db"
    interval: int = 5  # seconds between sync passes


class ApiSettings(BaseSettings):
    """HTTP API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "127.0.0.1"  # X-Caller is trusted; see create_app
    port: int = 8080
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    oracle: OracleSettings = OracleSettings()
    ledger: LedgerSettings = LedgerSettings()
    swap: SwapSettings = SwapSettings()
    keeper: KeeperSettings = KeeperSettings()
    indexer: IndexerSettings = IndexerSettings()
    api: ApiSettings = ApiSettings()
