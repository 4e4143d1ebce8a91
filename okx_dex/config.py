"""
Configuration management for the OKX DEX client

Loads settings from environment variables and .env file.
Includes logging configuration with file output and correlation ID support.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

# Try to load dotenv for .env file support
try:
    from dotenv import load_dotenv
    _HAS_DOTENV = True
except ImportError:
    _HAS_DOTENV = False


def _load_env_file():
    """Load .env file from project root"""
    if not _HAS_DOTENV:
        return

    current = Path(__file__).parent.parent  # okx_dex package parent
    env_file = current / ".env"

    if env_file.exists():
        load_dotenv(env_file)


# Load .env on module import
_load_env_file()


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    """Get environment variable with default"""
    value = os.getenv(key)
    if value is None:
        return default
    return value


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid float value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as int"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid int value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as bool"""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


@dataclass
class ApiConfig:
    """OKX Web3 API defaults (credentials may be overridden per client)"""
    api_key: str = field(default_factory=lambda: _get_env("OKX_API_KEY", ""))
    secret_key: str = field(default_factory=lambda: _get_env("OKX_SECRET_KEY", ""))
    api_passphrase: str = field(default_factory=lambda: _get_env("OKX_API_PASSPHRASE", ""))
    project_id: str = field(default_factory=lambda: _get_env("OKX_PROJECT_ID", ""))
    base_url: str = field(default_factory=lambda: _get_env("OKX_BASE_URL", "https://web3.okx.com"))
    timeout: float = field(default_factory=lambda: _get_env_float("OKX_TIMEOUT", 30.0))
    max_retries: int = field(default_factory=lambda: _get_env_int("OKX_MAX_RETRIES", 3))
    retry_delay: float = field(default_factory=lambda: _get_env_float("OKX_RETRY_DELAY", 1.0))


@dataclass
class RpcConfig:
    """Chain JSON-RPC client configuration"""
    timeout_seconds: float = field(default_factory=lambda: _get_env_float("RPC_TIMEOUT_SECONDS", 30.0))
    max_retries: int = field(default_factory=lambda: _get_env_int("RPC_MAX_RETRIES", 3))
    retry_delay_seconds: float = field(default_factory=lambda: _get_env_float("RPC_RETRY_DELAY_SECONDS", 1.0))
    commitment: str = field(default_factory=lambda: _get_env("RPC_COMMITMENT", "confirmed"))


@dataclass
class TxConfig:
    """Transaction execution configuration"""
    # Base delay for executor retry loops (attempt n waits n * retry_delay)
    retry_delay: float = field(default_factory=lambda: _get_env_float("TX_RETRY_DELAY", 2.0))
    # Compute unit limit injected into legacy Solana transactions
    solana_compute_units: int = field(default_factory=lambda: _get_env_int("TX_SOLANA_COMPUTE_UNITS", 300_000))
    # Sui gas budget in MIST
    sui_gas_budget: int = field(default_factory=lambda: _get_env_int("TX_SUI_GAS_BUDGET", 50_000_000))
    confirmation_poll_interval: float = field(
        default_factory=lambda: _get_env_float("TX_CONFIRMATION_POLL_INTERVAL", 1.0)
    )
    # A transaction rejected on-chain is retried like a network failure unless disabled
    retry_onchain_rejections: bool = field(
        default_factory=lambda: _get_env_bool("TX_RETRY_ONCHAIN_REJECTIONS", True)
    )


def _get_default_log_path() -> str:
    """Get default log file path under okx_dex/log/ with UTC timestamp"""
    from datetime import datetime, timezone
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_dir = Path(__file__).parent / "log"
    return str(log_dir / f"okx_dex_{timestamp}.log")


@dataclass
class LoggingConfig:
    """
    Logging configuration with file output and correlation ID support.

    Environment variables:
        LOG_FILE: Path to log file (empty disables file output)
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
        LOG_FORMAT: Custom log format string
        LOG_CONSOLE: Enable console output (default: true)
        LOG_MAX_BYTES: Max log file size before rotation (default: 10MB)
        LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
    """
    log_file: str = field(default_factory=lambda: _get_env("LOG_FILE", _get_default_log_path()))
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: _get_env(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    console_output: bool = field(default_factory=lambda: _get_env_bool("LOG_CONSOLE", True))
    max_bytes: int = field(default_factory=lambda: _get_env_int("LOG_MAX_BYTES", 10 * 1024 * 1024))  # 10MB
    backup_count: int = field(default_factory=lambda: _get_env_int("LOG_BACKUP_COUNT", 5))

    @property
    def level(self) -> int:
        """Get numeric log level"""
        return getattr(logging, self.log_level.upper(), logging.INFO)


@dataclass
class Config:
    """
    Main configuration container

    Usage:
        from okx_dex.config import config

        print(config.api.base_url)
        print(config.tx.retry_delay)
    """
    api: ApiConfig = field(default_factory=ApiConfig)
    rpc: RpcConfig = field(default_factory=RpcConfig)
    tx: TxConfig = field(default_factory=TxConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Reload configuration from environment"""
        _load_env_file()
        return cls()


# Global config instance
config = Config()


def get_config() -> Config:
    """Get global configuration instance"""
    return config


def reload_config() -> Config:
    """Reload and return new configuration"""
    global config
    config = Config.reload()
    return config


# ---------------------------------------------------------------------------
# Per-client configuration
# ---------------------------------------------------------------------------

@dataclass
class EVMConfig:
    """
    EVM execution settings

    Either pass a ready EVMWallet, or a private key plus RPC URL from which
    one is built per chain.
    """
    wallet: Any = None
    private_key: Optional[str] = None
    rpc_url: Optional[str] = None
    wallet_address: Optional[str] = None

    @classmethod
    def from_env(cls) -> Optional["EVMConfig"]:
        private_key = _get_env("EVM_PRIVATE_KEY", "")
        if not private_key:
            return None
        return cls(
            private_key=private_key,
            rpc_url=_get_env("EVM_RPC_URL", "") or None,
            wallet_address=_get_env("EVM_WALLET_ADDRESS", "") or None,
        )


@dataclass
class SolanaConfig:
    """
    Solana execution settings

    wallet: SolanaWallet adapter (used by both executors when present)
    private_key: base58 secret key for raw keypair signing
    """
    wallet: Any = None
    private_key: Optional[str] = None
    rpc_url: Optional[str] = None
    compute_units: Optional[int] = None
    max_retries: Optional[int] = None

    @classmethod
    def from_env(cls) -> Optional["SolanaConfig"]:
        private_key = _get_env("SOLANA_PRIVATE_KEY", "")
        if not private_key:
            return None
        return cls(
            private_key=private_key,
            rpc_url=_get_env("SOLANA_RPC_URL", "") or None,
        )


@dataclass
class SuiConfig:
    """Sui execution settings"""
    private_key: str = ""
    wallet_address: Optional[str] = None
    rpc_url: str = "https://fullnode.mainnet.sui.io:443"

    @classmethod
    def from_env(cls) -> Optional["SuiConfig"]:
        private_key = _get_env("SUI_PRIVATE_KEY", "")
        if not private_key:
            return None
        return cls(
            private_key=private_key,
            wallet_address=_get_env("SUI_WALLET_ADDRESS", "") or None,
            rpc_url=_get_env("SUI_RPC_URL", "https://fullnode.mainnet.sui.io:443"),
        )


@dataclass
class OKXConfig:
    """
    Client configuration: API credentials, network overrides and chain wallets

    Credentials default to the global ApiConfig (OKX_* environment variables).

    Usage:
        cfg = OKXConfig(
            api_key="...", secret_key="...", api_passphrase="...", project_id="...",
            evm=EVMConfig(private_key="0x...", rpc_url="https://mainnet.base.org"),
        )
    """
    api_key: str = field(default_factory=lambda: config.api.api_key)
    secret_key: str = field(default_factory=lambda: config.api.secret_key)
    api_passphrase: str = field(default_factory=lambda: config.api.api_passphrase)
    project_id: str = field(default_factory=lambda: config.api.project_id)
    base_url: str = field(default_factory=lambda: config.api.base_url)
    timeout: float = field(default_factory=lambda: config.api.timeout)
    max_retries: int = field(default_factory=lambda: config.api.max_retries)
    networks: Dict[str, Any] = field(default_factory=dict)
    evm: Optional[EVMConfig] = None
    solana: Optional[SolanaConfig] = None
    sui: Optional[SuiConfig] = None

    @classmethod
    def from_env(cls) -> "OKXConfig":
        """Build a full client configuration from environment variables"""
        return cls(
            evm=EVMConfig.from_env(),
            solana=SolanaConfig.from_env(),
            sui=SuiConfig.from_env(),
        )


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = "okx_dex",
) -> logging.Logger:
    """
    Set up logging based on configuration.

    Creates handlers for file and/or console output with optional rotation.
    The log file directory is created automatically if it doesn't exist.

    Args:
        log_config: Logging configuration (uses global config if None)
        logger_name: Name of the logger to configure (default: okx_dex)

    Returns:
        Configured logger instance

    Example:
        from okx_dex.config import LoggingConfig, setup_logging
        logger = setup_logging(LoggingConfig(log_file="okx.log", log_level="DEBUG"))
    """
    if log_config is None:
        log_config = config.logging

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    # Close before removing to flush buffers and release file handles
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(log_config.log_format)

    handlers: List[logging.Handler] = []

    if log_config.log_file:
        from logging.handlers import RotatingFileHandler

        log_path = Path(log_config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_config.log_file,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding='utf-8',
        )
        file_handler.setLevel(log_config.level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if log_config.console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_config.level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    for handler in handlers:
        logger.addHandler(handler)

    for name in [
        f"{logger_name}.infra",
        f"{logger_name}.swap",
        f"{logger_name}.api",
    ]:
        logging.getLogger(name).setLevel(log_config.level)

    if log_config.log_file:
        logger.info(f"Logging initialized: file={log_config.log_file}, level={log_config.log_level}")

    return logger


def enable_file_logging(
    log_file: Optional[str] = None,
    level: str = "INFO",
    console: bool = True,
) -> logging.Logger:
    """
    Quick setup for file logging.

    Args:
        log_file: Path to log file (defaults to okx_dex/log/okx_dex_<timestamp>.log)
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        console: Also output to console

    Returns:
        Configured logger
    """
    if log_file is None:
        log_file = config.logging.log_file

    log_config = LoggingConfig(
        log_file=log_file,
        log_level=level,
        console_output=console,
    )
    return setup_logging(log_config)
