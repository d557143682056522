"""
Configuration Manager for the log scanner
Loads configuration from YAML files with environment variable support
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from solders.pubkey import Pubkey


PUMP_FUN_PROGRAM = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
DEFAULT_SLIPPAGE_BPS = 3000  # 30%


@dataclass
class ScannerConfig:
    """Log scanning configuration"""
    program_id: str = PUMP_FUN_PROGRAM
    bot_wallet: Optional[Pubkey] = None
    emit_decode_errors: bool = False  # Surface dropped instructions as Error events
    skip_failed_transactions: bool = True


@dataclass
class PricingConfig:
    """Pricing configuration"""
    default_slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    account_cache_ttl_s: float = 30.0


@dataclass
class LogConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "json"
    output_file: Optional[str] = None


@dataclass
class MetricsConfig:
    """Metrics configuration"""
    enable_histogram: bool = True
    histogram_buckets: List[float] = field(
        default_factory=lambda: [0.1, 0.5, 1, 5, 10, 50, 100]
    )


@dataclass
class ScannerAppConfig:
    """Complete scanner configuration"""
    scanner_config: ScannerConfig
    pricing_config: PricingConfig
    log_config: LogConfig
    metrics_config: MetricsConfig


class ConfigurationManager:
    """Manages scanner configuration from YAML files and environment variables"""

    def __init__(self, config_path: str):
        """
        Initialize configuration manager

        Args:
            config_path: Path to YAML configuration file
        """
        self.config_path = Path(config_path)
        self._config_data: Optional[Dict[str, Any]] = None
        self._app_config: Optional[ScannerAppConfig] = None

    def load_config(self) -> ScannerAppConfig:
        """
        Load and validate configuration from file

        Returns:
            ScannerAppConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(self.config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        self._config_data = self._substitute_env_vars(raw_config)
        self._app_config = self._parse_config(self._config_data)

        return self._app_config

    def reload_config(self) -> ScannerAppConfig:
        """Hot-reload configuration from file"""
        return self.load_config()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key

        Args:
            key: Dot-notation key (e.g., "scanner.bot_wallet")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if self._config_data is None:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")

        value = self._config_data
        for k in key.split('.'):
            if not isinstance(value, dict):
                return default
            value = value.get(k)
            if value is None:
                return default

        return value

    def _substitute_env_vars(self, config: Any) -> Any:
        """
        Recursively substitute ${VAR_NAME} environment references

        Supports both full-value and embedded substitution:
        - Full: "${BOT_WALLET}" -> "4Nd1..."
        - Embedded: "logs/${RUN_ID}.log" -> "logs/42.log"
        """
        if isinstance(config, dict):
            return {k: self._substitute_env_vars(v) for k, v in config.items()}
        if isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        if isinstance(config, str):
            def replace_var(match):
                var_name = match.group(1)
                value = os.getenv(var_name)
                if value is None:
                    raise ValueError(
                        f"Environment variable {var_name} not found"
                    )
                return value

            return re.sub(r'\$\{([^}]+)\}', replace_var, config)
        return config

    @staticmethod
    def _parse_address(value: Optional[str], key: str) -> Optional[Pubkey]:
        """Parse an optional base58 address, naming the key on failure"""
        if not value:
            return None
        try:
            return Pubkey.from_string(value)
        except ValueError as e:
            raise ValueError(f"Invalid address for {key}: {value}") from e

    def _parse_config(self, config: Dict[str, Any]) -> ScannerAppConfig:
        """
        Parse raw configuration into typed objects

        Raises:
            ValueError: If configuration is invalid
        """
        scanner_data = config.get('scanner') or {}
        program_id = scanner_data.get('program_id', PUMP_FUN_PROGRAM)
        # Validated but kept as text: log markers embed the base58 form
        self._parse_address(program_id, 'scanner.program_id')

        scanner_config = ScannerConfig(
            program_id=program_id,
            bot_wallet=self._parse_address(scanner_data.get('bot_wallet'), 'scanner.bot_wallet'),
            emit_decode_errors=scanner_data.get('emit_decode_errors', False),
            skip_failed_transactions=scanner_data.get('skip_failed_transactions', True)
        )

        pricing_data = config.get('pricing') or {}
        slippage_bps = pricing_data.get('default_slippage_bps', DEFAULT_SLIPPAGE_BPS)
        if not 0 <= slippage_bps <= 10_000:
            raise ValueError(
                f"pricing.default_slippage_bps must be between 0 and 10000, got {slippage_bps}"
            )
        cache_ttl = pricing_data.get('account_cache_ttl_s', 30.0)
        if cache_ttl <= 0:
            raise ValueError(
                f"pricing.account_cache_ttl_s must be positive, got {cache_ttl}"
            )
        pricing_config = PricingConfig(
            default_slippage_bps=slippage_bps,
            account_cache_ttl_s=cache_ttl
        )

        log_data = config.get('logging') or {}
        log_config = LogConfig(
            level=log_data.get('level', 'INFO'),
            format=log_data.get('format', 'json'),
            output_file=log_data.get('output_file')
        )

        metrics_data = config.get('metrics') or {}
        metrics_config = MetricsConfig(
            enable_histogram=metrics_data.get('enable_histogram', True),
            histogram_buckets=metrics_data.get('histogram_buckets', [0.1, 0.5, 1, 5, 10, 50, 100])
        )

        return ScannerAppConfig(
            scanner_config=scanner_config,
            pricing_config=pricing_config,
            log_config=log_config,
            metrics_config=metrics_config
        )
