"""Configuration management for hrw_hash."""
import os
from dataclasses import dataclass
from dotenv import load_dotenv

from .errors import ConfigError
from .hasher import Blake2bHashProvider

load_dotenv()

VARIANTS = ("uniform", "weighted")
LOG_LEVELS = ("debug", "info", "warn", "error")


@dataclass
class HrwConfig:
    """Configuration for building HRW registries."""

    # Ranking
    variant: str = "uniform"
    hash_key: str = ""  # hex, keyed BLAKE2b when set

    # Observability
    log_level: str = "info"
    log_json: bool = True
    metrics_enabled: bool = False
    metrics_port: int = 9102

    @classmethod
    def from_env(cls) -> "HrwConfig":
        """Load configuration from environment variables."""
        return cls(
            variant=os.getenv("HRW_VARIANT", "uniform").lower(),
            hash_key=os.getenv("HRW_HASH_KEY", ""),
            # HRW_LOG_LEVEL with fallback to LOG_LEVEL
            log_level=os.getenv("HRW_LOG_LEVEL", os.getenv("LOG_LEVEL", "info")).lower(),
            log_json=os.getenv("HRW_LOG_JSON", "true").lower() == "true",
            metrics_enabled=os.getenv("HRW_METRICS_ENABLED", "false").lower() == "true",
            metrics_port=int(os.getenv("HRW_METRICS_PORT", "9102")),
        )

    def validate(self) -> None:
        """Validate configuration."""
        if self.variant not in VARIANTS:
            raise ConfigError(f"Invalid variant: {self.variant} (expected one of {', '.join(VARIANTS)})")

        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log level: {self.log_level}")

        key = self._key_bytes()
        if len(key) > 64:
            raise ConfigError(f"HRW_HASH_KEY must be at most 64 bytes, got {len(key)}")

        if self.metrics_enabled and not 0 < self.metrics_port < 65536:
            raise ConfigError(f"HRW_METRICS_PORT must be 1-65535, got {self.metrics_port}")

    def _key_bytes(self) -> bytes:
        try:
            return bytes.fromhex(self.hash_key)
        except ValueError as e:
            raise ConfigError(f"HRW_HASH_KEY must be hex encoded: {e}") from e

    def hash_provider(self) -> Blake2bHashProvider:
        """Build the hash provider described by this configuration."""
        return Blake2bHashProvider(key=self._key_bytes())

    def as_dict(self) -> dict:
        """Get effective configuration as dictionary (hash key redacted).

        Returns:
            Dictionary with all configuration fields
        """
        return {
            "variant": self.variant,
            "hash_key": "<redacted>" if self.hash_key else "",
            "log_level": self.log_level,
            "log_json": self.log_json,
            "metrics_enabled": self.metrics_enabled,
            "metrics_port": self.metrics_port,
        }
