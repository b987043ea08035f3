"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Storage
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    analysis_store_path: Optional[str] = field(
        default_factory=lambda: os.getenv("ANALYSIS_STORE_PATH") or None
    )

    # Valuation
    default_mao_rule: str = field(default_factory=lambda: os.getenv("DEFAULT_MAO_RULE", "70%"))

    # Comp acquisition
    rate_limit_max_requests: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "10"))
    )
    rate_limit_window_seconds: float = field(
        default_factory=lambda: float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    )

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    @property
    def analysis_store(self) -> str:
        """Analysis store file; defaults to analyses.json under data_dir."""
        return self.analysis_store_path or os.path.join(self.data_dir, "analyses.json")

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "data_dir": self.data_dir,
            "analysis_store_path": self.analysis_store,
            "default_mao_rule": self.default_mao_rule,
            "rate_limit_max_requests": self.rate_limit_max_requests,
            "rate_limit_window_seconds": self.rate_limit_window_seconds,
        }
