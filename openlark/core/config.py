"""
Client configuration.

Usage:
    config = LarkConfig(app_id="cli_xxx", app_secret="xxx")

    # Or from LARK_* environment variables
    config = LarkConfig.from_env()
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from openlark.core.constants import FEISHU_BASE_URL


@dataclass(frozen=True, slots=True)
class LarkConfig:
    """Configuration for the Lark client."""

    # Application identity (needed for tenant and user tokens)
    app_id: str = ""
    app_secret: str = ""
    tenant_key: str = ""

    # Seed for user token issuance via the refresh_token grant
    user_refresh_token: str = ""

    # Connection
    base_url: str = FEISHU_BASE_URL
    timeout: float = 30.0

    # Network retries are off unless explicitly enabled
    max_retries: int = 0
    retry_delay: float = 1.0

    # Observability
    log_requests: bool = False
    log_responses: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if bool(self.app_id) != bool(self.app_secret):
            raise ValueError("app_id and app_secret must be provided together")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")

    @property
    def has_app_credentials(self) -> bool:
        return bool(self.app_id and self.app_secret)

    @classmethod
    def from_env(cls, prefix: str = "LARK_") -> LarkConfig:
        """Build a config from environment variables."""
        return cls(
            app_id=os.getenv(f"{prefix}APP_ID", ""),
            app_secret=os.getenv(f"{prefix}APP_SECRET", ""),
            tenant_key=os.getenv(f"{prefix}TENANT_KEY", ""),
            user_refresh_token=os.getenv(f"{prefix}USER_REFRESH_TOKEN", ""),
            base_url=os.getenv(f"{prefix}BASE_URL", FEISHU_BASE_URL),
            timeout=float(os.getenv(f"{prefix}TIMEOUT", "30")),
            max_retries=int(os.getenv(f"{prefix}MAX_RETRIES", "0")),
            log_requests=os.getenv(f"{prefix}LOG_REQUESTS", "false").lower() == "true",
            log_responses=os.getenv(f"{prefix}LOG_RESPONSES", "false").lower() == "true",
        )
