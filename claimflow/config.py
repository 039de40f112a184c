"""
Claimflow Configuration

Environment variables and settings for the approval platform.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ClaimflowConfig:
    """Claimflow configuration settings."""

    # Database
    DATABASE_URL: Optional[str] = None
    DB_POOL_MIN_CONN: int = 2
    DB_POOL_MAX_CONN: int = 8

    # Logging
    LOG_LEVEL: str = 'INFO'
    LOG_JSON: Optional[bool] = None       # None = auto-detect from environment

    # Web
    SECRET_KEY: Optional[str] = None
    DEBUG: bool = False

    # Approval rules
    DEFAULT_REQUIRED_PERCENTAGE: int = 50

    @classmethod
    def from_env(cls) -> 'ClaimflowConfig':
        """Load configuration from environment variables."""
        log_json = os.environ.get('LOG_JSON')
        return cls(
            DATABASE_URL=os.environ.get('DATABASE_URL'),
            DB_POOL_MIN_CONN=int(os.environ.get('DB_POOL_MIN_CONN', '2')),
            DB_POOL_MAX_CONN=int(os.environ.get('DB_POOL_MAX_CONN', '8')),
            LOG_LEVEL=os.environ.get('LOG_LEVEL', 'INFO'),
            LOG_JSON=log_json.lower() == 'true' if log_json is not None else None,
            SECRET_KEY=os.environ.get('FLASK_SECRET_KEY', os.environ.get('SECRET_KEY')),
            DEBUG=os.environ.get('FLASK_DEBUG', 'false').lower() == 'true',
            DEFAULT_REQUIRED_PERCENTAGE=int(os.environ.get(
                'CLAIMFLOW_DEFAULT_REQUIRED_PERCENTAGE', '50'
            )),
        )


# Default configuration instance
_default_config: Optional[ClaimflowConfig] = None


def get_config() -> ClaimflowConfig:
    """Get the default configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = ClaimflowConfig.from_env()
    return _default_config


def reset_config():
    """Reset configuration (for testing)."""
    global _default_config
    _default_config = None
