"""Configuration module for the Ledgerline backend.

Usage:
    from ledgerline.core.config import settings, Environment

    if settings.ENVIRONMENT == Environment.PRD:
        ...
"""

from ledgerline.core.config.enums import Environment, PaymentProvider
from ledgerline.core.config.settings import Settings

__all__ = [
    "Settings",
    "Environment",
    "PaymentProvider",
    "settings",
]

# Singleton settings instance
settings = Settings()
