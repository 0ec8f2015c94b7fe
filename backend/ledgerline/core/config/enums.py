"""Configuration enums for type-safe settings.

These enums inherit from str to keep JSON serialization compatibility.
"""

from enum import Enum


class Environment(str, Enum):
    """Deployment environments.

    Controls environment-specific behavior like log formatting and
    which payment gateway the container wires in.
    """

    LOCAL = "local"
    TEST = "test"
    DEV = "dev"
    PRD = "prd"


class PaymentProvider(str, Enum):
    """Payment providers the webhook layer knows how to translate."""

    STRIPE = "stripe"
    MANUAL = "manual"
