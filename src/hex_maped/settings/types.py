"""
Configuration type definitions and exceptions for hex_maped.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class ConfigVersion(Enum):
    """Configuration version for migration support."""
    V1_0 = "1.0"
    V1_1 = "1.1"  # persistence/* group
    CURRENT = V1_1


class ConfigError(Exception):
    """Raised when stored configuration cannot be used."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors) or "invalid configuration")
        self.errors = errors


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=lambda: [])
    warnings: List[str] = field(default_factory=lambda: [])

    def raise_if_invalid(self) -> None:
        """Raise ConfigError listing every error, if there are any."""
        if not self.is_valid:
            raise ConfigError(self.errors)
