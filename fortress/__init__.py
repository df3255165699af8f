"""Fortress — Client for the Fortress multi-tenant database platform."""

from .version import __version__
from .client import Fortress
from .config import FortressConfig
from .models import ConnectionDetails, Database, Tenant
from .exceptions import (
    ConfigError,
    ConnectionDetailsError,
    CryptoError,
    DecryptionFailure,
    FortressError,
    InvalidCiphertext,
    InvalidKey,
    MacMismatch,
    PaddingError,
    RequestError,
)

__all__ = [
    "__version__",
    "Fortress",
    "FortressConfig",
    "ConnectionDetails",
    "Database",
    "Tenant",
    "ConfigError",
    "ConnectionDetailsError",
    "CryptoError",
    "DecryptionFailure",
    "FortressError",
    "InvalidCiphertext",
    "InvalidKey",
    "MacMismatch",
    "PaddingError",
    "RequestError",
]
