"""Exceptions raised by the Fortress client.

Messages never carry key material, shared secrets or plaintext.
"""


class FortressError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(FortressError):
    """Missing or invalid client configuration."""


class RequestError(FortressError):
    """The Fortress API answered with a non-success status."""

    def __init__(self, status: int, reason: str):
        self.status = status
        self.reason = reason
        super().__init__(
            f"Request failed with response code {status}: {reason}"
        )


class ConnectionDetailsError(FortressError):
    """Decrypted connection details are not a valid credentials document."""


class CryptoError(FortressError):
    """Base class for connection-details decryption failures."""


class InvalidKey(CryptoError):
    """Private key material failed to parse or failed curve validity checks."""


class InvalidCiphertext(CryptoError):
    """Ciphertext frame is malformed or carries an invalid ephemeral point."""


class MacMismatch(CryptoError):
    """HMAC tag did not match; the ciphertext must not be decrypted."""


class PaddingError(CryptoError):
    """Decrypted buffer ends in an out-of-range padding byte."""


class DecryptionFailure(CryptoError):
    """The block cipher itself rejected the operation."""
