"""Fortress Crypto — Decryption of connection details issued by the API.

Security Note (Threat Model):
    The organization's API key doubles as the P-256 private key the
    service encrypts credentials to. Anyone holding the API key can read
    every database credential of the organization; treat it accordingly.
"""

from .ecies import (
    DerivedKeys,
    SharedSecret,
    WireFrame,
    agree,
    decode_frame,
    decrypt,
    decrypt_body,
    derive_keys,
    load_private_key,
    verify_mac,
)

__all__ = [
    "DerivedKeys",
    "SharedSecret",
    "WireFrame",
    "agree",
    "decode_frame",
    "decrypt",
    "decrypt_body",
    "derive_keys",
    "load_private_key",
    "verify_mac",
]
