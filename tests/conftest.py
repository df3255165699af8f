"""
Shared fixtures for Fortress tests.

Includes a test-only producer that builds connection-details ciphertexts
the way the Fortress service does: ECDH(ephemeral, recipient) on P-256,
SHA256 split into AES-128 / HMAC-SHA1 keys, AES-128-CBC with PKCS#7
padding, HMAC-SHA1 over iv || ciphertext.
"""
import os
import base64
from typing import Optional

import pytest
from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

# Fixed scalars so the fixed-vector scenario is reproducible.
RECIPIENT_SCALAR = 0x3A7F1C2B9D4E5F60718293A4B5C6D7E8F90112233445566778899AABBCCDDEEF
EPHEMERAL_SCALAR = 0x1B2C3D4E5F60718293A4B5C6D7E8F9001122334455667788990AABBCCDDEEFF1
FIXED_IV = bytes(range(16))


def export_key_material(key: ec.EllipticCurvePrivateKey) -> str:
    """Render a private key the way Fortress issues API keys (SEC1 DER, base64)."""
    der = key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return base64.b64encode(der).decode("ascii")


def build_frame(ephemeral: bytes, iv: bytes, body: bytes, tag: bytes) -> str:
    """Assemble and base64-encode a raw wire frame."""
    raw = bytes([len(ephemeral)]) + ephemeral + iv + body + tag
    return base64.b64encode(raw).decode("ascii")


def seal(
    public_key: ec.EllipticCurvePublicKey,
    plaintext: bytes,
    *,
    ephemeral_key: Optional[ec.EllipticCurvePrivateKey] = None,
    iv: Optional[bytes] = None,
    pad: bool = True,
    compressed: bool = False,
) -> str:
    """Encrypt plaintext to public_key in the Fortress wire format.

    With ``pad=False`` the plaintext must already be block aligned and is
    encrypted as-is, which lets tests plant arbitrary padding bytes.
    """
    ephemeral = ephemeral_key or ec.generate_private_key(ec.SECP256R1())
    shared = ephemeral.exchange(ec.ECDH(), public_key)
    digest = hashes.Hash(hashes.SHA256())
    digest.update(shared)
    derived = digest.finalize()
    cipher_key, mac_key = derived[:16], derived[16:]

    iv = iv if iv is not None else os.urandom(16)
    if pad:
        pad_len = 16 - len(plaintext) % 16
        plaintext = plaintext + bytes([pad_len]) * pad_len
    encryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(iv)).encryptor()
    body = encryptor.update(plaintext) + encryptor.finalize()

    h = hmac.HMAC(mac_key, hashes.SHA1())
    h.update(iv + body)
    tag = h.finalize()

    point_format = (
        serialization.PublicFormat.CompressedPoint
        if compressed
        else serialization.PublicFormat.UncompressedPoint
    )
    point = ephemeral.public_key().public_bytes(
        serialization.Encoding.X962, point_format,
    )
    return build_frame(point, iv, body, tag)


@pytest.fixture
def recipient_key() -> ec.EllipticCurvePrivateKey:
    """Fixed P-256 key standing in for an organization's API key."""
    return ec.derive_private_key(RECIPIENT_SCALAR, ec.SECP256R1())


@pytest.fixture
def ephemeral_key() -> ec.EllipticCurvePrivateKey:
    """Fixed P-256 ephemeral key for the producer side."""
    return ec.derive_private_key(EPHEMERAL_SCALAR, ec.SECP256R1())


@pytest.fixture
def api_key(recipient_key) -> str:
    """The recipient key encoded as API key material."""
    return export_key_material(recipient_key)


@pytest.fixture
def hello_frame(recipient_key, ephemeral_key) -> str:
    """Deterministic frame carrying b"hello world"."""
    return seal(
        recipient_key.public_key(),
        b"hello world",
        ephemeral_key=ephemeral_key,
        iv=FIXED_IV,
    )
