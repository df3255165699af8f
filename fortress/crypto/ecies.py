"""
Fortress Crypto Core — Decryption of API-issued connection details.

The Fortress API encrypts connection credentials to the organization's
API key (a P-256 private key) with an ephemeral-static ECIES scheme:

    base64([eph_len 1B][eph point][iv 16B][AES-128-CBC body][HMAC-SHA1 20B])

- Key agreement: ECDH(api_key, eph point) → 32-byte x-coordinate
- Key derivation: SHA256(shared) → cipher_key = [0:16], mac_key = [16:32]
- Integrity: HMAC-SHA1(mac_key, iv || body), verified before decrypting
- Confidentiality: AES-128-CBC, trailing pad stripped by hand

The hash-and-split KDF and the 16-byte HMAC-SHA1 key are fixed by the
producer side and must stay exactly as they are.

Security Note:
    Never log key material, shared secrets or plaintext. Only log sizes.
"""
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..exceptions import (
    DecryptionFailure,
    InvalidCiphertext,
    InvalidKey,
    MacMismatch,
    PaddingError,
)

logger = logging.getLogger("fortress.crypto")

CURVE = ec.SECP256R1()
# Group order n of P-256; valid private scalars lie in [1, n-1].
CURVE_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551

BLOCK_SIZE = 16  # AES block
IV_SIZE = 16
MAC_SIZE = 20  # HMAC-SHA1 output
KEY_SIZE = 16  # AES-128 and HMAC key halves
SHARED_SECRET_SIZE = 32

_PEM_HEADER = "-----BEGIN"


def _zero(buf: bytearray) -> None:
    buf[:] = bytes(len(buf))


# ---------------------------------------------------------------------------
# Pipeline values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WireFrame:
    """Fields split out of a decoded ciphertext frame."""

    ephemeral_public_key: bytes
    iv: bytes
    ciphertext_body: bytes
    mac_tag: bytes

    def __post_init__(self) -> None:
        if len(self.iv) != IV_SIZE:
            raise InvalidCiphertext(
                f"IV must be {IV_SIZE} bytes, got {len(self.iv)}"
            )
        if len(self.mac_tag) != MAC_SIZE:
            raise InvalidCiphertext(
                f"MAC tag must be {MAC_SIZE} bytes, got {len(self.mac_tag)}"
            )
        if not self.ciphertext_body:
            raise InvalidCiphertext("Ciphertext body is empty")
        if len(self.ciphertext_body) % BLOCK_SIZE:
            raise InvalidCiphertext(
                f"Ciphertext body ({len(self.ciphertext_body)} bytes) is not "
                f"a multiple of the {BLOCK_SIZE}-byte block size"
            )

    @property
    def authenticated_data(self) -> bytes:
        """Bytes covered by the MAC: iv || ciphertext_body."""
        return self.iv + self.ciphertext_body


@dataclass(frozen=True)
class SharedSecret:
    """Raw ECDH output (x-coordinate of the agreed point)."""

    value: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.value) != SHARED_SECRET_SIZE:
            raise ValueError(
                f"Shared secret must be {SHARED_SECRET_SIZE} bytes, "
                f"got {len(self.value)}"
            )


@dataclass(frozen=True)
class DerivedKeys:
    """AES and HMAC keys split from SHA256(shared secret).

    Held in bytearrays so ``wipe()`` can zero them once the call is done.
    Use as a context manager to wipe on every exit path.
    """

    cipher_key: bytearray = field(repr=False)
    mac_key: bytearray = field(repr=False)

    def __post_init__(self) -> None:
        for name in ("cipher_key", "mac_key"):
            size = len(getattr(self, name))
            if size != KEY_SIZE:
                raise ValueError(f"{name} must be {KEY_SIZE} bytes, got {size}")

    def wipe(self) -> None:
        _zero(self.cipher_key)
        _zero(self.mac_key)

    def __enter__(self) -> "DerivedKeys":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def load_private_key(material: Union[str, bytes]) -> ec.EllipticCurvePrivateKey:
    """Parse the API key into a validated P-256 private key.

    Args:
        material: Base64 body of a SEC1 ``EC PRIVATE KEY``, as the API key
            is issued. Full PEM (with armour lines) is also accepted.

    Returns:
        The private key, bound to SECP256R1.

    Raises:
        InvalidKey: If the material does not parse, is not a P-256 key,
            or fails the scalar/public-point consistency check.
    """
    try:
        text = material.decode("ascii") if isinstance(material, bytes) else material
        text = text.strip()
        if text.startswith(_PEM_HEADER):
            key = serialization.load_pem_private_key(
                text.encode("ascii"), password=None,
            )
        else:
            # Bare key body: undo the PEM envelope's base64 to get the DER.
            der = base64.b64decode("".join(text.split()), validate=True)
            key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise InvalidKey("Private key material could not be parsed") from exc

    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise InvalidKey("Private key is not an elliptic-curve key")
    if key.curve.name != CURVE.name:
        raise InvalidKey(
            f"Private key is on curve {key.curve.name}, expected {CURVE.name}"
        )

    numbers = key.private_numbers()
    if not 1 <= numbers.private_value < CURVE_ORDER:
        raise InvalidKey("Private scalar is out of range")
    expected = ec.derive_private_key(numbers.private_value, CURVE).public_key()
    if expected.public_numbers() != numbers.public_numbers:
        raise InvalidKey("Private key does not match its public point")
    return key


def decode_frame(encoded: Union[str, bytes]) -> WireFrame:
    """Base64-decode a ciphertext and split it into its wire fields.

    Raises:
        InvalidCiphertext: On bad base64, a truncated ephemeral key, fewer
            than IV + MAC bytes after the key, or a body that is empty or
            not block aligned.
    """
    try:
        data = encoded.encode("ascii") if isinstance(encoded, str) else bytes(encoded)
        raw = base64.b64decode(b"".join(data.split()), validate=True)
    except (UnicodeEncodeError, binascii.Error) as exc:
        raise InvalidCiphertext("Ciphertext is not valid base64") from exc
    if not raw:
        raise InvalidCiphertext("Ciphertext is empty")

    ephemeral_len = raw[0]
    ephemeral_public_key = raw[1:1 + ephemeral_len]
    if len(ephemeral_public_key) != ephemeral_len:
        raise InvalidCiphertext(
            f"Ephemeral key truncated: expected {ephemeral_len} bytes, "
            f"got {len(ephemeral_public_key)}"
        )

    rest = raw[1 + ephemeral_len:]
    _min = IV_SIZE + MAC_SIZE
    if len(rest) < _min:
        raise InvalidCiphertext(
            f"Ciphertext too short: {len(rest)} bytes after ephemeral key "
            f"(minimum {_min})"
        )
    tag_start = len(rest) - MAC_SIZE
    frame = WireFrame(
        ephemeral_public_key=ephemeral_public_key,
        iv=rest[:IV_SIZE],
        ciphertext_body=rest[IV_SIZE:tag_start],
        mac_tag=rest[tag_start:],
    )
    logger.debug(
        "Decoded frame: %d bytes, ephemeral key %d bytes, body %d bytes",
        len(raw), ephemeral_len, len(frame.ciphertext_body),
    )
    return frame


def agree(
    key: ec.EllipticCurvePrivateKey, ephemeral_public_key: bytes
) -> SharedSecret:
    """ECDH between the private key and the sender's ephemeral point.

    Compressed and uncompressed SEC1 point encodings are both accepted.

    Raises:
        InvalidCiphertext: If the bytes are not a valid P-256 point
            (including the point at infinity and off-curve points).
    """
    if key.curve.name != CURVE.name:
        raise InvalidKey(
            f"Private key is on curve {key.curve.name}, expected {CURVE.name}"
        )
    try:
        point = ec.EllipticCurvePublicKey.from_encoded_point(
            CURVE, bytes(ephemeral_public_key),
        )
    except ValueError as exc:
        raise InvalidCiphertext(
            "Ephemeral public key is not a valid P-256 point"
        ) from exc
    return SharedSecret(key.exchange(ec.ECDH(), point))


def derive_keys(shared_secret: SharedSecret) -> DerivedKeys:
    """Split SHA256(shared secret) into cipher key and MAC key halves."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(shared_secret.value)
    out = bytearray(digest.finalize())
    try:
        return DerivedKeys(
            cipher_key=out[:KEY_SIZE],
            mac_key=out[KEY_SIZE:2 * KEY_SIZE],
        )
    finally:
        _zero(out)


def verify_mac(mac_key: bytes, authenticated_data: bytes, tag: bytes) -> None:
    """Check the HMAC-SHA1 tag over iv || ciphertext in constant time.

    Raises:
        MacMismatch: If the tag does not match.
    """
    h = hmac.HMAC(mac_key, hashes.SHA1())
    h.update(authenticated_data)
    try:
        h.verify(bytes(tag))
    except InvalidSignature as exc:
        logger.warning(
            "Connection details MAC mismatch (%d authenticated bytes)",
            len(authenticated_data),
        )
        raise MacMismatch("Ciphertext failed integrity check") from exc


def decrypt_body(cipher_key: bytes, iv: bytes, ciphertext_body: bytes) -> bytes:
    """AES-128-CBC decrypt and strip the trailing pad.

    The cipher's own padding is not used; the last decrypted byte gives
    the number of bytes to drop.

    Raises:
        DecryptionFailure: If the cipher primitive rejects the inputs.
        PaddingError: If the pad length is 0, larger than a block, or
            larger than the buffer.
    """
    if len(cipher_key) != KEY_SIZE:
        raise DecryptionFailure(
            f"Cipher key must be {KEY_SIZE} bytes, got {len(cipher_key)}"
        )
    try:
        decryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(iv)).decryptor()
        buf = bytearray(decryptor.update(ciphertext_body))
        buf += decryptor.finalize()
    except ValueError as exc:
        raise DecryptionFailure("AES-CBC decryption failed") from exc

    try:
        pad_len = buf[-1] if buf else 0
        if pad_len == 0 or pad_len > BLOCK_SIZE or pad_len > len(buf):
            raise PaddingError(f"Invalid padding length {pad_len}")
        return bytes(buf[:-pad_len])
    finally:
        _zero(buf)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def decrypt(private_key_material: Union[str, bytes], encoded: Union[str, bytes]) -> bytes:
    """Recover the plaintext of an encrypted connection-details payload.

    Runs key loading, frame decoding, ECDH, key derivation, MAC
    verification and AES-CBC decryption in order; the first failing
    stage aborts the call.

    Args:
        private_key_material: The organization's API key.
        encoded: Base64 ciphertext (``connectionDetails`` from the API).

    Returns:
        Plaintext bytes (UTF-8 JSON by convention, not parsed here).
    """
    key = load_private_key(private_key_material)
    frame = decode_frame(encoded)
    shared_secret = agree(key, frame.ephemeral_public_key)
    with derive_keys(shared_secret) as keys:
        verify_mac(keys.mac_key, frame.authenticated_data, frame.mac_tag)
        plaintext = decrypt_body(keys.cipher_key, frame.iv, frame.ciphertext_body)
    logger.debug("Decrypted connection details: %d bytes", len(plaintext))
    return plaintext
