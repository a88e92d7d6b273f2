"""
Field sealing for confidential credit inputs.

Plaintext credit fields are sealed to the network's X25519 public key
before they become call arguments:

    blob = version(1) | width(1) | ephemeral_pub(32) | nonce(12) | ciphertext

The key is derived with HKDF-SHA256 over the ECDH shared secret and the
payload is encrypted with ChaCha20-Poly1305, header bytes as associated
data.  Callers treat the blob as opaque bytes.

The handle is explicit: whoever needs encryption receives an
``EncryptionHandle`` and calls ``initialize()`` on it.  Nothing here keeps
module-level state.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

logger = logging.getLogger(__name__)

BLOB_VERSION = 1
SUPPORTED_WIDTHS = (8, 32)
_HEADER_LEN = 2
_PUB_LEN = 32
_NONCE_LEN = 12


class SealingError(ValueError):
    pass


class DecryptionError(SealingError):
    pass


@dataclass(frozen=True)
class CipherBlob:
    data: bytes

    def hex(self) -> str:
        return "0x" + self.data.hex()

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DecryptResult:
    """Outcome of a decryption attempt.

    ``available`` is False when no private key is held; ``value`` is then
    None.  A real zero is ``available=True, value=0``.
    """

    available: bool
    value: Optional[int] = None

    @classmethod
    def unavailable(cls) -> "DecryptResult":
        return cls(available=False)

    @classmethod
    def of(cls, value: int) -> "DecryptResult":
        return cls(available=True, value=value)


@dataclass(frozen=True)
class SealingConfig:
    public_key_hex: Optional[str]
    private_key_hex: Optional[str] = None
    chain_id: Optional[int] = None


def generate_network_keypair() -> tuple[str, str]:
    """Return ``(private_key_hex, public_key_hex)`` for a fresh X25519 key."""
    private_key = X25519PrivateKey.generate()
    public = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    raw = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return "0x" + raw.hex(), "0x" + public.hex()


def _key_bytes(value: str, label: str) -> bytes:
    try:
        raw = bytes.fromhex(value.removeprefix("0x"))
    except ValueError as exc:
        raise SealingError(f"{label} is not valid hex") from exc
    if len(raw) != 32:
        raise SealingError(f"{label} must be 32 bytes, got {len(raw)}")
    return raw


def _derive_key(shared: bytes, ephemeral_pub: bytes, width: int) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=ephemeral_pub,
        info=f"veilscore:field:u{width}".encode("utf-8"),
    )
    return hkdf.derive(shared)


class EncryptionHandle:
    def __init__(self, config: SealingConfig) -> None:
        self.config = config
        self._public_key: Optional[X25519PublicKey] = None
        self._private_key: Optional[X25519PrivateKey] = None

    @property
    def is_initialized(self) -> bool:
        return self._public_key is not None

    def initialize(self) -> "EncryptionHandle":
        """Load the network keys.  Calling it again is a no-op.

        Raises:
            SealingError: If the public key is missing or malformed.
        """
        if self.is_initialized:
            return self
        if not self.config.public_key_hex:
            raise SealingError("FHE_PUBLIC_KEY is not configured")

        self._public_key = X25519PublicKey.from_public_bytes(
            _key_bytes(self.config.public_key_hex, "FHE public key")
        )
        if self.config.private_key_hex:
            self._private_key = X25519PrivateKey.from_private_bytes(
                _key_bytes(self.config.private_key_hex, "FHE private key")
            )
        logger.info("Encryption handle initialized (decrypt=%s)", self._private_key is not None)
        return self

    def reset(self) -> None:
        self._public_key = None
        self._private_key = None
        logger.info("Encryption handle reset")

    def status(self) -> dict[str, Any]:
        return {
            "initialized": self.is_initialized,
            "can_decrypt": self._private_key is not None,
            "chain_id": self.config.chain_id,
            "public_key": self.config.public_key_hex,
        }

    def encrypt_field(self, value: int, width: int) -> CipherBlob:
        """Seal an unsigned integer of ``width`` bits (8 or 32)."""
        if self._public_key is None:
            raise SealingError("Encryption handle not initialized")
        if width not in SUPPORTED_WIDTHS:
            raise SealingError(f"Unsupported width {width}; expected one of {SUPPORTED_WIDTHS}")
        if isinstance(value, bool) or not isinstance(value, int):
            raise SealingError(f"Value must be an integer, got {type(value).__name__}")
        if not 0 <= value < 2**width:
            raise SealingError(f"Value {value} does not fit in uint{width}")

        ephemeral = X25519PrivateKey.generate()
        ephemeral_pub = ephemeral.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        key = _derive_key(ephemeral.exchange(self._public_key), ephemeral_pub, width)
        header = bytes([BLOB_VERSION, width])
        nonce = os.urandom(_NONCE_LEN)
        ciphertext = ChaCha20Poly1305(key).encrypt(
            nonce, value.to_bytes(width // 8, "big"), header
        )
        return CipherBlob(header + ephemeral_pub + nonce + ciphertext)

    def decrypt_field(self, blob: CipherBlob | bytes) -> DecryptResult:
        """Open a sealed field.

        Returns ``DecryptResult.unavailable()`` when this handle holds no
        private key.

        Raises:
            DecryptionError: If the blob is malformed or fails authentication.
        """
        if not self.is_initialized:
            raise SealingError("Encryption handle not initialized")
        if self._private_key is None:
            return DecryptResult.unavailable()

        data = blob.data if isinstance(blob, CipherBlob) else bytes(blob)
        minimum = _HEADER_LEN + _PUB_LEN + _NONCE_LEN
        if len(data) <= minimum or data[0] != BLOB_VERSION:
            raise DecryptionError("Not a sealed field blob")
        width = data[1]
        if width not in SUPPORTED_WIDTHS:
            raise DecryptionError(f"Unsupported width {width}")

        header = data[:_HEADER_LEN]
        ephemeral_pub = data[_HEADER_LEN:_HEADER_LEN + _PUB_LEN]
        nonce = data[_HEADER_LEN + _PUB_LEN:minimum]
        ciphertext = data[minimum:]

        shared = self._private_key.exchange(X25519PublicKey.from_public_bytes(ephemeral_pub))
        key = _derive_key(shared, ephemeral_pub, width)
        try:
            plaintext = ChaCha20Poly1305(key).decrypt(nonce, ciphertext, header)
        except InvalidTag as exc:
            raise DecryptionError("Decryption failed: invalid tag or corrupted data") from exc
        return DecryptResult.of(int.from_bytes(plaintext, "big"))


# ---------------------------------------------------------------------------
# Credit data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CreditData:
    income: int
    debt: int
    age: int
    credit_history: int
    payment_history: int


@dataclass(frozen=True)
class EncryptedCreditData:
    income: CipherBlob
    debt: CipherBlob
    age: CipherBlob
    credit_history: CipherBlob
    payment_history: CipherBlob

    def as_args(self) -> tuple[bytes, ...]:
        """Arguments for ``submitCreditData`` / ``updateCreditData`` in ABI order."""
        return (
            self.income.data,
            self.debt.data,
            self.age.data,
            self.credit_history.data,
            self.payment_history.data,
        )


# Field -> bit width.  Monetary fields are 32-bit, the rest 8-bit.
CREDIT_FIELD_WIDTHS = {
    "income": 32,
    "debt": 32,
    "age": 8,
    "credit_history": 8,
    "payment_history": 8,
}


def encrypt_credit_data(handle: EncryptionHandle, data: CreditData) -> EncryptedCreditData:
    handle.initialize()
    sealed = {
        name: handle.encrypt_field(getattr(data, name), width)
        for name, width in CREDIT_FIELD_WIDTHS.items()
    }
    logger.debug(
        "Sealed credit data: %s",
        {name: len(blob) for name, blob in sealed.items()},
    )
    return EncryptedCreditData(**sealed)
