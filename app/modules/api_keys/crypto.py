"""AES-256-CBC encryption for stored third-party API keys.

Stored format is ``"<iv hex>:<ciphertext hex>"`` with a fresh 16-byte IV per value.
"""
import hmac
import os
import re
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from app.config import settings

IV_LENGTH = 16
_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")

_FORMAT_PATTERNS = {
    "youtube": re.compile(r"^AIza[0-9A-Za-z_-]{35}$"),
    "openai": re.compile(r"^sk-[A-Za-z0-9]{48}$"),
}
MIN_GENERIC_KEY_LENGTH = 20


class EncryptionConfigError(RuntimeError):
    pass


class DecryptionError(ValueError):
    pass


def _load_key(hex_key: Optional[str] = None) -> bytes:
    value = hex_key if hex_key is not None else settings.encryption_key
    if not value:
        raise EncryptionConfigError("ENCRYPTION_KEY is not configured")
    if not _HEX_KEY.match(value):
        raise EncryptionConfigError("ENCRYPTION_KEY must be 64 hex characters (32 bytes)")
    return bytes.fromhex(value)


def encrypt_api_key(plaintext: str, hex_key: Optional[str] = None) -> str:
    key = _load_key(hex_key)
    iv = os.urandom(IV_LENGTH)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return f"{iv.hex()}:{ciphertext.hex()}"


def decrypt_api_key(stored: str, hex_key: Optional[str] = None) -> str:
    key = _load_key(hex_key)
    parts = (stored or "").split(":")
    if len(parts) != 2:
        raise DecryptionError("Invalid encrypted value format")
    try:
        iv = bytes.fromhex(parts[0])
        ciphertext = bytes.fromhex(parts[1])
    except ValueError as exc:
        raise DecryptionError("Invalid encrypted value encoding") from exc
    if len(iv) != IV_LENGTH or not ciphertext or len(ciphertext) % IV_LENGTH:
        raise DecryptionError("Invalid encrypted value length")

    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    try:
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode("utf-8")
    except ValueError as exc:
        raise DecryptionError("Failed to decrypt value") from exc


def mask_api_key(api_key: str) -> str:
    if not api_key or len(api_key) < 10:
        return "***"
    return f"{api_key[:4]}...{api_key[-3:]}"


def validate_api_key_format(api_key: str, service_name: str) -> bool:
    pattern = _FORMAT_PATTERNS.get(service_name)
    if pattern is not None:
        return bool(pattern.match(api_key or ""))
    return len(api_key or "") >= MIN_GENERIC_KEY_LENGTH


def secure_compare(a: str, b: str) -> bool:
    return hmac.compare_digest((a or "").encode("utf-8"), (b or "").encode("utf-8"))
