"""
config_crypto.py — Read, decrypt, encrypt and write the config file.

Encrypted files use the OpenSSL "Salted__" format, so they can be produced
and inspected with the openssl command line tool:

    openssl enc -aes-128-cbc -md sha256 -pass pass:... -in gauth.csv -out gauth.enc

Layout:  b"Salted__" | 8-byte salt | AES-128-CBC ciphertext (PKCS#7 padded)

Key and IV come from a single SHA-256 over password || salt (EVP_BytesToKey
with one iteration): first 16 bytes are the key, last 16 bytes are the IV.
This is a legacy KDF, not a password hash, and CBC has no MAC: a wrong
password and a corrupted file look the same.
"""

from typing import Callable, Optional, Tuple, Union
import hashlib
import logging
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ConfigNotFoundError, InvalidPasswordError

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
SALT_MARKER = b"Salted__"
SALT_SIZE = 8
BLOCK_SIZE = 16             # AES block size in bytes
KEY_SIZE = 16               # AES-128
HEADER_SIZE = len(SALT_MARKER) + SALT_SIZE
FILE_MODE = 0o600           # owner read/write only

Password = Union[bytes, str]


def _to_bytes(password: Password) -> bytes:
    if isinstance(password, str):
        return password.encode("utf-8")
    return bytes(password)


# --- Detection / reading ---------------------------------------------------
def is_encrypted(data: bytes) -> bool:
    """True iff the data starts with the OpenSSL salt marker."""
    return data.startswith(SALT_MARKER)


def read_config_file(path: str) -> Tuple[bytes, bool]:
    """
    Read the config file and report whether it is encrypted.

    Raises:
        ConfigNotFoundError: the file does not exist (callers may treat this
        as "start a new config")
        OSError: any other I/O problem
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except FileNotFoundError as e:
        raise ConfigNotFoundError(e.errno, "config file not found", path) from e

    encrypted = is_encrypted(data)
    logger.debug("Read %d bytes from %s (encrypted=%s)", len(data), path, encrypted)
    return data, encrypted


# --- Crypto ----------------------------------------------------------------
def derive_key_iv(password: Password, salt: bytes) -> Tuple[bytes, bytes]:
    """
    (key, iv) = split(SHA-256(password || salt), 16).

    Matches `openssl enc -md sha256` without -pbkdf2.
    """
    digest = hashlib.sha256(_to_bytes(password) + salt).digest()
    return digest[:KEY_SIZE], digest[KEY_SIZE:]


def _cipher(password: Password, salt: bytes) -> Cipher:
    key, iv = derive_key_iv(password, salt)
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def decrypt(data: bytes, password: Password) -> bytes:
    """
    Decrypt a Salted__ blob and strip its PKCS#7 padding.

    Padding is validated strictly: the last byte p must be 1..16, and the last
    p bytes must all equal p.

    Raises:
        InvalidPasswordError: wrong password, or the data is not a valid
        Salted__ file (bad header, truncated, not block aligned, bad padding)
    """
    if not is_encrypted(data) or len(data) < HEADER_SIZE:
        raise InvalidPasswordError("invalid decryption key: not a salted file")

    salt = data[len(SALT_MARKER):HEADER_SIZE]
    body = data[HEADER_SIZE:]
    if not body or len(body) % BLOCK_SIZE:
        raise InvalidPasswordError("invalid decryption key: truncated ciphertext")

    decryptor = _cipher(password, salt).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()

    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise InvalidPasswordError("invalid decryption key: bad block padding") from e


def encrypt(plaintext: bytes, password: Password, salt: Optional[bytes] = None) -> bytes:
    """
    Encrypt plaintext into the Salted__ format.

    A random salt (os.urandom) is generated when none is given; pass the
    existing file's salt to keep it stable across edits.
    """
    if salt is None:
        salt = os.urandom(SALT_SIZE)
    if len(salt) != SALT_SIZE:
        raise ValueError(f"salt must be {SALT_SIZE} bytes, got {len(salt)}")

    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()

    encryptor = _cipher(password, salt).encryptor()
    return SALT_MARKER + salt + encryptor.update(padded) + encryptor.finalize()


# --- High level ------------------------------------------------------------
def load_config_file(path: str, get_password: Callable[[], Password]) -> bytes:
    """
    Read the config at path and decrypt it if needed.

    get_password is only called for encrypted files, exactly once.
    """
    data, encrypted = read_config_file(path)
    if not encrypted:
        return data
    return decrypt(data, get_password())


def _write_private(path: str, data: bytes) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    # os.open only applies the mode to new files.
    os.chmod(path, FILE_MODE)


def write_config_file(path: str, password: Optional[Password], plaintext: bytes) -> None:
    """
    Replace the config at path with plaintext.

    - Missing or plaintext file: written verbatim.
    - Encrypted file: re-encrypted with the same password and the file's
      existing salt.

    The file always ends up with owner-only (0600) permissions.
    """
    try:
        data, encrypted = read_config_file(path)
    except ConfigNotFoundError:
        data, encrypted = b"", False

    if encrypted:
        if password is None:
            raise InvalidPasswordError("a password is required to write an encrypted config")
        salt = data[len(SALT_MARKER):HEADER_SIZE]
        out = encrypt(plaintext, password, salt)
    else:
        out = plaintext

    _write_private(path, out)
    logger.debug("Wrote %d bytes to %s (encrypted=%s)", len(out), path, encrypted)
