#!/usr/bin/env python3
"""
otp_core.py — Core library for TOTP / HOTP code generation.

Goals:
- Pure functions only (no argparse, no prompts, no file I/O) so the CLI and
  the tests can call them directly.
- Key codec: normalise and decode Base32 secrets the way authenticator apps
  write them (lowercase, spaces, missing '=' padding are all accepted).
- HOTP per RFC 4226 with SHA1 / SHA256 / SHA512 (RFC 6238 allows all three),
  TOTP per RFC 6238 on top of it.
- The three-code preview (previous / current / next) used by the listing.

Security note:
- Secrets and generated codes are never logged.
"""

from typing import Callable, Optional, Tuple
import base64
import binascii
import hashlib
import hmac
import logging
import re
import struct
import time

from .errors import InvalidSecretError, UnsupportedAlgorithmError, UnsupportedTypeError

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # Google Authenticator default
MAX_DIGITS = 10             # a 31-bit truncated value has at most 10 digits
DEFAULT_TIME_STEP = 30      # TOTP step (seconds)
DEFAULT_ALGORITHM = "SHA1"
COUNTER_MASK = 0xFFFFFFFFFFFFFFFF   # counters are unsigned 64-bit

ALGORITHMS = {
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
    "SHA512": hashlib.sha512,
}

_WHITESPACE = re.compile(r"\s+")


# --- Key codec -------------------------------------------------------------
def normalize_secret(secret: str) -> str:
    """
    Clean a Base32 secret before decoding.

    - Upper-case (Base32 alphabet is A-Z2-7).
    - Remove every whitespace character ("abcd efgh" is common on setup pages).
    - Re-add '=' padding up to the next multiple of 8.

    Example: normalize_secret("jbsw y3dp") -> "JBSWY3DP"
    """
    clean = _WHITESPACE.sub("", secret).upper()
    if len(clean) % 8:
        clean += "=" * (8 - len(clean) % 8)
    return clean


def decode_secret(secret: str) -> bytes:
    """
    Decode a Base32 secret into the raw HMAC key.

    Raises:
        InvalidSecretError: non-Base32 characters, impossible length, or an
        empty key.
    """
    clean = normalize_secret(secret)
    try:
        key = base64.b32decode(clean)
    except (binascii.Error, ValueError) as e:
        raise InvalidSecretError(f"invalid secret: {e}") from e
    if not key:
        raise InvalidSecretError("invalid secret: empty key")
    return key


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Counter -> 8-byte big-endian, as RFC 4226 requires.

    The value is reduced modulo 2**64 first, so -1 wraps around to
    0xFFFFFFFFFFFFFFFF like a fixed-width unsigned counter.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'
    """
    return struct.pack(">Q", i & COUNTER_MASK)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    Dynamic truncation from RFC 4226 section 5.3.

    - offset = last_byte & 0x0F
    - take 4 bytes at offset, clear the MSB of the first one (0x7F)
    - return the big-endian 31-bit unsigned value

    The same truncation is used for every digest size (RFC 6238).
    """
    offset = hmac_digest[-1] & 0x0F
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def pick_algorithm(name: Optional[str]) -> Callable:
    """
    Return the hashlib constructor for an algorithm name.

    An empty name means the default (SHA1). Names are case-insensitive.

    Raises:
        UnsupportedAlgorithmError: anything other than SHA1/SHA256/SHA512.
    """
    key = (name or DEFAULT_ALGORITHM).upper()
    try:
        return ALGORITHMS[key]
    except KeyError:
        raise UnsupportedAlgorithmError(f"unsupported algorithm: {name!r}") from None


def hotp(key: bytes, counter: int, algorithm: str = DEFAULT_ALGORITHM,
         digits: int = DEFAULT_DIGITS) -> str:
    """
    HOTP code per RFC 4226.

    Steps:
    1. Message = 8-byte big-endian counter
    2. HMAC-<algorithm>(key, message)
    3. Dynamic truncate -> 31-bit value
    4. value % 10**digits, zero-padded to exactly `digits` characters

    Arguments:
        key: raw key bytes (see decode_secret)
        counter: counter value, wrapped to unsigned 64-bit
        algorithm: "SHA1" (default), "SHA256" or "SHA512"
        digits: code length; 0/None means DEFAULT_DIGITS

    Raises:
        UnsupportedAlgorithmError, ValueError (digits negative or above MAX_DIGITS)
    """
    if not digits:
        digits = DEFAULT_DIGITS
    if digits < 0 or digits > MAX_DIGITS:
        raise ValueError(f"invalid digit count: {digits}")

    digest = hmac.new(key, int_to_bytes(counter), pick_algorithm(algorithm)).digest()
    dbc = dynamic_truncate(digest)
    return str(dbc % (10 ** digits)).zfill(digits)


def time_step(timestamp: Optional[float] = None, period: int = DEFAULT_TIME_STEP) -> int:
    """Number of `period`-second windows elapsed since the Unix epoch."""
    if timestamp is None:
        timestamp = time.time()
    return int(timestamp // (period or DEFAULT_TIME_STEP))


def totp(key: bytes, timestamp: Optional[float] = None, period: int = DEFAULT_TIME_STEP,
         algorithm: str = DEFAULT_ALGORITHM, digits: int = DEFAULT_DIGITS) -> str:
    """
    TOTP code per RFC 6238: HOTP with counter = floor(timestamp / period).

    `timestamp` defaults to the current wall clock.
    """
    return hotp(key, time_step(timestamp, period), algorithm, digits)


def current_time_step_and_elapsed(timestamp: Optional[float] = None,
                                  period: int = DEFAULT_TIME_STEP) -> Tuple[int, int]:
    """
    Return (time step, seconds elapsed in that step) for a fixed period.

    Used for the global progress bar; per-account timing must use the
    account's own period instead.
    """
    if timestamp is None:
        timestamp = time.time()
    now = int(timestamp)
    return now // period, now % period


# --- Account level helpers -------------------------------------------------
def codes_at_time_step(account, step: int) -> Tuple[str, str, str]:
    """
    Previous, current and next codes for a TOTP account at a time step.

    The previous code at step 0 is computed for counter 2**64 - 1 (the
    counter wraps like an unsigned 64-bit integer).

    Arguments:
        account: an otpauth_url.Account
        step: time step index

    Raises:
        UnsupportedTypeError: account is not TOTP
        UnsupportedAlgorithmError: unknown hash name
        InvalidSecretError: raw secret cannot be decoded
    """
    if account.type != "totp":
        raise UnsupportedTypeError(f"unsupported type: {account.type!r}")

    pick_algorithm(account.algorithm)
    key = decode_secret(account.raw_secret)

    prev = hotp(key, step - 1, account.algorithm, account.digits)
    curr = hotp(key, step, account.algorithm, account.digits)
    nxt = hotp(key, step + 1, account.algorithm, account.digits)
    return prev, curr, nxt


def codes(account, timestamp: Optional[float] = None) -> Tuple[str, str, str]:
    """Previous, current and next codes using the account's own period."""
    step = time_step(timestamp, account.period or DEFAULT_TIME_STEP)
    logger.debug("Computing codes for %r at time step %d", account.account, step)
    return codes_at_time_step(account, step)

