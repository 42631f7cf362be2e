"""
otp_tool package
================

Generate TOTP/HOTP codes (RFC 4226 & RFC 6238) for every account stored in a
local config file, optionally encrypted with `openssl enc -aes-128-cbc -md sha256`.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- HOTP (HMAC-based One-Time Password):
  code = Truncate(HMAC-<SHA1|SHA256|SHA512>(key=secret, msg=counter)) mod 10^digits

- TOTP (Time-based One-Time Password):
  HOTP with counter = floor(timestamp / period), period defaults to 30 s.

- Dynamic Truncation:
  4 bytes taken at offset (last byte & 0x0F), top bit cleared.

──────────────────────────────────────────────
Config file
──────────────────────────────────────────────
One account per line, either `name:secret` or an otpauth:// URL.
Default path ~/.config/gauth.csv, override with $GAUTH_CONFIG.

──────────────────────────────────────────────
Quick example
──────────────────────────────────────────────
>>> from otp_tool import ConfigSession, codes
>>> session = ConfigSession(password_provider=lambda: b"hunter2")
>>> for account in session.accounts():
...     prev, curr, nxt = codes(account)
...     print(account.account, curr)
"""
from .config_crypto import decrypt, encrypt, load_config_file, read_config_file, write_config_file
from .config_parser import parse_config
from .errors import OTPError
from .otp_core import (
    codes,
    codes_at_time_step,
    current_time_step_and_elapsed,
    decode_secret,
    hotp,
    normalize_secret,
    totp,
)
from .otpauth_url import Account, decode_url, encode_url
from .session import ConfigSession

__version__ = "1.0.0"
