"""
otpauth_url.py — Account record and the otpauth:// URL format.

General form (Google Authenticator "Key Uri Format"):

    otpauth://TYPE/LABEL?PARAMETERS

- TYPE      totp | hotp (lower-cased, not validated here)
- LABEL     [issuer:]account, percent-encoded
- PARAMS    secret, issuer, algorithm, digits, period, counter

The parser reports syntax errors (including unknown parameters) but does not
check the values of type and algorithm; that happens when codes are generated.
"""

from dataclasses import dataclass
from typing import List
from urllib.parse import quote, unquote
import base64
import re

from .errors import InvalidParameterError, InvalidURLError, UnknownParameterError
from .otp_core import DEFAULT_ALGORITHM, DEFAULT_DIGITS, DEFAULT_TIME_STEP, MAX_DIGITS, decode_secret

SCHEME = "otpauth"
MAX_UINT64 = 2 ** 64 - 1

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_UINT = re.compile(r"[0-9]+")


@dataclass
class Account:
    """Parsed representation of one otpauth URL (or one name:secret line)."""

    account: str
    raw_secret: str = ""
    type: str = "totp"
    issuer: str = ""
    algorithm: str = DEFAULT_ALGORITHM
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_TIME_STEP
    counter: int = 0

    def secret(self) -> bytes:
        """Decoded key bytes of raw_secret (raises InvalidSecretError)."""
        return decode_secret(self.raw_secret)

    def set_secret(self, key: bytes) -> None:
        """Store key as unpadded upper-case Base32."""
        self.raw_secret = base64.b32encode(key).decode("ascii").rstrip("=")

    def to_url(self) -> str:
        return encode_url(self)

    @classmethod
    def from_url(cls, s: str) -> "Account":
        return decode_url(s)


# --- Helpers ---------------------------------------------------------------
def _escape(value: str) -> str:
    # Nothing is "safe": ':' '&' '=' '/' inside a value must not be mistaken
    # for URL structure when we parse it back.
    return quote(value, safe="")


def _unescape(value: str) -> str:
    """Strict percent-decoding ('+' stays a literal plus)."""
    if _BAD_ESCAPE.search(value):
        raise InvalidURLError(f"invalid escape in {value!r}")
    return unquote(value, errors="strict")


def _clean_secret(raw: str) -> str:
    return "".join(raw.split()).rstrip("=").upper()


def _label_string(account: Account) -> str:
    # The label splits on its first ":" after unescaping, so only the account
    # part may contain one, and only behind an issuer.
    if ":" in account.issuer:
        raise InvalidURLError(f"issuer {account.issuer!r} cannot contain ':'")
    if ":" in account.account and not account.issuer:
        raise InvalidURLError(f"account {account.account!r} needs an issuer to contain ':'")
    label = _escape(account.account)
    if account.issuer:
        return _escape(account.issuer) + ":" + label
    return label


def _parse_label(out: Account, label: str) -> None:
    try:
        text = _unescape(label)
    except (InvalidURLError, UnicodeDecodeError) as e:
        raise InvalidURLError(f"invalid label: {e}") from e

    if ":" in text:
        issuer, text = text.split(":", 1)
        out.issuer = issuer.strip()
        if not out.issuer:
            raise InvalidURLError("invalid label: empty issuer")
    out.account = text.strip()
    if not out.account:
        raise InvalidURLError("invalid label: empty account name")


def _parse_uint(value: str) -> int:
    if not _UINT.fullmatch(value) or int(value) > MAX_UINT64:
        raise InvalidParameterError(f"invalid integer value {value!r}")
    return int(value)


# --- Public API ------------------------------------------------------------
def decode_url(s: str) -> Account:
    """
    Parse an otpauth URL into an Account.

    The scheme may be omitted; if present it must be otpauth://. Unset
    parameters get their defaults (SHA1, 6 digits, 30 s). An issuer given as
    a parameter wins over the one in the label.

    Raises:
        InvalidURLError: bad scheme, missing type/label, bad label or escape
        UnknownParameterError: unrecognised parameter name
        InvalidParameterError: non-integer counter/digits/period, or digits
        above MAX_DIGITS
    """
    if "://" in s:
        scheme, s = s.split("://", 1)
        if scheme != SCHEME:
            raise InvalidURLError(f"invalid scheme {scheme!r}")

    type_label, _, params = s.partition("?")

    # The "//" authority marker is optional.
    if type_label.startswith("//"):
        type_label = type_label[2:]
    parts = type_label.split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidURLError("invalid type/label")

    out = Account(account="", type=parts[0].lower())
    _parse_label(out, parts[1])
    if not params:
        return out

    for param in params.split("&"):
        name, _, raw_value = param.partition("=")
        try:
            value = _unescape(raw_value)
        except (InvalidURLError, UnicodeDecodeError) as e:
            raise InvalidURLError(f"invalid value: {e}") from e

        # String-valued parameters.
        if name == "algorithm":
            out.algorithm = value.upper()
            continue
        if name == "issuer":
            out.issuer = value
            continue
        if name == "secret":
            out.raw_secret = value
            continue

        # Everything else must be a known integer parameter; the name is
        # checked before the value so an unknown field is reported first.
        if name not in ("counter", "digits", "period"):
            raise UnknownParameterError(f"invalid parameter {name!r}")
        number = _parse_uint(value)
        if name == "digits" and number > MAX_DIGITS:
            raise InvalidParameterError(f"invalid digits {number} (at most {MAX_DIGITS})")
        setattr(out, name, number)
    return out


def encode_url(account: Account) -> str:
    """
    Serialize an Account as an otpauth URL.

    Only non-default values are emitted as parameters. The secret is written
    upper-case, without whitespace and without '=' padding.

    Raises:
        InvalidURLError: the issuer contains ':', or the account contains ':'
        and there is no issuer (the label could not be parsed back)
    """
    typ = account.type.lower()
    params: List[str] = []

    algorithm = (account.algorithm or "").upper()
    if algorithm and algorithm != DEFAULT_ALGORITHM:
        params.append("algorithm=" + _escape(algorithm))
    if account.counter > 0 or typ == "hotp":
        params.append(f"counter={account.counter}")
    if account.digits > 0 and account.digits != DEFAULT_DIGITS:
        params.append(f"digits={account.digits}")
    if account.issuer:
        params.append("issuer=" + _escape(account.issuer))
    if account.period > 0 and account.period != DEFAULT_TIME_STEP:
        params.append(f"period={account.period}")
    if account.raw_secret:
        params.append("secret=" + _escape(_clean_secret(account.raw_secret)))

    url = f"{SCHEME}://{typ}/{_label_string(account)}"
    if params:
        url += "?" + "&".join(params)
    return url
