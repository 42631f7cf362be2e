"""
errors.py — Exception hierarchy for otp-tool.

Every failure the core can report derives from OTPError, so a caller (the CLI)
can catch one type, print the message and exit. Most classes also subclass the
builtin they specialise (ValueError, FileNotFoundError, ...) so plain Python
code that catches those keeps working.
"""

from typing import Optional


class OTPError(Exception):
    """Base class for every error raised by otp_tool."""


# --- Key / engine errors ---------------------------------------------------
class InvalidSecretError(OTPError, ValueError):
    """The Base32 secret could not be decoded into a usable key."""


class UnsupportedTypeError(OTPError, ValueError):
    """The account type is not supported by the requested operation."""


class UnsupportedAlgorithmError(OTPError, ValueError):
    """The hash algorithm name is not SHA1, SHA256 or SHA512."""


# --- Config file errors ----------------------------------------------------
class InvalidPasswordError(OTPError):
    """
    Decryption failed.

    Wrong password and corrupted file cannot be told apart (no MAC in the
    Salted__ format), so both end up here.
    """


class ConfigNotFoundError(OTPError, FileNotFoundError):
    """The config file does not exist."""


class ConfigSyntaxError(OTPError, ValueError):
    """
    A config line or otpauth URL could not be parsed.

    `line` is the 1-indexed line number in the config file, or None when the
    error comes from parsing a standalone URL.
    """

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"line {self.line}: {self.message}"

    def at_line(self, line: int, context: Optional[str] = None) -> "ConfigSyntaxError":
        """Return a copy of this error (same class) tagged with a line number."""
        message = f"{context}: {self.message}" if context else self.message
        return type(self)(message, line=line)


class MalformedLineError(ConfigSyntaxError):
    """A shorthand line is not in `name:secret` form."""


class InvalidURLError(ConfigSyntaxError):
    """An otpauth URL is syntactically invalid."""


class UnknownParameterError(InvalidURLError):
    """An otpauth URL carries a query parameter we do not know."""


class InvalidParameterError(InvalidURLError):
    """An otpauth URL parameter has a value of the wrong form."""


# --- Session errors --------------------------------------------------------
class AccountNotFoundError(OTPError, LookupError):
    """No account in the config matches the requested name."""


class DuplicateAccountError(OTPError, ValueError):
    """An account with the same name already exists in the config."""
