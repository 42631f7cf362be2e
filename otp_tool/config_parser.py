"""
config_parser.py — Parse the decrypted config file into Account records.

One account per line, blank lines ignored. A line is either

    name:secret                      (TOTP, SHA1, 6 digits, 30 s)

or a full otpauth URL

    otpauth://TYPE/LABEL?PARAMETERS

Parsing is a pure transform; reading and decrypting the file is done by
config_crypto.
"""

from typing import List, Union

from .errors import ConfigSyntaxError, MalformedLineError
from .otpauth_url import Account, decode_url

URL_PREFIX = "otpauth://"


def parse_line(line: str, line_no: int) -> Account:
    """
    Parse a single non-blank config line.

    Arguments:
        line: the line, surrounding whitespace allowed
        line_no: 1-indexed line number, used in error messages

    Raises:
        MalformedLineError: shorthand line without a colon
        InvalidURLError (or subclass): bad otpauth URL, tagged with line_no
    """
    trim = line.strip()

    if trim.startswith(URL_PREFIX):
        try:
            return decode_url(trim)
        except ConfigSyntaxError as e:
            raise e.at_line(line_no, "invalid otpauth URL") from e

    name, sep, secret = trim.partition(":")
    if not sep:
        raise MalformedLineError("invalid format (want name:secret)", line=line_no)
    if not name.strip():
        raise MalformedLineError("empty account name", line=line_no)
    return Account(type="totp", account=name.strip(), raw_secret=secret.strip())


def parse_config(data: Union[bytes, str]) -> List[Account]:
    """
    Parse config contents into a list of Account, in file order.

    Duplicate names are allowed here. Line numbers count blank lines too, so
    they match what an editor shows.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConfigSyntaxError(f"config is not valid UTF-8: {e}") from e

    accounts = []
    for ln, line in enumerate(data.split("\n"), start=1):
        if not line.strip():
            continue
        accounts.append(parse_line(line, ln))
    return accounts
