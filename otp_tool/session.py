"""
session.py — One config, loaded once per invocation.

A ConfigSession bundles the config path, the password provider and the lazily
loaded file contents, so operations that need both the raw text and the parsed
accounts (e.g. "add") do not decrypt or prompt twice.
"""

from pathlib import Path
from typing import Callable, List, Optional
import errno
import logging
import os

from . import config_crypto
from .config_parser import parse_config, parse_line
from .errors import (
    AccountNotFoundError,
    ConfigNotFoundError,
    ConfigSyntaxError,
    DuplicateAccountError,
    InvalidPasswordError,
    MalformedLineError,
)
from .otpauth_url import Account

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
CONFIG_ENV_VAR = "GAUTH_CONFIG"
DEFAULT_CONFIG_FILE = Path(".config") / "gauth.csv"

PasswordProvider = Callable[[], config_crypto.Password]


def default_config_path() -> str:
    """$GAUTH_CONFIG if set, else ~/.config/gauth.csv."""
    path = os.environ.get(CONFIG_ENV_VAR)
    if path:
        return path
    return str(Path.home() / DEFAULT_CONFIG_FILE)


class ConfigSession:
    """
    Per-invocation access to the config file.

    Arguments:
        path: config file path (default: default_config_path())
        password_provider: called at most once, only if the file is encrypted
    """

    def __init__(self, path: Optional[str] = None,
                 password_provider: Optional[PasswordProvider] = None):
        self.path = path or default_config_path()
        self._password_provider = password_provider
        self._password: Optional[bytes] = None
        self._loaded = False
        self._exists = False
        self._encrypted = False
        self._plaintext = b""
        self._accounts: Optional[List[Account]] = None

    # --- loading -----------------------------------------------------------
    def password(self) -> bytes:
        """Ask the provider for the password the first time, then reuse it."""
        if self._password is None:
            if self._password_provider is None:
                raise InvalidPasswordError("config is encrypted but no password was provided")
            password = self._password_provider()
            if isinstance(password, str):
                password = password.encode("utf-8")
            self._password = password
        return self._password

    def load(self, missing_ok: bool = False) -> None:
        """Read (and decrypt) the config once; later calls are no-ops."""
        if self._loaded:
            if not self._exists and not missing_ok:
                raise ConfigNotFoundError(errno.ENOENT, "config file not found", self.path)
            return

        try:
            data, encrypted = config_crypto.read_config_file(self.path)
        except ConfigNotFoundError:
            if not missing_ok:
                raise
            logger.debug("No config at %s, starting empty", self.path)
            self._loaded = True
            return

        self._exists = True
        self._encrypted = encrypted
        self._plaintext = config_crypto.decrypt(data, self.password()) if encrypted else data
        self._loaded = True

    @property
    def is_encrypted(self) -> bool:
        self.load(missing_ok=True)
        return self._encrypted

    def plaintext(self) -> bytes:
        """Decrypted config contents."""
        self.load()
        return self._plaintext

    def accounts(self) -> List[Account]:
        """Parsed accounts, in file order."""
        if self._accounts is None:
            self._accounts = parse_config(self.plaintext())
        return self._accounts

    def find(self, name: str) -> Account:
        """First account whose name matches (case-insensitive)."""
        wanted = name.lower()
        for account in self.accounts():
            if account.account.lower() == wanted:
                return account
        raise AccountNotFoundError(f"account {name!r} not found")

    def filter(self, name: Optional[str] = None) -> List[Account]:
        """All accounts, or only those whose name matches (case-insensitive)."""
        if not name:
            return self.accounts()
        wanted = name.lower()
        matches = [a for a in self.accounts() if a.account.lower() == wanted]
        if not matches:
            raise AccountNotFoundError(f"account {name!r} not found")
        return matches

    # --- editing -----------------------------------------------------------
    def _save(self, plaintext: bytes) -> None:
        password = self.password() if self._encrypted else None
        config_crypto.write_config_file(self.path, password, plaintext)
        self._exists = True
        self._plaintext = plaintext
        self._accounts = None

    def add_account(self, name: str, secret: str) -> Account:
        """
        Append a `name:secret` line and write the config back.

        A missing config file is created (unencrypted). The new config is
        parsed and the new secret decoded before anything is written.

        Raises:
            MalformedLineError: empty name or a name containing ':'
            DuplicateAccountError: the name already exists
            InvalidSecretError: the secret is not valid Base32
        """
        name = name.strip()
        secret = secret.strip()
        if not name or ":" in name:
            raise MalformedLineError(f"invalid account name {name!r}")

        self.load(missing_ok=True)
        existing = parse_config(self._plaintext)
        if any(a.account.lower() == name.lower() for a in existing):
            raise DuplicateAccountError(f"account {name!r} already exists")

        text = self._plaintext.decode("utf-8").rstrip("\n")
        if text:
            text += "\n"
        text += f"{name}:{secret}\n"

        added = parse_config(text)[-1]
        added.secret()

        self._save(text.encode("utf-8"))
        logger.debug("Added account %r to %s", name, self.path)
        return added

    def remove_account(self, name: str) -> int:
        """
        Drop every line whose account name matches (case-insensitive).

        Blank lines are dropped and the remaining lines are stripped. Nothing
        is written when no line matches.

        Returns:
            number of removed lines

        Raises:
            AccountNotFoundError: no line matches
        """
        wanted = name.strip().lower()
        kept = []
        removed = 0
        text = self.plaintext().decode("utf-8")
        for ln, line in enumerate(text.split("\n"), start=1):
            trim = line.strip()
            if not trim:
                continue
            try:
                account = parse_line(trim, ln)
            except ConfigSyntaxError:
                # Unparseable lines are kept as-is.
                kept.append(trim)
                continue
            if account.account.lower() == wanted:
                removed += 1
                continue
            kept.append(trim)

        if not removed:
            raise AccountNotFoundError(f"account {name!r} not found")

        self._save("".join(line + "\n" for line in kept).encode("utf-8"))
        logger.debug("Removed %d line(s) for %r from %s", removed, name, self.path)
        return removed
