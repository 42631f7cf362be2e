#!/usr/bin/env python3
"""
otp_cli.py — CLI wrapper around the otp_tool core.

Usage:
  otp-tool                      # table of prev/curr/next codes for every account
  otp-tool github               # same, only for "github"
  otp-tool github --bare        # current code only
  otp-tool github --add         # prompt for a secret and append it
  otp-tool github --remove      # remove after confirmation
  otp-tool github --secret      # print the stored Base32 secret
  otp-tool github --uri         # print the otpauth:// URL

The config path comes from $GAUTH_CONFIG (default ~/.config/gauth.csv).
Encrypted configs prompt for the password once.
"""

import argparse
import getpass
import logging
import sys

from .errors import OTPError
from .otp_core import DEFAULT_TIME_STEP, codes, current_time_step_and_elapsed
from .session import ConfigSession

logger = logging.getLogger(__name__)

PROGRESS_WIDTH = DEFAULT_TIME_STEP - 1


def prompt_password() -> bytes:
    return getpass.getpass("Encryption password: ").encode("utf-8")


# --- Output helpers ---
def format_table(rows) -> str:
    """Left-aligned columns separated by one space, header row first."""
    rows = [("", "prev", "curr", "next")] + [tuple(r) for r in rows]
    widths = [max(len(r[i]) for r in rows) for i in range(4)]
    lines = []
    for row in rows:
        cells = [cell.ljust(width) for cell, width in zip(row, widths)]
        lines.append(" ".join(cells).rstrip())
    return "\n".join(lines)


def progress_bar(elapsed: int) -> str:
    return f"[{'=' * elapsed:<{PROGRESS_WIDTH}}]"


# --- CLI command handlers ---
def account_codes(account):
    """codes() with the account name added to any error, keeping its type."""
    try:
        return codes(account)
    except OTPError as e:
        raise type(e)(f"generating codes for {account.account!r}: {e}") from e


def cmd_list(session, args):
    _, elapsed = current_time_step_and_elapsed()
    rows = []
    for account in session.filter(args.account):
        prev, curr, nxt = account_codes(account)
        rows.append((account.account, prev, curr, nxt))
    print(format_table(rows))
    print(progress_bar(elapsed))


def cmd_bare(session, args):
    _, curr, _ = account_codes(session.find(args.account))
    print(curr)


def cmd_add(session, args):
    # Password prompt (if encrypted) comes before the key prompt.
    session.load(missing_ok=True)
    key = input(f"Key for {args.account}: ")
    account = session.add_account(args.account, key)
    _, curr, _ = account_codes(account)
    print(f"Current OTP for {account.account}: {curr}")


def cmd_remove(session, args):
    account = session.find(args.account)
    answer = input(f"Are you sure you want to remove {account.account} [y/N]: ")
    if answer.strip().lower() != "y":
        print("Nothing has been removed.")
        return
    session.remove_account(args.account)
    print(f"{account.account} has been removed.")


def cmd_secret(session, args):
    print(session.find(args.account).raw_secret)


def cmd_uri(session, args):
    print(session.find(args.account).to_url())


ACTIONS = {
    "bare": cmd_bare,
    "add": cmd_add,
    "remove": cmd_remove,
    "secret": cmd_secret,
    "uri": cmd_uri,
}


# --- Argparse builder ---
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="otp-tool", description="TOTP codes from a local (optionally encrypted) config file")
    p.add_argument("account", nargs="?", help="Account name (case-insensitive)")
    p.add_argument("--config", help="Config file path (default: $GAUTH_CONFIG or ~/.config/gauth.csv)")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    actions = p.add_mutually_exclusive_group()
    actions.add_argument("-b", "--bare", dest="action", action="store_const", const="bare", help="Print the current code only")
    actions.add_argument("-a", "--add", dest="action", action="store_const", const="add", help="Add a new account")
    actions.add_argument("-r", "--remove", dest="action", action="store_const", const="remove", help="Remove an account")
    actions.add_argument("-s", "--secret", dest="action", action="store_const", const="secret", help="Print the account secret")
    actions.add_argument("-u", "--uri", dest="action", action="store_const", const="uri", help="Print the otpauth:// URL")
    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.action and not args.account:
        parser.error(f"--{args.action} requires an account name")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[+] %(message)s",
    )

    session = ConfigSession(args.config, prompt_password)
    handler = ACTIONS.get(args.action, cmd_list)
    try:
        handler(session, args)
    except (OTPError, OSError) as e:
        logger.debug("%s failed", handler.__name__, exc_info=True)
        print(f"[!] {e}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nBye.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
