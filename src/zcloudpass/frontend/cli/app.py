"""
Command-line front-end for zcloudpass.

Commands:
  register              create an account with an empty vault and log in
  login                 create a new session
  logout                end the session (server call is best-effort)
  list                  show vault entries
  add                   add an entry (optionally with a generated password)
  remove <id>           delete an entry
  copy <id>             copy an entry's password to the clipboard
  generate              print a random password
  rotate                change the master password
  health                check the service

The master password is read from ZCLOUDPASS_MASTER_PASSWORD when set, otherwise
prompted for. The account email comes from --email or ZCLOUDPASS_EMAIL.
"""

from __future__ import annotations

import argparse
import getpass
import os
import sys
from dataclasses import replace
from typing import Callable, Dict, List, Optional

from keyring.errors import KeyringError

from zcloudpass.config import ClientConfig
from zcloudpass.core.exceptions import (
    ConflictError,
    DecryptionError,
    HttpError,
    PartialRotationError,
    ZCloudPassError,
)
from zcloudpass.core.vault_session import VaultSession, register_account
from zcloudpass.security.passwords import generate_password, password_strength, validate_new_password

from .clipboard import copy_secret
from .context import AppContext, build_context
from .logging_config import configure_logging, level_for_verbosity

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFLICT = 2


def _email(args) -> str:
    email = args.email or os.getenv("ZCLOUDPASS_EMAIL")
    if not email:
        raise ValueError("an account email is required (--email or ZCLOUDPASS_EMAIL)")
    return email


def _master_password(prompt: str = "Master password: ") -> str:
    return os.getenv("ZCLOUDPASS_MASTER_PASSWORD") or getpass.getpass(prompt)


def _new_password() -> str:
    password = getpass.getpass("New master password: ")
    confirmation = getpass.getpass("Confirm new master password: ")
    validate_new_password(password, confirmation)
    return password


def _open_vault(ctx: AppContext, args) -> VaultSession:
    session = VaultSession(ctx.sync, _email(args), _master_password())
    session.open()
    return session


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------


def cmd_register(ctx: AppContext, args) -> int:
    email = _email(args)
    password = _new_password()
    print(f"Password strength: {password_strength(password)}")
    register_account(ctx.auth, email, password, username=args.username)
    print(f"Registered {email}")
    return EXIT_OK


def cmd_login(ctx: AppContext, args) -> int:
    session = ctx.auth.login(_email(args), _master_password())
    print(f"Logged in until {session.expires_at.isoformat()}")
    return EXIT_OK


def cmd_logout(ctx: AppContext, args) -> int:
    ctx.auth.logout()
    print("Logged out")
    return EXIT_OK


def cmd_list(ctx: AppContext, args) -> int:
    with _open_vault(ctx, args) as session:
        if not session.entries:
            print("Vault is empty")
        for entry in session.entries:
            parts = [entry.id, entry.name]
            if entry.username:
                parts.append(entry.username)
            if entry.url:
                parts.append(entry.url)
            print("  ".join(parts))
    return EXIT_OK


def cmd_add(ctx: AppContext, args) -> int:
    if args.generate:
        password = generate_password(args.length)
    else:
        password = getpass.getpass("Entry password (empty for none): ")
    with _open_vault(ctx, args) as session:
        entry = session.add_entry(
            args.name,
            username=args.username,
            password=password,
            url=args.url,
            notes=args.notes,
        )
        print(f"Added {entry.name} ({entry.id}), vault version {session.version}")
    return EXIT_OK


def cmd_remove(ctx: AppContext, args) -> int:
    with _open_vault(ctx, args) as session:
        session.delete_entry(args.entry_id)
        print(f"Removed {args.entry_id}, vault version {session.version}")
    return EXIT_OK


def cmd_copy(ctx: AppContext, args) -> int:
    with _open_vault(ctx, args) as session:
        entry = session.get_entry(args.entry_id)
        if not entry.password:
            print(f"{entry.name} has no password")
            return EXIT_ERROR
        if not copy_secret(entry.password):
            print("No clipboard available")
            return EXIT_ERROR
    print(f"Copied password for {entry.name}")
    return EXIT_OK


def cmd_generate(ctx: AppContext, args) -> int:
    print(generate_password(args.length))
    return EXIT_OK


def cmd_rotate(ctx: AppContext, args) -> int:
    email = _email(args)
    current = _master_password("Current master password: ")
    new = _new_password()
    result = ctx.rotation.rotate(email, current, new)
    print(f"Master password changed ({result.entries} entries, vault version {result.vault_version})")
    # the old session was issued for the old credential
    ctx.auth.logout()
    print("Please log in again")
    return EXIT_OK


def cmd_health(ctx: AppContext, args) -> int:
    print(ctx.auth.fetch_health().strip())
    print(ctx.auth.fetch_auth_health().strip())
    return EXIT_OK


COMMANDS: Dict[str, Callable[[AppContext, argparse.Namespace], int]] = {
    "register": cmd_register,
    "login": cmd_login,
    "logout": cmd_logout,
    "list": cmd_list,
    "add": cmd_add,
    "remove": cmd_remove,
    "copy": cmd_copy,
    "generate": cmd_generate,
    "rotate": cmd_rotate,
    "health": cmd_health,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zcloudpass", description="End-to-end encrypted password vault client")
    parser.add_argument("--email", help="account email (default: $ZCLOUDPASS_EMAIL)")
    parser.add_argument("--api-base", help="service base URL including /api/v1")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="more logging (-vv for debug)")

    sub = parser.add_subparsers(dest="command", required=True)

    register = sub.add_parser("register", help="create an account")
    register.add_argument("--username")

    sub.add_parser("login", help="create a new session")
    sub.add_parser("logout", help="end the session")
    sub.add_parser("list", help="list vault entries")

    add = sub.add_parser("add", help="add an entry")
    add.add_argument("name")
    add.add_argument("--username")
    add.add_argument("--url")
    add.add_argument("--notes")
    add.add_argument("--generate", action="store_true", help="generate the entry password")
    add.add_argument("--length", type=int, default=16)

    remove = sub.add_parser("remove", help="delete an entry")
    remove.add_argument("entry_id")

    copy = sub.add_parser("copy", help="copy an entry password to the clipboard")
    copy.add_argument("entry_id")

    generate = sub.add_parser("generate", help="print a random password")
    generate.add_argument("--length", type=int, default=16)

    sub.add_parser("rotate", help="change the master password")
    sub.add_parser("health", help="check the service")
    return parser


def main(argv: Optional[List[str]] = None, ctx: Optional[AppContext] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level_for_verbosity(args.verbose))

    own_ctx = ctx is None
    try:
        if own_ctx:
            config = ClientConfig.from_env()
            if args.api_base:
                config = replace(config, api_base=args.api_base)
            ctx = build_context(config)
        return COMMANDS[args.command](ctx, args)
    except ConflictError:
        print("The vault was changed elsewhere; nothing was saved. Run the command again.", file=sys.stderr)
        return EXIT_CONFLICT
    except DecryptionError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_ERROR
    except PartialRotationError as exc:
        print(
            "Vault re-encrypted under the new password, but the server still expects the old one "
            f"to log in: {exc.cause}",
            file=sys.stderr,
        )
        return EXIT_ERROR
    except HttpError as exc:
        print(f"Server error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except (ZCloudPassError, ValueError, RuntimeError, KeyringError) as exc:
        # RuntimeError: the keyring backend was refused as insecure
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        if own_ctx and ctx is not None:
            ctx.close()


if __name__ == "__main__":
    sys.exit(main())
