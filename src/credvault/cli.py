"""Operator command line for the credential store.

Commands:
    run             load secrets with MASTER_PASSWORD and run a command with them
    init            create the master password and generate all service secrets
    migrate         move plaintext secrets from the environment into the store
    rotate          regenerate one or more service secrets
    change-password re-encrypt the store under a new master password
    hash-password   print an Argon2id hash for an account password

A .env file in the working directory (or the one given with --env-file) is
loaded before the environment is read; existing variables take precedence.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import os
import shutil
import subprocess
import sys
import time
from collections.abc import Sequence
from pathlib import Path

from dotenv import dotenv_values, load_dotenv, set_key, unset_key

from . import __version__
from .config import (
    CREDENTIALS_DIR_ENV,
    MASTER_PASSWORD_ENV,
    MIN_MASTER_PASSWORD_LENGTH,
    StoreSettings,
    read_master_password,
)
from .exceptions import AuthenticationError, CredVaultError
from .models import SERVICE_SLOTS, SecretBundle
from .security import hash_password
from .store import CredentialStore

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Operator-facing failure that ends the command with exit code 1."""


def _prompt_password(prompt: str) -> str:
    return getpass.getpass(prompt)


def _confirm(question: str) -> bool:
    return input(f"{question} (y/N): ").strip().lower() == "y"


def _prompt_new_master_password() -> str:
    """Ask for a new master password until it is long enough and confirmed."""
    while True:
        password = _prompt_password(
            f"Enter master password (min {MIN_MASTER_PASSWORD_LENGTH} chars): "
        )
        if len(password) < MIN_MASTER_PASSWORD_LENGTH:
            print(f"Password must be at least {MIN_MASTER_PASSWORD_LENGTH} characters long")
            continue
        if _prompt_password("Confirm master password: ") != password:
            print("Passwords do not match. Please try again.")
            continue
        return password


def _require_env_master_password() -> str:
    password = read_master_password()
    if password is None:
        raise CommandError(
            f"{MASTER_PASSWORD_ENV} not found in environment. "
            "Run 'credvault init' first to set up your master password."
        )
    return password


def _print_summary(store: CredentialStore, bundle: SecretBundle, show_secrets: bool) -> None:
    print("\n======== CREDENTIAL SUMMARY ========")
    for slot, value in bundle.iter_secrets():
        shown = value if show_secrets else "*" * 8
        print(f"{slot.label:<12} {slot.env_var:<20} {shown}")
    print("====================================")
    print(f"Secrets are encrypted with your master password and stored in {store.path}")


def _write_env_file(path: Path, master_password: str, credentials_dir: Path | None) -> None:
    """Store the master password, and the store location if given, in a .env file."""
    if not path.exists():
        path.touch(mode=0o600)
    written = [MASTER_PASSWORD_ENV]
    set_key(str(path), MASTER_PASSWORD_ENV, master_password)
    if credentials_dir is not None:
        set_key(str(path), CREDENTIALS_DIR_ENV, str(credentials_dir))
        written.append(CREDENTIALS_DIR_ENV)
    os.chmod(path, 0o600)
    print(f"Updated {path} with {' and '.join(written)}")


def _replace_plaintext_secrets(path: Path, master_password: str, credentials_dir: Path) -> None:
    """Back up a .env file, remove migrated secrets from it and add the master password.

    CREDENTIALS_DIR is only added when the file does not set it already.
    """
    existing: dict[str, str | None] = {}
    if path.is_file():
        backup = path.with_name(f"{path.name}.backup-{int(time.time() * 1000)}")
        shutil.copy2(path, backup)
        os.chmod(backup, 0o600)
        print(f"Backup of original {path.name} created at {backup}")

        existing = dotenv_values(path)
        for slot in SERVICE_SLOTS:
            if slot.env_var in existing:
                unset_key(str(path), slot.env_var)
                logger.debug("Removed %s from %s", slot.env_var, path)

    keep_dir = bool(existing.get(CREDENTIALS_DIR_ENV))
    _write_env_file(path, master_password, None if keep_dir else credentials_dir)


# --- Commands ---


def cmd_run(args: argparse.Namespace, settings: StoreSettings) -> int:
    store = CredentialStore.from_settings(settings)
    master_password = _require_env_master_password()

    bundle = store.load(master_password)
    if bundle is None:
        raise CommandError(
            f"No credentials found at {store.path}. Run 'credvault init' first."
        )
    logger.info("Service credentials loaded")

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        print("Credentials loaded successfully. No command specified.")
        return 0

    env = dict(os.environ)
    env.pop(MASTER_PASSWORD_ENV, None)
    env.update(store.export_environment(bundle))

    logger.info("Executing: %s", command[0])
    try:
        completed = subprocess.run(command, env=env, check=False)
    except OSError as e:
        raise CommandError(f"Error executing command: {e}") from e
    return completed.returncode


def cmd_init(args: argparse.Namespace, settings: StoreSettings) -> int:
    store = CredentialStore.from_settings(settings)

    if store.exists:
        print("Credentials already exist. Reinitializing will generate new secrets.")
        if not args.force and not _confirm("Do you want to continue?"):
            print("Operation cancelled. Existing credentials preserved.")
            return 0

    master_password = _prompt_new_master_password()

    bundle = SecretBundle.generate(store.generate_secret)
    store.save(bundle, master_password)
    _print_summary(store, bundle, args.show_secrets)

    if args.write_env is not None:
        _write_env_file(args.write_env, master_password, settings.credentials_dir)

    print("Credential initialization complete.")
    return 0


def cmd_migrate(args: argparse.Namespace, settings: StoreSettings) -> int:
    store = CredentialStore.from_settings(settings)

    legacy = {slot.env_var: os.environ.get(slot.env_var) for slot in SERVICE_SLOTS}
    found = [name for name, value in legacy.items() if value]
    if not found:
        print("No existing service credentials found in the environment.")
        if not _confirm("Do you want to proceed with setup anyway?"):
            print("Operation cancelled.")
            return 0
    else:
        print(f"Found existing secrets: {', '.join(found)}")

    master_password = _prompt_new_master_password()
    bundle = store.migrate(master_password, legacy, overwrite=args.force)
    _print_summary(store, bundle, show_secrets=False)
    _replace_plaintext_secrets(args.env_file, master_password, settings.credentials_dir)
    print("Migration complete. Start services through 'credvault run'.")
    return 0


def cmd_rotate(args: argparse.Namespace, settings: StoreSettings) -> int:
    store = CredentialStore.from_settings(settings)
    master_password = _require_env_master_password()
    services = args.services or None
    store.rotate(master_password, services)
    rotated = services or [slot.service for slot in SERVICE_SLOTS]
    print(f"Rotated: {', '.join(rotated)}")
    print("Restart dependent services so they pick up the new secrets.")
    return 0


def cmd_change_password(args: argparse.Namespace, settings: StoreSettings) -> int:
    store = CredentialStore.from_settings(settings)
    old_password = _prompt_password("Current master password: ")
    new_password = _prompt_new_master_password()
    store.change_master_password(old_password, new_password)
    print(f"Master password changed. Update {MASTER_PASSWORD_ENV} wherever it is configured.")
    return 0


def cmd_hash_password(args: argparse.Namespace, settings: StoreSettings) -> int:
    password = _prompt_password("Password to hash: ")
    print(hash_password(password))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credvault",
        description="Master-password protected credential store for server services",
    )
    parser.add_argument("--version", action="version", version=f"credvault {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this file (default: ./.env)",
    )
    sub = parser.add_subparsers(dest="command_name", required=True)

    run = sub.add_parser("run", help="Load credentials and run a command with them")
    run.add_argument("command", nargs=argparse.REMAINDER, help="Command and arguments")
    run.set_defaults(func=cmd_run)

    init = sub.add_parser("init", help="Create master password and generate secrets")
    init.add_argument("--force", action="store_true", help="Replace existing credentials")
    init.add_argument("--show-secrets", action="store_true", help="Print generated secrets")
    init.add_argument(
        "--write-env",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write MASTER_PASSWORD and CREDENTIALS_DIR to this .env file",
    )
    init.set_defaults(func=cmd_init)

    migrate = sub.add_parser("migrate", help="Encrypt plaintext secrets from the environment")
    migrate.add_argument("--force", action="store_true", help="Replace existing credentials")
    migrate.set_defaults(func=cmd_migrate)

    rotate = sub.add_parser("rotate", help="Regenerate service secrets")
    rotate.add_argument(
        "services",
        nargs="*",
        metavar="SERVICE",
        help="Services to rotate: "
        + ", ".join(slot.service for slot in SERVICE_SLOTS)
        + " (default: all)",
    )
    rotate.set_defaults(func=cmd_rotate)

    change = sub.add_parser("change-password", help="Change the master password")
    change.set_defaults(func=cmd_change_password)

    hashpw = sub.add_parser("hash-password", help="Hash an account password with Argon2id")
    hashpw.set_defaults(func=cmd_hash_password)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    args.env_file = args.env_file or Path.cwd() / ".env"
    if args.env_file.is_file():
        load_dotenv(args.env_file, override=False)
    settings = StoreSettings.from_env()

    try:
        return args.func(args, settings)
    except AuthenticationError:
        print("Invalid master password or corrupted data", file=sys.stderr)
    except (CredVaultError, CommandError) as e:
        print(f"Error: {e}", file=sys.stderr)
    except KeyboardInterrupt:
        print("\nOperation cancelled.", file=sys.stderr)
    return 1
