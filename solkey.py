#!/usr/bin/env python3
"""
solkey - derive Solana ed25519 wallets from a BIP39 mnemonic or raw seed.

Keys follow SLIP-0010 hardened derivation on BIP44 paths
(``m/44'/501'/<account>'/0'`` unless ``--path`` says otherwise). Results
are printed as a table or JSON and can be appended to a password-encrypted
``.key.encrypted`` export.
"""
import argparse
import base64
import importlib.util
import json
import logging
import os
import sys
import threading
from typing import Dict, List, Optional

import pwinput
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from keyderive import HARDENED_OFFSET, derive_accounts, derive_wallet, generate_wallet, mnemonic_to_seed

console = Console()
# status and errors go to stderr so --output json stays parseable
err_console = Console(stderr=True)

cfg_dir = "config"
APP_DIR_NAME = "solkey"
ENCRYPTED_SUFFIX = ".key.encrypted"

# ---------------------
# Settings (defaults, may be overridden by config/settings.py)
# ---------------------
_INTERNAL_DEFAULTS = {
    "DEFAULT_PATH": None,          # None -> derive the account range below
    "DEFAULT_ACCOUNTS": 1,
    "DEFAULT_MNEMONIC_WORDS": 24,
    "DEFAULT_OUTPUT": "table",
    "DEFAULT_HARDENED_OFFSET": HARDENED_OFFSET,
    "DEFAULT_KDF_ITERATIONS": 200_000,
}

USER_SETTINGS: Dict[str, object] = {}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


_SETTING_CHECKS = {
    "DEFAULT_PATH": lambda v: v is None or isinstance(v, str),
    "DEFAULT_ACCOUNTS": lambda v: _is_int(v) and v >= 1,
    "DEFAULT_MNEMONIC_WORDS": lambda v: v in (12, 24) and _is_int(v),
    "DEFAULT_OUTPUT": lambda v: v in ("table", "json"),
    "DEFAULT_HARDENED_OFFSET": lambda v: _is_int(v) and 0 <= v <= 0xFFFFFFFF,
    "DEFAULT_KDF_ITERATIONS": lambda v: _is_int(v) and v >= 1,
}


def validate_settings(settings: Dict[str, object]) -> Dict[str, object]:
    """Drop settings whose values the CLI cannot use; the internal default applies instead."""
    valid = {}
    for name, value in settings.items():
        check = _SETTING_CHECKS.get(name)
        if check is not None and not check(value):
            logging.warning("Ignoring invalid setting %s = %r; using %r", name, value, _INTERNAL_DEFAULTS[name])
            err_console.print(f"[yellow]Warning:[/yellow] ignoring invalid setting {escape(name)} = {escape(repr(value))}")
            continue
        valid[name] = value
    return valid


def write_default_settings(path: str):
    with open(path, "w", encoding="utf-8") as sf:
        sf.write("# Regenerated settings.py - values derived from internal defaults\n")
        for k, v in _INTERNAL_DEFAULTS.items():
            # repr keeps strings quoted and None as None
            sf.write(f"{k} = {repr(v)}\n")


def load_settings(config_dir: str = cfg_dir) -> Dict[str, object]:
    """
    Load uppercase names from ``<config_dir>/settings.py``.

    The file is regenerated from the internal defaults when missing, so the
    app always has a settings file to edit. A broken settings file is
    logged and ignored.
    """
    global USER_SETTINGS
    settings_path = os.path.join(config_dir, "settings.py")
    try:
        if not os.path.exists(settings_path):
            os.makedirs(config_dir, exist_ok=True)
            write_default_settings(settings_path)
    except OSError:
        logging.warning("Could not regenerate %s", settings_path)

    USER_SETTINGS = {}
    if os.path.exists(settings_path):
        try:
            spec = importlib.util.spec_from_file_location("solkey_user_settings", settings_path)
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
            USER_SETTINGS = validate_settings({k: getattr(module, k) for k in dir(module) if k.isupper()})
        except Exception:
            logging.exception("Failed to load %s; using internal defaults", settings_path)
            USER_SETTINGS = {}
    return USER_SETTINGS


def get_setting(name: str):
    # CLI overrides at runtime; settings.py wins over internal defaults
    return USER_SETTINGS.get(name, _INTERNAL_DEFAULTS.get(name))


# ---------------------
# Project paths (./solkey is the application folder)
# ---------------------
def app_dir() -> str:
    return os.path.join(os.getcwd(), APP_DIR_NAME)


def ensure_app_dir() -> str:
    path = app_dir()
    os.makedirs(path, exist_ok=True)
    return path


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_log_handler: Optional[logging.FileHandler] = None


def setup_logging(verbose: bool = False):
    """
    Send log records to ./solkey/solkey.log. Safe to call more than once:
    the file handler is attached once per log path and only the level changes.
    """
    global _log_handler
    log_path = os.path.abspath(os.path.join(ensure_app_dir(), "solkey.log"))
    root = logging.getLogger()
    if _log_handler is None or _log_handler.baseFilename != log_path:
        if _log_handler is not None:
            root.removeHandler(_log_handler)
            _log_handler.close()
        _log_handler = logging.FileHandler(log_path, encoding="utf-8")
        _log_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(_log_handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def atomic_write_bytes(path: str, data: bytes):
    tmp = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}"
    with open(tmp, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


# ---------------------
# KDF and Fernet
# ---------------------
def _load_or_create_salt() -> bytes:
    salt_path = os.path.join(ensure_app_dir(), "kdf_salt")
    if os.path.exists(salt_path):
        with open(salt_path, "rb") as sf:
            salt = sf.read()
        if len(salt) == 16:
            return salt
        logging.warning("Ignoring malformed kdf salt at %s", salt_path)
    salt = os.urandom(16)
    atomic_write_bytes(salt_path, salt)
    return salt


def derive_key_from_password(password: str, iterations: Optional[int] = None) -> bytes:
    iterations = int(iterations or get_setting("DEFAULT_KDF_ITERATIONS"))
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=_load_or_create_salt(), iterations=iterations)
    return base64.urlsafe_b64encode(kdf.derive(password.encode("utf-8")))


def get_fernet(password: str) -> Fernet:
    return Fernet(derive_key_from_password(password))


def encrypt_data(obj, password: str) -> bytes:
    return get_fernet(password).encrypt(json.dumps(obj).encode("utf-8"))


def decrypt_data(token: bytes, password: str):
    return json.loads(get_fernet(password).decrypt(token).decode("utf-8"))


# ---------------------
# Encrypted export
# ---------------------
def export_path(name: str) -> str:
    if name.endswith(ENCRYPTED_SUFFIX):
        return name if os.path.isabs(name) else os.path.join(ensure_app_dir(), name)
    return os.path.join(ensure_app_dir(), f"{name}{ENCRYPTED_SUFFIX}")


def decrypt_file(filepath: str, password: str) -> List[dict]:
    """Return the records stored in ``filepath``; raises ``InvalidToken`` on a wrong password."""
    with open(filepath, "rb") as f:
        token = f.read()
    data = decrypt_data(token, password)
    if not isinstance(data, list):
        raise ValueError(f"Unexpected export layout in {filepath}")
    return data


def save_export(records: List[dict], password: str, filepath: str) -> int:
    """
    Append ``records`` to the encrypted export at ``filepath``.
    Returns the number of records now stored in the file.
    """
    existing = []
    if os.path.exists(filepath):
        # wrong password propagates as InvalidToken; never overwrite what we cannot read
        existing = decrypt_file(filepath, password)
    existing.extend(records)
    atomic_write_bytes(filepath, encrypt_data(existing, password))
    logging.info("Saved %d record(s) to %s (%d total)", len(records), filepath, len(existing))
    return len(existing)


def export_decrypted(filepath: str, password: str) -> str:
    data = decrypt_file(filepath, password)
    outpath = filepath.rsplit(ENCRYPTED_SUFFIX, 1)[0] + ".json"
    atomic_write_bytes(outpath, json.dumps(data, indent=2).encode("utf-8"))
    return outpath


def decrypt_all(password: str, folder: Optional[str] = None) -> List[str]:
    folder = folder or app_dir()
    written = []
    if not os.path.isdir(folder):
        err_console.print(f"[yellow]No export folder found: {folder}[/yellow]")
        return written
    for root, dirs, files in os.walk(folder):
        for fname in sorted(files):
            if not fname.endswith(ENCRYPTED_SUFFIX):
                continue
            fpath = os.path.join(root, fname)
            try:
                written.append(export_decrypted(fpath, password))
            except InvalidToken:
                err_console.print(f"[red]✗ Invalid password or corrupted file: {fpath}[/red]")
                logging.warning("Invalid token for %s", fpath)
            except (ValueError, OSError) as e:
                err_console.print(f"[red]✗ Could not decrypt {fpath}: {escape(str(e))}[/red]")
                logging.warning("Decryption failed for %s: %s", fpath, e)
    return written


# ---------------------
# Output
# ---------------------
def render_records(records: List[dict], output: str, show_secret: bool):
    if output == "json":
        sys.stdout.write(json.dumps(records, indent=2) + "\n")
        return
    table = Table(title="Derived wallets")
    table.add_column("Path")
    table.add_column("Address", overflow="fold")
    if show_secret:
        table.add_column("Secret key (Base58)", overflow="fold")
    for rec in records:
        row = [rec["path"], rec["public_key_b58"]]
        if show_secret:
            row.append(rec.get("secret_key_b58", ""))
        table.add_row(*row)
    console.print(table)


# ---------------------
# Seed input
# ---------------------
def read_seed(args) -> bytes:
    if args.seed_hex is not None:
        try:
            return bytes.fromhex(args.seed_hex.strip())
        except ValueError:
            raise ValueError("--seed-hex must be a hex string") from None
    if args.mnemonic_file is not None:
        with open(args.mnemonic_file, "r", encoding="utf-8") as fh:
            phrase = fh.read()
    elif args.mnemonic is not None:
        phrase = args.mnemonic
    else:
        phrase = pwinput.pwinput("Enter mnemonic: ", mask="*")
    return mnemonic_to_seed(phrase, args.passphrase)


def prompt_new_password() -> Optional[str]:
    password = pwinput.pwinput("Enter password for .key.encrypted files: ", mask="*")
    password_confirm = pwinput.pwinput("Confirm password: ", mask="*")
    if password != password_confirm:
        err_console.print("[red]Passwords do not match. Exiting.[/red]")
        return None
    return password


def _int_auto(text: str) -> int:
    return int(text, 0)


def _setting_or(name: str, fallback: int) -> int:
    # 0 is a legitimate offset, so only None falls back
    value = get_setting(name)
    return fallback if value is None else int(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Derive Solana ed25519 wallets (SLIP-0010, hardened-only) from a mnemonic or seed.",
        epilog="Defaults may be configured in config/settings.py. CLI args override settings.py."
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--mnemonic", help="BIP39 mnemonic phrase (prompted if no seed source is given).")
    source.add_argument("--mnemonic-file", help="Read the BIP39 mnemonic from a file.")
    source.add_argument("--seed-hex", help="Use a raw seed given as hex instead of a mnemonic.")
    parser.add_argument("--passphrase", default="", help="Optional BIP39 passphrase.")
    parser.add_argument("--path", default=get_setting("DEFAULT_PATH"),
                        help="Derive a single path such as m/44'/501'/0'/0' instead of an account range.")
    parser.add_argument("--accounts", type=int, default=int(get_setting("DEFAULT_ACCOUNTS") or 1),
                        help="Number of consecutive accounts to derive on m/44'/501'/<n>'/0'.")
    parser.add_argument("--start", type=int, default=0, help="First account index of the range.")
    parser.add_argument("--hardened-offset", type=_int_auto,
                        default=_setting_or("DEFAULT_HARDENED_OFFSET", HARDENED_OFFSET),
                        help="Offset added to each path segment (default 0x80000000).")
    parser.add_argument("--output", choices=("table", "json"), default=get_setting("DEFAULT_OUTPUT") or "table",
                        help="Output format.")
    parser.add_argument("--show-secret", action="store_true", help="Include secret keys in the output.")
    parser.add_argument("--save", metavar="NAME",
                        help="Append the derived wallets (with secrets) to an encrypted NAME.key.encrypted export.")
    parser.add_argument("--generate", action="store_true", help="Generate a new mnemonic and its first wallet.")
    parser.add_argument("--mnemonic-words", type=int, choices=(12, 24),
                        default=int(get_setting("DEFAULT_MNEMONIC_WORDS") or 24),
                        help="Mnemonic length for --generate (12 or 24).")
    parser.add_argument("--decrypt", nargs="?", const=True,
                        help="Decrypt .key.encrypted exports to JSON. Without argument, decrypts all.")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging")
    return parser


def run_generate(args) -> int:
    record = generate_wallet(args.mnemonic_words, args.passphrase, args.path, args.hardened_offset)
    if args.output == "json":
        sys.stdout.write(json.dumps(record, indent=2) + "\n")
    else:
        console.print(Panel(record["mnemonic"], title="Mnemonic (write this down)"))
        render_records([record], args.output, show_secret=True)
    logging.info("Generated wallet %s on %s", record["public_key_b58"], record["path"])
    if args.save:
        password = prompt_new_password()
        if password is None:
            return 1
        filepath = export_path(args.save)
        count = save_export([record], password, filepath)
        err_console.print(f"[green]✓ Saved to {filepath} ({count} total)[/green]")
    return 0


def run_decrypt(args) -> int:
    password = pwinput.pwinput("Enter password for decryption: ", mask="*")
    if args.decrypt is True:
        written = decrypt_all(password)
        for outpath in written:
            err_console.print(f"[green]✓ Decrypted:[/green] {outpath}")
        return 0 if written else 1
    try:
        outpath = export_decrypted(args.decrypt, password)
    except InvalidToken:
        err_console.print(f"[red]✗ Invalid password or corrupted file: {args.decrypt}[/red]")
        logging.warning("Invalid token for %s", args.decrypt)
        return 1
    except (ValueError, OSError) as e:
        err_console.print(f"[red]✗ Unable to decrypt {args.decrypt}: {escape(str(e))}[/red]")
        logging.exception("Failed to read for decrypt %s", args.decrypt)
        return 1
    err_console.print(f"[green]✓ Decrypted:[/green] {outpath}")
    return 0


def run_derive(args) -> int:
    seed = read_seed(args)
    include_secret = args.show_secret or bool(args.save)
    if args.path:
        records = [derive_wallet(seed, args.path, args.hardened_offset, include_secret)]
    else:
        records = derive_accounts(seed, args.accounts, args.start, hardened_offset=args.hardened_offset,
                                  include_secret=include_secret)
    for rec in records:
        logging.info("Derived %s | %s", rec["path"], rec["public_key_b58"])

    if args.save:
        password = prompt_new_password()
        if password is None:
            return 1
        filepath = export_path(args.save)
        count = save_export(records, password, filepath)
        err_console.print(f"[green]✓ Saved {len(records)} wallet(s) to {filepath} ({count} total)[/green]")
        if not args.show_secret:
            records = [{k: v for k, v in rec.items() if k in ("path", "public_key_bytes", "public_key_b58",
                                                                "created_at")} for rec in records]
    render_records(records, args.output, args.show_secret)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    # log file first, so settings warnings land in it
    setup_logging()
    load_settings(cfg_dir)
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.decrypt:
            return run_decrypt(args)
        if args.generate:
            return run_generate(args)
        return run_derive(args)
    except InvalidToken:
        err_console.print("[red]✗ Invalid password for the existing export. Nothing was written.[/red]")
        logging.warning("Invalid password for export %s", args.save)
        return 1
    except (ValueError, OSError) as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        logging.warning("solkey failed: %s", e)
        return 1
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted.[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
