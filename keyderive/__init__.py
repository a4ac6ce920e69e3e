"""
keyderive - SLIP-0010 hardened ed25519 key derivation for Solana wallets.
"""
from .keypair import Keypair, expand
from .path import DerivationPath, InvalidFormat, PathError, parse_path
from .slip10 import (CHILD_MESSAGE, ED25519_SEED_KEY, HARDENED_OFFSET, ExtendedKey, InvariantViolation, SeedError,
                     build_child_message, derive, derive_chain, derive_child, derive_master)
from .wallet import (SOLANA_PATH, account_path, derive_accounts, derive_wallet, generate_wallet, mnemonic_to_seed,
                     new_mnemonic)

__all__ = [
    "Keypair", "expand",
    "DerivationPath", "InvalidFormat", "PathError", "parse_path",
    "CHILD_MESSAGE", "ED25519_SEED_KEY", "HARDENED_OFFSET", "ExtendedKey", "InvariantViolation", "SeedError",
    "build_child_message", "derive", "derive_chain", "derive_child", "derive_master",
    "SOLANA_PATH", "account_path", "derive_accounts", "derive_wallet", "generate_wallet", "mnemonic_to_seed",
    "new_mnemonic",
]
