# Sol wallet derivation
"""
Solana wallet helpers built on the SLIP-0010 derivation.

A BIP39 mnemonic is turned into a 64-byte seed with the ``mnemonic``
package, then the keypair for a BIP44 path (``m/44'/501'/<account>'/0'``
by default) is derived with :func:`keyderive.slip10.derive` and expanded
with PyNaCl. The same mnemonic therefore restores the same addresses in
Phantom, Solflare and the Solana CLI.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

from mnemonic import Mnemonic

from .keypair import expand
from .path import DerivationPath, parse_path
from .slip10 import HARDENED_OFFSET, derive

logger = logging.getLogger(__name__)

SOLANA_COIN_TYPE = 501
SOLANA_PATH = "m/44'/501'/0'/0'"

_ENTROPY_BYTES = {12: 16, 24: 32}


def new_mnemonic(mnemonic_words: int = 24) -> str:
    """Generate a fresh English BIP39 mnemonic of 12 or 24 words."""
    if mnemonic_words not in _ENTROPY_BYTES:
        raise ValueError("mnemonic_words must be 12 or 24")
    return Mnemonic("english").to_mnemonic(os.urandom(_ENTROPY_BYTES[mnemonic_words]))


def mnemonic_to_seed(phrase: str, passphrase: str = "") -> bytes:
    """
    Convert a BIP39 mnemonic to its 64-byte seed.

    Raises
    ------
    ValueError
        If the phrase fails the BIP39 word list or checksum check.
    """
    mnemo = Mnemonic("english")
    normalized = " ".join(phrase.split())
    if not mnemo.check(normalized):
        raise ValueError("Invalid BIP39 mnemonic (unknown word or bad checksum)")
    return mnemo.to_seed(normalized, passphrase=passphrase)


def account_path(account: int = 0, change: int = 0) -> DerivationPath:
    return DerivationPath((44, SOLANA_COIN_TYPE, account, change))


def derive_wallet(seed: bytes, path: Union[str, DerivationPath] = SOLANA_PATH,
                  hardened_offset: int = HARDENED_OFFSET,
                  include_secret: bool = False) -> Dict[str, str]:
    """
    Derive one wallet record from ``seed``.

    Returns
    -------
    dict
        ``path``, the public key (hex and Base58 address), the secret key
        (hex and 64-byte Base58) when ``include_secret`` is set, and an
        ISO-8601 creation timestamp.
    """
    if not isinstance(path, DerivationPath):
        path = parse_path(path)
    node = derive(path, seed, hardened_offset)
    keypair = expand(node.key)

    record = {"path": str(path)}
    record.update(keypair.to_dict(include_secret=include_secret))
    if include_secret:
        record["chain_code"] = node.chain_code.hex()
    record["created_at"] = datetime.now(timezone.utc).isoformat()
    return record


def derive_accounts(seed: bytes, count: int = 1, start: int = 0, change: int = 0,
                    hardened_offset: int = HARDENED_OFFSET,
                    include_secret: bool = False) -> List[Dict[str, str]]:
    """Derive ``count`` consecutive Solana accounts starting at ``start``."""
    if count < 1:
        raise ValueError("count must be at least 1")
    if start < 0:
        raise ValueError("start must not be negative")
    records = []
    for account in range(start, start + count):
        records.append(derive_wallet(seed, account_path(account, change), hardened_offset, include_secret))
    logger.debug("Derived %d account(s) from index %d", count, start)
    return records


def generate_wallet(mnemonic_words: int = 24, passphrase: str = "",
                    path: Optional[Union[str, DerivationPath]] = None,
                    hardened_offset: int = HARDENED_OFFSET) -> Dict[str, str]:
    """Generate a new Solana wallet on ``m/44'/501'/0'/0'`` (or ``path``).

    Parameters
    ----------
    mnemonic_words : int, optional
        Number of words for the mnemonic (12 or 24). Defaults to 24.

    Returns
    -------
    dict
        The wallet record from :func:`derive_wallet` with secrets included,
        plus the mnemonic that restores it.
    """
    phrase = new_mnemonic(mnemonic_words)
    seed = mnemonic_to_seed(phrase, passphrase)
    record = derive_wallet(seed, SOLANA_PATH if path is None else path, hardened_offset, include_secret=True)
    record["mnemonic"] = phrase
    return record
