# SLIP-0010 ed25519 derivation
"""
SLIP-0010 hierarchical deterministic derivation for ed25519.

The master node comes from ``HMAC-SHA512(key=b"ed25519 seed", msg=seed)``.
Every child is derived with ``I = HMAC-SHA512(key=c, data=b"\\x00" + k +
index_be)`` where ``c`` is the parent chain code and ``k`` the parent secret
key. ``I`` is split into a new secret key (left 32 bytes) and a new chain
code (right 32 bytes). Only hardened children exist for ed25519.

Everything here is a pure function of its inputs: no I/O, no shared state,
so independent derivations can run from any thread.
"""

import hashlib
import hmac
import logging
import struct
from dataclasses import dataclass
from typing import Dict, List, Union

from .path import DerivationPath, InvalidFormat, parse_path

logger = logging.getLogger(__name__)

ED25519_SEED_KEY = b"ed25519 seed"
HARDENED_OFFSET = 0x80000000
MAX_CHILD_INDEX = 0xFFFFFFFF
KEY_SIZE = 32

# Hardened child message, 37 bytes:
#   [0]      0x00 (private-key derivation marker)
#   [1:33]   parent secret key
#   [33:37]  child index, big-endian u32 (hardening offset included)
CHILD_MESSAGE = struct.Struct(">B32sL")


class SeedError(ValueError):
    """Raised for seeds that cannot produce a master key (empty seed)."""


class InvariantViolation(ValueError):
    """Raised when key material does not have the mandated length."""


@dataclass(frozen=True)
class ExtendedKey:
    """One node of the derivation tree: a 32-byte secret key and its chain code."""

    key: bytes
    chain_code: bytes

    def __post_init__(self):
        for name in ("key", "chain_code"):
            value = getattr(self, name)
            if not isinstance(value, bytes):
                raise InvariantViolation(f"{name} must be bytes, got {type(value).__name__}")
            if len(value) != KEY_SIZE:
                raise InvariantViolation(f"{name} must be {KEY_SIZE} bytes, got {len(value)}")

    def __repr__(self):
        # keep secrets out of tracebacks and logs
        return "ExtendedKey(key=<redacted>, chain_code=<redacted>)"

    def to_dict(self) -> Dict[str, str]:
        return {"key": self.key.hex(), "chain_code": self.chain_code.hex()}


def _split(digest: bytes) -> ExtendedKey:
    return ExtendedKey(digest[:KEY_SIZE], digest[KEY_SIZE:])


def derive_master(seed: bytes) -> ExtendedKey:
    """
    Derive the master node from a seed.

    Parameters
    ----------
    seed : bytes
        Opaque seed material, typically the 64-byte BIP39 seed. ``bytearray``
        and ``memoryview`` are accepted and copied.

    Raises
    ------
    SeedError
        If the seed is empty.
    TypeError
        If the seed is not bytes-like.
    """
    if isinstance(seed, (bytearray, memoryview)):
        seed = bytes(seed)
    if not isinstance(seed, bytes):
        raise TypeError(f"seed must be bytes, got {type(seed).__name__}")
    if not seed:
        raise SeedError("seed must not be empty")
    digest = hmac.new(ED25519_SEED_KEY, seed, hashlib.sha512).digest()
    return _split(digest)


def build_child_message(key: bytes, index: int) -> bytes:
    """Pack the 37-byte hardened child message laid out by ``CHILD_MESSAGE``."""
    if len(key) != KEY_SIZE:
        raise InvariantViolation(f"key must be {KEY_SIZE} bytes, got {len(key)}")
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= MAX_CHILD_INDEX:
        raise InvalidFormat(f"Child index {index!r} does not fit in 32 bits")
    return CHILD_MESSAGE.pack(0x00, key, index)


def derive_child(parent: ExtendedKey, index: int) -> ExtendedKey:
    """
    Derive the hardened child ``index`` of ``parent``.

    ``index`` is the full 32-bit child number, i.e. the hardening offset has
    already been added by the caller.
    """
    data = build_child_message(parent.key, index)
    digest = hmac.new(parent.chain_code, data, hashlib.sha512).digest()
    return _split(digest)


def _child_numbers(path: DerivationPath, hardened_offset: int) -> List[int]:
    if isinstance(hardened_offset, bool) or not isinstance(hardened_offset, int):
        raise ValueError(f"hardened_offset must be an int, got {hardened_offset!r}")
    if not 0 <= hardened_offset <= MAX_CHILD_INDEX:
        raise ValueError(f"hardened_offset {hardened_offset:#x} does not fit in 32 bits")
    numbers = []
    for value in path:
        number = value + hardened_offset
        if number > MAX_CHILD_INDEX:
            raise InvalidFormat(
                f"Index {value} overflows the child number with offset {hardened_offset:#x} in {path}"
            )
        numbers.append(number)
    return numbers


def derive_chain(path: Union[str, DerivationPath], seed: bytes,
                 hardened_offset: int = HARDENED_OFFSET) -> List[ExtendedKey]:
    """
    Derive every node along ``path``, master first, leaf last.

    The path is validated (and every child number range-checked) before any
    HMAC is computed, so an invalid path never yields partial results.
    """
    if not isinstance(path, DerivationPath):
        path = parse_path(path)
    numbers = _child_numbers(path, hardened_offset)

    node = derive_master(seed)
    chain = [node]
    for number in numbers:
        node = derive_child(node, number)
        chain.append(node)
    logger.debug("Derived %s (depth %d)", path, len(numbers))
    return chain


def derive(path: Union[str, DerivationPath], seed: bytes,
           hardened_offset: int = HARDENED_OFFSET) -> ExtendedKey:
    """
    Derive the extended key at ``path`` from ``seed``.

    Parameters
    ----------
    path : str or DerivationPath
        E.g. ``m/44'/501'/0'/0'``. Strings are parsed first.
    seed : bytes
        Master seed.
    hardened_offset : int, optional
        Added to each segment value to form the child number. Defaults to
        ``0x80000000``.

    Returns
    -------
    ExtendedKey
        The leaf node; the master node for an empty ``DerivationPath``.
    """
    return derive_chain(path, seed, hardened_offset)[-1]
