# Derivation path parsing
"""
Derivation path parsing for hardened-only ed25519 wallets.

SLIP-0010 only defines hardened derivation for ed25519, so every segment of
a path must carry the trailing apostrophe: ``m/44'/501'/0'/0'``. The parser
returns a :class:`DerivationPath` holding the raw segment values (without
the hardening offset); the derivation engine adds the offset itself.
"""

import re
from dataclasses import dataclass
from typing import Iterator, Tuple

# Segment values are stored without the hardening bit, so they must stay
# below it to leave room for the offset.
INDEX_LIMIT = 0x80000000

_PATH_RE = re.compile(r"m(/[0-9]+')+")
_SEGMENT_RE = re.compile(r"/([0-9]+)'")


class PathError(ValueError):
    """Base class for derivation path failures."""


class InvalidFormat(PathError):
    """
    Raised when a path does not match ``m(/<digits>')+``, when a segment is
    not a usable non-negative integer, or when an index would overflow the
    32-bit child number once hardened.
    """


@dataclass(frozen=True)
class DerivationPath:
    """Validated, ordered sequence of hardened segment values (root to leaf)."""

    indices: Tuple[int, ...]

    def __post_init__(self):
        indices = tuple(self.indices)
        for value in indices:
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidFormat(f"Path index must be an int, got {value!r}")
            if value < 0 or value >= INDEX_LIMIT:
                raise InvalidFormat(f"Path index {value} is outside [0, {INDEX_LIMIT:#x})")
        object.__setattr__(self, "indices", indices)

    @classmethod
    def parse(cls, path: str) -> "DerivationPath":
        return parse_path(path)

    def __iter__(self) -> Iterator[int]:
        return iter(self.indices)

    def __len__(self) -> int:
        return len(self.indices)

    def __str__(self) -> str:
        return "m" + "".join(f"/{i}'" for i in self.indices)


def parse_path(path: str) -> DerivationPath:
    """
    Parse a derivation path string.

    Parameters
    ----------
    path : str
        Path such as ``m/44'/501'/0'/0'``. Whitespace, empty segments and
        non-hardened segments are all rejected.

    Returns
    -------
    DerivationPath
        The segment values in derivation order.

    Raises
    ------
    InvalidFormat
        If the string does not match the grammar or a segment value is at
        or above ``0x80000000``.
    """
    if not isinstance(path, str):
        raise InvalidFormat(f"Derivation path must be a string, got {type(path).__name__}")
    # fullmatch, not match: a trailing newline must not slip through via "$"
    if not _PATH_RE.fullmatch(path):
        raise InvalidFormat(f"Invalid derivation path: {path!r}")

    indices = []
    for segment in _SEGMENT_RE.findall(path):
        # the grammar guarantees digits only; int() cannot fail here
        value = int(segment, 10)
        if value >= INDEX_LIMIT:
            raise InvalidFormat(f"Path index {value} in {path!r} must be below {INDEX_LIMIT:#x}")
        indices.append(value)
    return DerivationPath(tuple(indices))
