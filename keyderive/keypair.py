# ed25519 keypair expansion
"""
Turn a derived 32-byte secret key into an ed25519 keypair.

The derived ``key`` is handed verbatim to PyNaCl as the signing-key seed.
Solana (and Phantom) store the secret key as 64 bytes, ``seed || public``,
and display both keys in Base58.
"""

from dataclasses import dataclass
from typing import Dict

import base58
from nacl.encoding import RawEncoder
from nacl.signing import SigningKey

from .slip10 import KEY_SIZE, InvariantViolation

SECRET_KEY_SIZE = 64


@dataclass(frozen=True)
class Keypair:
    public_key: bytes
    private_key: bytes

    def __post_init__(self):
        if len(self.public_key) != KEY_SIZE:
            raise InvariantViolation(f"public_key must be {KEY_SIZE} bytes, got {len(self.public_key)}")
        if len(self.private_key) != SECRET_KEY_SIZE:
            raise InvariantViolation(f"private_key must be {SECRET_KEY_SIZE} bytes, got {len(self.private_key)}")

    def __repr__(self):
        return f"Keypair(address={self.address!r})"

    @property
    def seed(self) -> bytes:
        return self.private_key[:KEY_SIZE]

    @property
    def address(self) -> str:
        return base58.b58encode(self.public_key).decode()

    @property
    def secret_key_b58(self) -> str:
        # Phantom imports the full 64-byte secret key in Base58
        return base58.b58encode(self.private_key).decode()

    def signing_key(self) -> SigningKey:
        return SigningKey(self.seed)

    def to_dict(self, include_secret: bool = False) -> Dict[str, str]:
        out = {
            "public_key_bytes": self.public_key.hex(),
            "public_key_b58": self.address,
        }
        if include_secret:
            out["private_key_bytes"] = self.seed.hex()
            out["secret_key_b58"] = self.secret_key_b58
        return out


def expand(private_scalar: bytes) -> Keypair:
    """
    Expand a 32-byte secret key into an ed25519 :class:`Keypair`.

    Raises
    ------
    InvariantViolation
        If ``private_scalar`` is not exactly 32 bytes.
    """
    if not isinstance(private_scalar, (bytes, bytearray)) or len(private_scalar) != KEY_SIZE:
        size = len(private_scalar) if isinstance(private_scalar, (bytes, bytearray)) else type(private_scalar).__name__
        raise InvariantViolation(f"private scalar must be {KEY_SIZE} bytes, got {size}")
    sk = SigningKey(bytes(private_scalar))
    private_key_bytes = sk.encode(encoder=RawEncoder)
    public_key_bytes = sk.verify_key.encode(encoder=RawEncoder)
    return Keypair(public_key=public_key_bytes, private_key=private_key_bytes + public_key_bytes)
