"""Fixed-size Ethereum values and basic chain records."""

from __future__ import annotations

import binascii
from dataclasses import dataclass
from typing import ClassVar, Optional


def _parse_hex(text: str, size: int) -> bytes:
    """Decode hex text of exactly ``size`` bytes; malformed input gives zeros."""
    body = text[2:] if text.startswith("0x") else text
    try:
        raw = binascii.unhexlify(body)
    except (binascii.Error, ValueError):
        return bytes(size)
    if len(raw) != size:
        return bytes(size)
    return raw


@dataclass(frozen=True)
class _FixedBytes:
    raw: bytes
    size: ClassVar[int] = 0

    def __post_init__(self) -> None:
        raw = bytes(self.raw)
        if len(raw) != self.size:
            raise ValueError(
                f"{type(self).__name__} needs {self.size} bytes, got {len(raw)}"
            )
        object.__setattr__(self, "raw", raw)

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return "0x" + self.raw.hex()


@dataclass(frozen=True)
class H160(_FixedBytes):
    """A 20-byte address."""

    size: ClassVar[int] = 20

    @classmethod
    def from_hex(cls, text: str) -> "H160":
        """Parse hex text, with or without 0x; malformed input gives all zeros."""
        return cls(_parse_hex(text, cls.size))


@dataclass(frozen=True)
class H256(_FixedBytes):
    """A 32-byte hash."""

    size: ClassVar[int] = 32

    @classmethod
    def from_hex(cls, text: str) -> "H256":
        """Parse hex text, with or without 0x; malformed input gives all zeros."""
        return cls(_parse_hex(text, cls.size))


@dataclass(frozen=True)
class BlockIdentifier:
    number: int
    hash: H256
    timestamp: int


@dataclass
class Transaction:
    hash: H256
    sender: H160
    to: Optional[H160]
    value: int
    gas_price: int
    gas_limit: int
    nonce: int
    data: bytes = b""
    block_number: Optional[int] = None
    block_hash: Optional[H256] = None
    transaction_index: Optional[int] = None


@dataclass(frozen=True)
class PoolInfo:
    address: H160
    token0: H160
    token1: H160
    fee_tier: int
    protocol: str