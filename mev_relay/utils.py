"""Helpers for hex, addresses, hashes, time, unit maths and validation."""

from __future__ import annotations

import binascii
import math
import time as _time
from datetime import datetime, timezone

from Crypto.Hash import keccak

from .primitives import H160, H256

_WEI_PER_ETH = 1_000_000_000_000_000_000.0
_WEI_PER_GWEI = 1_000_000_000.0
_U128_MAX = (1 << 128) - 1
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def _strip_prefix(text: str) -> str:
    return text[2:] if text.startswith("0x") else text


# --- hex ---------------------------------------------------------------------


def hex_encode(data: bytes) -> str:
    """Encode bytes as 0x-prefixed lower-case hex."""
    return "0x" + bytes(data).hex()


def hex_decode(text: str) -> bytes:
    """Decode hex text, with or without 0x."""
    try:
        return binascii.unhexlify(_strip_prefix(text))
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid hex string: {exc}") from exc


def decode_to_fixed(text: str, size: int) -> bytes:
    """Decode hex text that must hold exactly ``size`` bytes."""
    data = hex_decode(text)
    if len(data) != size:
        raise ValueError(f"Expected {size} bytes, got {len(data)}")
    return data


# --- addresses ---------------------------------------------------------------


def _apply_checksum(body: str) -> str:
    digest = _keccak256(body.lower().encode("ascii"))
    chars = []
    for i, ch in enumerate(body):
        byte = digest[i // 2]
        nibble = byte >> 4 if i % 2 == 0 else byte & 0x0F
        chars.append(ch.upper() if nibble >= 8 else ch.lower())
    return "0x" + "".join(chars)


def is_valid_checksum(address: str) -> bool:
    """Check an address against its EIP-55 mixed-case checksum."""
    if not address.startswith("0x") or len(address) != 42:
        return False
    try:
        hex_decode(address[2:])
    except ValueError:
        return False
    return _apply_checksum(address[2:]) == address


def normalize_address(address: str) -> H160:
    body = _strip_prefix(address)
    if len(body) != 40:
        raise ValueError(f"Invalid address length: {len(body)}")
    return H160(hex_decode(body))


def format_address(address: H160) -> str:
    return "0x" + address.raw.hex()


def format_address_checksum(address: H160) -> str:
    """Format an address with its EIP-55 checksum casing."""
    return _apply_checksum(address.raw.hex())


# --- hashes ------------------------------------------------------------------


def format_hash(value: H256) -> str:
    return "0x" + value.raw.hex()


def normalize_hash(value: str) -> H256:
    body = _strip_prefix(value)
    if len(body) != 64:
        raise ValueError(f"Invalid hash length: {len(body)}")
    return H256(hex_decode(body))


# --- time --------------------------------------------------------------------


def now() -> int:
    """Seconds since the Unix epoch."""
    return int(_time.time())


def now_millis() -> int:
    """Milliseconds since the Unix epoch."""
    return _time.time_ns() // 1_000_000


def from_timestamp(timestamp: int) -> datetime:
    """UTC datetime for a Unix timestamp; out-of-range values give the epoch."""
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return _EPOCH


def format_duration(seconds: int) -> str:
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_timestamp(timestamp: int) -> str:
    return from_timestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S UTC")


# --- unit maths --------------------------------------------------------------


def _to_u128(value: float) -> int:
    if math.isnan(value) or value <= 0:
        return 0
    if math.isinf(value):
        return _U128_MAX
    return min(int(value), _U128_MAX)


def wei_to_eth(wei: int) -> float:
    return wei / _WEI_PER_ETH


def eth_to_wei(eth: float) -> int:
    return _to_u128(eth * _WEI_PER_ETH)


def wei_to_gwei(wei: int) -> float:
    return wei / _WEI_PER_GWEI


def gwei_to_wei(gwei: float) -> int:
    return _to_u128(gwei * _WEI_PER_GWEI)


def calculate_gas_cost(gas_used: int, gas_price: int) -> int:
    return gas_used * gas_price


def calculate_priority_fee(base_fee: int, max_priority_fee: int, max_fee: int) -> int:
    priority_fee = min(max_priority_fee, max(max_fee - base_fee, 0))
    return min(priority_fee, max_fee)


# --- validation --------------------------------------------------------------


def validate_ethereum_address(address: str) -> None:
    """Raise ValueError unless ``address`` is 0x plus 40 hex digits."""
    if not address.startswith("0x"):
        raise ValueError("Address must start with 0x")
    if len(address) != 42:
        raise ValueError("Address must be 42 characters long")
    try:
        hex_decode(address[2:])
    except ValueError:
        raise ValueError("Invalid hex characters in address") from None


def validate_transaction_hash(value: str) -> None:
    """Raise ValueError unless ``value`` is 0x plus 64 hex digits."""
    if not value.startswith("0x"):
        raise ValueError("Hash must start with 0x")
    if len(value) != 66:
        raise ValueError("Hash must be 66 characters long")
    try:
        hex_decode(value[2:])
    except ValueError:
        raise ValueError("Invalid hex characters in hash") from None


def validate_block_number(block_number: int) -> None:
    if block_number == 0:
        raise ValueError("Block number cannot be 0")


def validate_gas_price(gas_price: int) -> None:
    if gas_price == 0:
        raise ValueError("Gas price cannot be 0")