"""Pool and token filtering settings."""

from __future__ import annotations

from dataclasses import dataclass, field


def _default_pools() -> list[str]:
    return [
        "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",  # Uniswap V2 Router
        "0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F",  # SushiSwap Router
    ]


def _default_tokens() -> list[str]:
    return [
        "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",  # WETH
        "0xA0b86a33E6441b8B4b0C3d2C2C0C3d2C2C0C3d2C",  # USDC
    ]


def _default_excluded() -> list[str]:
    return ["0x0000000000000000000000000000000000000000"]


def _default_protocols() -> list[str]:
    return ["Uniswap V2", "SushiSwap"]


@dataclass
class FilteringConfig:
    """Which pools, tokens and protocols are of interest."""

    enabled: bool = True
    pool_addresses: list[str] = field(default_factory=_default_pools)
    token_addresses: list[str] = field(default_factory=_default_tokens)
    min_liquidity_eth: float = 100.0
    min_volume_24h_eth: float = 1000.0
    exclude_contracts: list[str] = field(default_factory=_default_excluded)
    include_protocols: list[str] = field(default_factory=_default_protocols)