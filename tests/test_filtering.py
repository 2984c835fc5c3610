from dataclasses import asdict

from mev_relay.filtering import FilteringConfig


def test_defaults():
    config = FilteringConfig()
    assert config.enabled
    assert config.pool_addresses
    assert config.token_addresses
    assert config.min_liquidity_eth == 100.0
    assert config.min_volume_24h_eth == 1000.0


def test_default_contents():
    config = FilteringConfig()
    assert "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D" in config.pool_addresses
    assert "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2" in config.token_addresses
    assert config.exclude_contracts == ["0x0000000000000000000000000000000000000000"]
    assert "Uniswap V2" in config.include_protocols


def test_custom_configuration():
    config = FilteringConfig()
    config.pool_addresses = ["0x1234567890123456789012345678901234567890"]
    config.min_liquidity_eth = 500.0
    assert len(config.pool_addresses) == 1
    assert config.min_liquidity_eth == 500.0


def test_instances_do_not_share_lists():
    first = FilteringConfig()
    second = FilteringConfig()
    first.include_protocols.append("Curve")
    assert "Curve" not in second.include_protocols
    assert len(second.include_protocols) == len(first.include_protocols) - 1


def test_dict_round_trip():
    config = FilteringConfig(enabled=False, min_volume_24h_eth=5.0)
    assert FilteringConfig(**asdict(config)) == config