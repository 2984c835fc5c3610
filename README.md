# mev_relay

A library of building blocks for watching an Ethereum-style chain from an MEV relay.
The modules are:

- `mev_relay.primitives` holds the fixed-size `H160` addresses and `H256` hashes. Both are
  built from raw bytes or with `from_hex`. Malformed hex gives all zeros. The module also
  holds the `BlockIdentifier`, `Transaction` and `PoolInfo` records.
- `mev_relay.utils` holds plain functions:
  - hex encoding and decoding: `hex_encode`, `hex_decode`, `decode_to_fixed`
  - addresses: `normalize_address`, `format_address`, `format_address_checksum` and
    `is_valid_checksum`, which use the EIP-55 Keccak-256 casing
  - hashes: `normalize_hash`, `format_hash`
  - time: `now`, `now_millis`, `from_timestamp`, `format_timestamp`, `format_duration`
  - units: `wei_to_eth`, `eth_to_wei`, `wei_to_gwei`, `gwei_to_wei`
  - gas: `calculate_gas_cost`, `calculate_priority_fee`
  - checks that raise `ValueError`: `validate_ethereum_address`, `validate_transaction_hash`,
    `validate_block_number`, `validate_gas_price`
- `mev_relay.domain` holds the monitoring model:
  - `BlockMonitor` finds skipped and late blocks. It records them as `MissedBlock`s,
    retries recovery and keeps `MissedBlockStats`.
  - `BlockMetrics.from_monitor` takes a snapshot of a monitor.
  - It also has the `MempoolPool`, `MonitoringMetrics` and `MonitoringConfig` classes,
    the `ServiceStatus` enum and the abstract `MonitoringService`.
  - Records for Flashbots bundles and subgraph tokens, pools and queries.
- `mev_relay.missed_block_logger` holds `MissedBlockLogger`. It buffers missed-block entries and
  writes them to a JSON Lines file. The file is rotated by size, and old `.jsonl` files
  are removed after the retention period. The logger raises alerts for high and critical
  misses, builds text reports and exports missed blocks as JSON or CSV.
- `mev_relay.filtering` holds `FilteringConfig`, the default pool, token and protocol filter settings.
- `mev_relay.constants` holds chain IDs, gas limits, DEX router and factory addresses and default intervals.
- `mev_relay.errors` holds `MevRelayError` and its subclasses, such as `ConfigError` and `RpcError`.

## Installation

```
pip install .
```

To install with the test dependencies:

```
pip install ".[test]"
```

## Usage

### Tracking missed blocks

```python
from mev_relay.domain import BlockInfo, BlockMonitor, BlockMonitoringConfig

monitor = BlockMonitor(BlockMonitoringConfig())
monitor.process_block(BlockInfo(number=100, hash="0x" + "00" * 32, timestamp=1600001200))
monitor.process_block(BlockInfo(number=105, hash="0x" + "11" * 32, timestamp=1600001260))

print(monitor.stats.total_missed)   # 4: blocks 101..104 were skipped
print(monitor.stats.missed_rate(), monitor.stats.recovery_rate())
if monitor.should_alert():
    print(monitor.alert_message())
```

A block counts as late when its timestamp is later than the expected time plus
`max_block_delay`. The expected time is `1600000000 + number * expected_block_time`.
Recovery is attempted only for blocks within 100 of the current block, and at most
`retry_attempts` times per block. It is a deterministic simulation: no node is queried.

### Logging, reporting and export

```python
import asyncio
from mev_relay.domain import BlockInfo, BlockMonitor, BlockMonitoringConfig
from mev_relay.missed_block_logger import (
    AlertChannel, ExportFormat, MissedBlockLogger, MissedBlockLoggerConfig,
)

async def main():
    monitor = BlockMonitor(BlockMonitoringConfig(enable_recovery=False))
    monitor.process_block(BlockInfo(number=1, hash="0x" + "00" * 32, timestamp=1600000012))
    monitor.process_block(BlockInfo(number=4, hash="0x" + "11" * 32, timestamp=1600000048))

    logger = MissedBlockLogger(
        MissedBlockLoggerConfig(
            log_file_path="logs/missed_blocks.jsonl",
            alert_channels=[AlertChannel.console()],
        ),
        monitor,
    )
    for missed in monitor.missed_blocks.values():
        await logger.process_missed_block(missed)
    await logger.flush()                 # appends JSON lines to the log file

    print(await logger.generate_report())
    csv_bytes = await logger.export_data(ExportFormat.CSV)
    json_bytes = await logger.export_data(ExportFormat.JSON)

asyncio.run(main())
```

`MissedBlockLogger.start()` runs two loops until it is cancelled. One flushes the buffer
every `batch_timeout`. The other removes old log files every hour. The buffer is also
flushed as soon as it holds `batch_size` entries.

### Utilities

```python
from mev_relay.primitives import H160
from mev_relay.utils import format_address_checksum, format_duration, wei_to_eth

addr = H160.from_hex("0x742d35Cc6634C0532925a3b8D4C9db96C4b4d8b6")
print(str(addr))                       # lower-case 0x-prefixed hex
print(format_address_checksum(addr))   # EIP-55 mixed-case form
print(wei_to_eth(10**18))              # 1.0
print(format_duration(3725))           # "1h 2m 5s"
```

## What this package does not do

- It does not connect to Ethereum nodes.
- It does not poll a mempool or the Flashbots relay.
- It does not detect swaps.
- It does not publish events to a message broker.
- It has no command-line program and no metrics server.

`BlockMonitor` only works on the `BlockInfo` values you pass to it. Alert channels of
kind webhook, e-mail, Slack, Discord and file are accepted in the configuration, but
only the console channel delivers an alert. It does so through the standard
`logging` module.

## Running the tests

```
pytest
```