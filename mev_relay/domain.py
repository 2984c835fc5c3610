"""Monitoring domain: service status, block tracking, mempool and subgraph records."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Generic, Optional, TypeVar

from .primitives import H160, H256

_log = logging.getLogger(__name__)

_T = TypeVar("_T")

GENESIS_TIMESTAMP = 1_600_000_000
RECOVERY_WINDOW = 100

_MASK64 = (1 << 64) - 1


def _rotl(value: int, bits: int) -> int:
    return ((value << bits) | (value >> (64 - bits))) & _MASK64


def _sip_round(v0: int, v1: int, v2: int, v3: int) -> tuple[int, int, int, int]:
    v0 = (v0 + v1) & _MASK64
    v1 = _rotl(v1, 13) ^ v0
    v0 = _rotl(v0, 32)
    v2 = (v2 + v3) & _MASK64
    v3 = _rotl(v3, 16) ^ v2
    v0 = (v0 + v3) & _MASK64
    v3 = _rotl(v3, 21) ^ v0
    v2 = (v2 + v1) & _MASK64
    v1 = _rotl(v1, 17) ^ v2
    v2 = _rotl(v2, 32)
    return v0, v1, v2, v3


def _siphash13_u64(value: int) -> int:
    """SipHash-1-3 with zero keys over the little-endian bytes of a u64."""
    v0 = 0x736F6D6570736575
    v1 = 0x646F72616E646F6D
    v2 = 0x6C7967656E657261
    v3 = 0x7465646279746573
    for word in (value & _MASK64, 8 << 56):
        v3 ^= word
        v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)
        v0 ^= word
    v2 ^= 0xFF
    for _ in range(3):
        v0, v1, v2, v3 = _sip_round(v0, v1, v2, v3)
    return v0 ^ v1 ^ v2 ^ v3


def _whole_seconds(duration: timedelta) -> int:
    return max(int(duration.total_seconds()), 0)


class MonitoringService(ABC):
    """A source of chain monitoring that can be started and stopped."""

    @abstractmethod
    async def start(self) -> None:
        """Start monitoring."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop monitoring."""

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """Whether monitoring is running."""

    @property
    @abstractmethod
    def status(self) -> "ServiceStatus":
        """Current health of the service."""


class ServiceStatus(Enum):
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    UNHEALTHY = "Unhealthy"
    UNKNOWN = "Unknown"


@dataclass
class ServiceHealth:
    name: str
    status: ServiceStatus
    last_check: float
    response_time: timedelta
    error_message: Optional[str] = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class BlockInfo:
    number: int
    hash: str
    timestamp: int
    parent_hash: str = ""
    gas_limit: int = 0
    gas_used: int = 0
    miner: str = ""
    difficulty: int = 0
    total_difficulty: int = 0
    base_fee_per_gas: Optional[int] = None
    extra_data: str = ""


class MissedBlockReason(Enum):
    NETWORK_LATENCY = "NetworkLatency"
    NODE_UNRESPONSIVE = "NodeUnresponsive"
    RPC_ERROR = "RpcError"
    INVALID_BLOCK = "InvalidBlock"
    CHAIN_REORG = "ChainReorg"
    GAS_LIMIT_EXCEEDED = "GasLimitExceeded"
    NONCE_MISMATCH = "NonceMismatch"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    CONTRACT_REVERT = "ContractRevert"
    TIMEOUT = "Timeout"
    CONNECTION_LOST = "ConnectionLost"
    RATE_LIMIT_EXCEEDED = "RateLimitExceeded"
    UNKNOWN = "Unknown"


class MissedBlockSeverity(Enum):
    LOW = "Low"  # minor delays, no MEV impact
    MEDIUM = "Medium"  # moderate delays, some MEV impact
    HIGH = "High"  # significant delays, major MEV impact
    CRITICAL = "Critical"  # complete failure, severe MEV impact


@dataclass
class MissedBlock:
    block_number: int
    expected_timestamp: int
    actual_timestamp: Optional[int]
    missed_at: float
    reason: MissedBlockReason
    severity: MissedBlockSeverity
    metadata: dict[str, str] = field(default_factory=dict)
    recovery_attempts: int = 0
    recovered: bool = False


@dataclass
class MissedBlockStats:
    total_missed: int = 0
    total_recovered: int = 0
    total_unrecovered: int = 0
    average_recovery_time: timedelta = timedelta(0)
    longest_missed_streak: int = 0
    current_missed_streak: int = 0
    missed_by_reason: dict[MissedBlockReason, int] = field(default_factory=dict)
    missed_by_severity: dict[MissedBlockSeverity, int] = field(default_factory=dict)
    last_missed_block: Optional[int] = None
    last_recovered_block: Optional[int] = None

    def increment_missed(
        self, reason: MissedBlockReason, severity: MissedBlockSeverity
    ) -> None:
        self.total_missed += 1
        self.last_missed_block = int(time.time())
        self.missed_by_reason[reason] = self.missed_by_reason.get(reason, 0) + 1
        self.missed_by_severity[severity] = self.missed_by_severity.get(severity, 0) + 1
        self.current_missed_streak += 1
        self.longest_missed_streak = max(
            self.longest_missed_streak, self.current_missed_streak
        )

    def increment_recovered(self) -> None:
        self.total_recovered += 1
        self.last_recovered_block = int(time.time())
        self.current_missed_streak = 0

    def update_recovery_time(self, recovery_time: timedelta) -> None:
        """Fold a new recovery time into the running average (whole seconds)."""
        if self.total_recovered > 0:
            total = _whole_seconds(self.average_recovery_time) * (
                self.total_recovered - 1
            ) + _whole_seconds(recovery_time)
            self.average_recovery_time = timedelta(
                seconds=total // self.total_recovered
            )
        else:
            self.average_recovery_time = recovery_time

    def missed_rate(self) -> float:
        if self.total_missed == 0:
            return 0.0
        return self.total_missed / (self.total_missed + self.total_recovered) * 100.0

    def recovery_rate(self) -> float:
        if self.total_missed == 0:
            return 100.0
        return self.total_recovered / self.total_missed * 100.0


@dataclass
class BlockMonitoringConfig:
    expected_block_time: timedelta = timedelta(seconds=12)  # Ethereum mainnet
    max_block_delay: timedelta = timedelta(seconds=30)
    retry_attempts: int = 3
    retry_delay: timedelta = timedelta(seconds=5)
    alert_threshold: int = 5
    enable_recovery: bool = True
    log_missed_blocks: bool = True
    metrics_enabled: bool = True


class BlockMonitor:
    """Tracks processed blocks, records gaps and delays, and retries recovery."""

    def __init__(self, config: Optional[BlockMonitoringConfig] = None) -> None:
        self.config = config if config is not None else BlockMonitoringConfig()
        self.stats = MissedBlockStats()
        self.missed_blocks: dict[int, MissedBlock] = {}
        self.last_processed_block: Optional[int] = None
        self.monitoring_started = time.time()

    def process_block(self, block: BlockInfo) -> None:
        number = block.number
        if self.last_processed_block is not None:
            for missed in range(self.last_processed_block + 1, number):
                self.record_missed_block(
                    missed,
                    block.timestamp,
                    MissedBlockReason.UNKNOWN,
                    MissedBlockSeverity.MEDIUM,
                )

        deadline = self.expected_timestamp(number) + _whole_seconds(
            self.config.max_block_delay
        )
        if block.timestamp > deadline:
            self.record_missed_block(
                number,
                block.timestamp,
                MissedBlockReason.NETWORK_LATENCY,
                MissedBlockSeverity.LOW,
            )

        self.last_processed_block = number
        if self.config.enable_recovery:
            self.attempt_recovery(number)

    def record_missed_block(
        self,
        block_number: int,
        actual_timestamp: int,
        reason: MissedBlockReason,
        severity: MissedBlockSeverity,
    ) -> None:
        expected = self.expected_timestamp(block_number)
        self.missed_blocks[block_number] = MissedBlock(
            block_number=block_number,
            expected_timestamp=expected,
            actual_timestamp=actual_timestamp,
            missed_at=time.time(),
            reason=reason,
            severity=severity,
        )
        self.stats.increment_missed(reason, severity)
        if self.config.log_missed_blocks:
            _log.warning(
                "Missed block %d: reason=%s, severity=%s, expected=%d, actual=%d",
                block_number,
                reason.value,
                severity.value,
                expected,
                actual_timestamp,
            )

    def attempt_recovery(self, current_block: int) -> None:
        recovered = []
        for number, missed in self.missed_blocks.items():
            if missed.recovered or missed.recovery_attempts >= self.config.retry_attempts:
                continue
            if not self._can_recover(number, current_block):
                continue
            missed.recovery_attempts += 1
            if self._try_recover(number):
                missed.recovered = True
                recovered.append(number)
                recovery_time = timedelta(
                    seconds=max(time.time() - missed.missed_at, 0.0)
                )
                self.stats.increment_recovered()
                self.stats.update_recovery_time(recovery_time)
                _log.info(
                    "Recovered missed block %d after %d attempts in %s",
                    number,
                    missed.recovery_attempts,
                    recovery_time,
                )
        for number in recovered:
            del self.missed_blocks[number]

    @staticmethod
    def _can_recover(missed_block: int, current_block: int) -> bool:
        return max(current_block - missed_block, 0) <= RECOVERY_WINDOW

    @staticmethod
    def _try_recover(block_number: int) -> bool:
        # Simulated recovery: a deterministic 30% of block numbers succeed.
        return _siphash13_u64(block_number) % 10 < 3

    def expected_timestamp(self, block_number: int) -> int:
        return GENESIS_TIMESTAMP + block_number * _whole_seconds(
            self.config.expected_block_time
        )

    def uptime(self) -> timedelta:
        return timedelta(seconds=max(time.time() - self.monitoring_started, 0.0))

    def set_recovery_enabled(self, enabled: bool) -> None:
        self.config.enable_recovery = enabled

    def should_alert(self) -> bool:
        return self.stats.current_missed_streak >= self.config.alert_threshold

    def alert_message(self) -> Optional[str]:
        if not self.should_alert():
            return None
        return (
            f"Critical: {self.config.alert_threshold} consecutive blocks missed. "
            f"Current streak: {self.stats.current_missed_streak}. "
            f"Total missed: {self.stats.total_missed}"
        )


@dataclass
class BlockMetrics:
    blocks_processed: int
    blocks_missed: int
    blocks_recovered: int
    current_missed_streak: int
    average_block_time: timedelta
    uptime: timedelta
    last_block_timestamp: Optional[int]
    missed_block_rate: float
    recovery_rate: float

    @classmethod
    def from_monitor(cls, monitor: BlockMonitor) -> "BlockMetrics":
        stats = monitor.stats
        return cls(
            blocks_processed=monitor.last_processed_block or 0,
            blocks_missed=stats.total_missed,
            blocks_recovered=stats.total_recovered,
            current_missed_streak=stats.current_missed_streak,
            average_block_time=monitor.config.expected_block_time,
            uptime=monitor.uptime(),
            last_block_timestamp=monitor.last_processed_block,
            missed_block_rate=stats.missed_rate(),
            recovery_rate=stats.recovery_rate(),
        )


@dataclass
class TransactionInfo:
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


class MempoolPool:
    """Pending and queued transactions keyed by hash."""

    def __init__(self) -> None:
        self.pending: dict[H256, TransactionInfo] = {}
        self.queued: dict[H256, TransactionInfo] = {}

    def add_pending(self, tx: TransactionInfo) -> None:
        self.pending[tx.hash] = tx

    def add_queued(self, tx: TransactionInfo) -> None:
        self.queued[tx.hash] = tx

    def remove_pending(self, tx_hash: H256) -> None:
        self.pending.pop(tx_hash, None)

    def remove_queued(self, tx_hash: H256) -> None:
        self.queued.pop(tx_hash, None)

    def pending_count(self) -> int:
        return len(self.pending)

    def queued_count(self) -> int:
        return len(self.queued)

    def all_pending(self) -> list[TransactionInfo]:
        return list(self.pending.values())

    def all_queued(self) -> list[TransactionInfo]:
        return list(self.queued.values())


@dataclass
class FlashbotsBundle:
    hash: H256
    block_number: int
    transactions: list[TransactionInfo] = field(default_factory=list)
    miner_reward: int = 0
    coinbase_transaction: Optional[TransactionInfo] = None


@dataclass
class MonitoringConfig:
    enabled: bool = True
    poll_interval: int = 100  # milliseconds
    max_concurrent_requests: int = 50
    request_timeout: int = 10000  # milliseconds
    batch_size: int = 100


@dataclass
class MonitoringMetrics:
    total_blocks_processed: int = 0
    total_transactions_processed: int = 0
    total_swap_events_detected: int = 0
    last_block_number: Optional[int] = None
    last_block_timestamp: Optional[int] = None
    mempool_size: int = 0
    flashbots_bundles_processed: int = 0

    def increment_blocks_processed(self) -> None:
        self.total_blocks_processed += 1

    def increment_transactions_processed(self, count: int) -> None:
        self.total_transactions_processed += count

    def increment_swap_events(self, count: int) -> None:
        self.total_swap_events_detected += count

    def update_last_block(self, number: int, timestamp: int) -> None:
        self.last_block_number = number
        self.last_block_timestamp = timestamp

    def update_mempool_size(self, size: int) -> None:
        self.mempool_size = size

    def increment_flashbots_bundles(self) -> None:
        self.flashbots_bundles_processed += 1


@dataclass
class TokenMetadata:
    address: H160
    symbol: str
    name: str
    decimals: int
    total_supply: Optional[str] = None
    volume_24h: Optional[float] = None
    liquidity: Optional[float] = None
    price_usd: Optional[float] = None
    last_updated: int = 0


@dataclass
class PoolMetadata:
    address: H160
    token0: TokenMetadata
    token1: TokenMetadata
    fee_tier: int
    protocol: str
    liquidity: float
    volume_24h: float
    tvl_usd: float
    last_updated: int


@dataclass
class SubgraphLocation:
    line: int
    column: int


@dataclass
class SubgraphError:
    message: str
    locations: Optional[list[SubgraphLocation]] = None
    path: Optional[list[str]] = None


@dataclass
class SubgraphQueryResult(Generic[_T]):
    data: Optional[_T] = None
    errors: Optional[list[SubgraphError]] = None


@dataclass
class SubgraphCacheStats:
    tokens_cached: int = 0
    pools_cached: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    last_refresh: Optional[int] = None
    refresh_count: int = 0
    errors: int = 0