"""Buffered logging, alerting, reporting and export of missed blocks."""

from __future__ import annotations

import asyncio
import copy
import dataclasses
import json
import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from .domain import (
    BlockMetrics,
    BlockMonitor,
    MissedBlock,
    MissedBlockSeverity,
    MissedBlockStats,
)

_log = logging.getLogger(__name__)

CLEANUP_INTERVAL = timedelta(hours=1)
REPORT_BLOCK_LIMIT = 10

_SEVERITY_MARKS = {
    "Low": "🟡",
    "Medium": "🟠",
    "High": "🔴",
    "Critical": "🚨",
}
_ALERT_SEVERITIES = (MissedBlockSeverity.HIGH, MissedBlockSeverity.CRITICAL)


def _flag(value: bool) -> str:
    return "true" if value else "false"


class AlertKind(Enum):
    CONSOLE = "Console"
    FILE = "File"
    WEBHOOK = "Webhook"
    EMAIL = "Email"
    SLACK = "Slack"
    DISCORD = "Discord"


_TARGETED_KINDS = (AlertKind.WEBHOOK, AlertKind.EMAIL, AlertKind.SLACK, AlertKind.DISCORD)


@dataclass(frozen=True)
class AlertChannel:
    """Where alerts go; webhook-style channels carry a URL, e-mail an address."""

    kind: AlertKind
    target: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind in _TARGETED_KINDS and not self.target:
            raise ValueError(f"{self.kind.value} alert channel needs a target")

    @classmethod
    def console(cls) -> "AlertChannel":
        return cls(AlertKind.CONSOLE)

    @classmethod
    def file(cls) -> "AlertChannel":
        return cls(AlertKind.FILE)

    @classmethod
    def webhook(cls, url: str) -> "AlertChannel":
        return cls(AlertKind.WEBHOOK, url)

    @classmethod
    def email(cls, address: str) -> "AlertChannel":
        return cls(AlertKind.EMAIL, address)

    @classmethod
    def slack(cls, url: str) -> "AlertChannel":
        return cls(AlertKind.SLACK, url)

    @classmethod
    def discord(cls, url: str) -> "AlertChannel":
        return cls(AlertKind.DISCORD, url)


def _default_channels() -> list[AlertChannel]:
    return [AlertChannel.console()]


@dataclass
class MissedBlockLoggerConfig:
    log_file_path: str = "logs/missed_blocks.jsonl"
    log_rotation_size: int = 10 * 1024 * 1024  # bytes
    log_retention_days: int = 30
    enable_file_logging: bool = True
    enable_console_logging: bool = True
    enable_metrics: bool = True
    alert_channels: list[AlertChannel] = field(default_factory=_default_channels)
    batch_logging: bool = True
    batch_size: int = 100
    batch_timeout: timedelta = timedelta(seconds=60)


@dataclass
class MissedBlockLogEntry:
    timestamp: int
    block_number: int
    reason: str
    severity: str
    expected_timestamp: int
    actual_timestamp: Optional[int]
    recovery_attempts: int
    recovered: bool
    metadata: dict[str, str] = field(default_factory=dict)
    alert_sent: bool = False

    @classmethod
    def from_missed_block(cls, missed_block: MissedBlock) -> "MissedBlockLogEntry":
        return cls(
            timestamp=int(time.time()),
            block_number=missed_block.block_number,
            reason=missed_block.reason.value,
            severity=missed_block.severity.value,
            expected_timestamp=missed_block.expected_timestamp,
            actual_timestamp=missed_block.actual_timestamp,
            recovery_attempts=missed_block.recovery_attempts,
            recovered=missed_block.recovered,
            metadata=dict(missed_block.metadata),
        )

    def to_json(self) -> str:
        """One compact JSON line."""
        return json.dumps(dataclasses.asdict(self), separators=(",", ":"), ensure_ascii=False)


@dataclass
class LoggerStats:
    total_logged: int = 0
    total_alerts: int = 0
    total_errors: int = 0
    last_log_time: Optional[float] = None
    last_alert_time: Optional[float] = None
    log_file_size: int = 0
    rotation_count: int = 0


class ExportFormat(Enum):
    JSON = "json"
    CSV = "csv"


class MissedBlockLogger:
    """Collects missed blocks, writes them as JSON lines and raises alerts."""

    def __init__(self, config: MissedBlockLoggerConfig, monitor: BlockMonitor) -> None:
        self.config = config
        self.monitor = monitor
        self._buffer: list[MissedBlockLogEntry] = []
        self._lock = asyncio.Lock()
        self._stats = LoggerStats()
        if config.enable_file_logging:
            Path(config.log_file_path).parent.mkdir(parents=True, exist_ok=True)
            self.rotate_log_if_needed()

    @property
    def buffered(self) -> list[MissedBlockLogEntry]:
        """Entries waiting to be written."""
        return list(self._buffer)

    def rotate_log_if_needed(self) -> bool:
        """Rename the log file aside once it reaches the rotation size."""
        path = Path(self.config.log_file_path)
        if not path.exists() or path.stat().st_size < self.config.log_rotation_size:
            return False
        rotated = f"{self.config.log_file_path}.{int(time.time())}"
        path.rename(rotated)
        _log.info("Log file rotated to: %s", rotated)
        self._stats.rotation_count += 1
        return True

    async def start(self) -> None:
        """Run periodic flushing and cleanup until cancelled."""
        _log.info("Starting missed block logger service")
        tasks = [
            asyncio.create_task(self._flush_loop()),
            asyncio.create_task(self._cleanup_loop()),
        ]
        _log.info("Missed block logger service started")
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _flush_loop(self) -> None:
        interval = self.config.batch_timeout.total_seconds()
        while True:
            try:
                await self.flush()
            except OSError as exc:
                _log.error("Error processing buffered logs: %s", exc)
            await asyncio.sleep(interval)

    async def _cleanup_loop(self) -> None:
        interval = CLEANUP_INTERVAL.total_seconds()
        while True:
            try:
                await self.cleanup_old_logs()
            except OSError as exc:
                _log.error("Error cleaning up old logs: %s", exc)
            await asyncio.sleep(interval)

    async def process_missed_block(self, missed_block: MissedBlock) -> None:
        entry = MissedBlockLogEntry.from_missed_block(missed_block)
        async with self._lock:
            self._buffer.append(entry)
        self._stats.total_logged += 1
        self._stats.last_log_time = time.time()

        if self.config.enable_console_logging:
            self._log_to_console(entry)

        if missed_block.severity in _ALERT_SEVERITIES:
            self._send_alert(missed_block)

        async with self._lock:
            if len(self._buffer) >= self.config.batch_size:
                try:
                    self._write_buffer()
                except OSError as exc:
                    _log.error("Error flushing log buffer: %s", exc)

    @staticmethod
    def _log_to_console(entry: MissedBlockLogEntry) -> None:
        _log.warning(
            "%s Missed block %d: %s (severity: %s) - expected: %d, actual: %d",
            _SEVERITY_MARKS.get(entry.severity, "⚪"),
            entry.block_number,
            entry.reason,
            entry.severity,
            entry.expected_timestamp,
            entry.actual_timestamp or 0,
        )

    def _send_alert(self, missed_block: MissedBlock) -> None:
        for channel in self.config.alert_channels:
            # Only the console channel delivers; the others are accepted as configured.
            if channel.kind is AlertKind.CONSOLE:
                missed_at = datetime.fromtimestamp(missed_block.missed_at, tz=timezone.utc)
                _log.error(
                    "🚨 ALERT: Critical missed block %d detected!\n"
                    "Reason: %s\nSeverity: %s\nExpected: %d\nActual: %d\nTime: %s",
                    missed_block.block_number,
                    missed_block.reason.value,
                    missed_block.severity.value,
                    missed_block.expected_timestamp,
                    missed_block.actual_timestamp or 0,
                    missed_at.isoformat(),
                )
        self._stats.total_alerts += 1
        self._stats.last_alert_time = time.time()

    async def flush(self) -> int:
        """Write buffered entries to the log file; return how many were flushed."""
        async with self._lock:
            return self._write_buffer()

    def _write_buffer(self) -> int:
        if not self._buffer:
            return 0
        if self.config.enable_file_logging:
            with open(self.config.log_file_path, "a", encoding="utf-8") as handle:
                for entry in self._buffer:
                    handle.write(entry.to_json() + "\n")
        count = len(self._buffer)
        self._buffer.clear()
        return count

    async def cleanup_old_logs(self) -> list[Path]:
        """Delete .jsonl files in the log directory older than the retention period."""
        log_dir = Path(self.config.log_file_path).parent
        cutoff = time.time() - self.config.log_retention_days * 24 * 3600
        removed: list[Path] = []
        try:
            candidates = list(log_dir.iterdir())
        except OSError:
            return removed
        for path in candidates:
            if not path.is_file() or path.suffix != ".jsonl":
                continue
            try:
                modified = path.stat().st_mtime
            except OSError:
                continue
            if modified >= cutoff:
                continue
            try:
                path.unlink()
            except OSError as exc:
                _log.warning("Failed to remove old log file %s: %s", path, exc)
            else:
                _log.debug("Removed old log file: %s", path)
                removed.append(path)
        return removed

    async def get_stats(self) -> LoggerStats:
        return dataclasses.replace(self._stats)

    async def get_missed_block_stats(self) -> MissedBlockStats:
        return copy.deepcopy(self.monitor.stats)

    async def get_block_metrics(self) -> BlockMetrics:
        return BlockMetrics.from_monitor(self.monitor)

    async def generate_report(self) -> str:
        stats = self.monitor.stats
        logger_stats = await self.get_stats()
        generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        return (
            "=== Missed Block Report ===\n"
            f"Generated: {generated}\n"
            "\n"
            "Monitoring Statistics:\n"
            f"- Total blocks missed: {stats.total_missed}\n"
            f"- Total blocks recovered: {stats.total_recovered}\n"
            f"- Current missed streak: {stats.current_missed_streak}\n"
            f"- Longest missed streak: {stats.longest_missed_streak}\n"
            f"- Missed block rate: {stats.missed_rate():.2f}%\n"
            f"- Recovery rate: {stats.recovery_rate():.2f}%\n"
            "\n"
            "Logger Statistics:\n"
            f"- Total logged entries: {logger_stats.total_logged}\n"
            f"- Total alerts sent: {logger_stats.total_alerts}\n"
            f"- Total errors: {logger_stats.total_errors}\n"
            f"- Log file size: {logger_stats.log_file_size} bytes\n"
            f"- Rotation count: {logger_stats.rotation_count}\n"
            "\n"
            f"Recent Missed Blocks:\n{self._format_recent()}"
        )

    def _format_recent(self) -> str:
        blocks = sorted(
            self.monitor.missed_blocks.values(),
            key=lambda block: block.block_number,
            reverse=True,
        )
        if not blocks:
            return "No missed blocks in recent history."
        lines = [
            f"- Block {block.block_number}: {block.reason.value} ({block.severity.value})"
            f" - {block.recovery_attempts} attempts, recovered: {_flag(block.recovered)}\n"
            for block in blocks[:REPORT_BLOCK_LIMIT]
        ]
        if len(blocks) > REPORT_BLOCK_LIMIT:
            lines.append(f"... and {len(blocks) - REPORT_BLOCK_LIMIT} more missed blocks\n")
        return "".join(lines)

    async def export_data(self, export_format: ExportFormat) -> bytes:
        blocks = self.monitor.missed_blocks
        if export_format is ExportFormat.JSON:
            payload = {str(number): _block_to_dict(block) for number, block in blocks.items()}
            return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
        rows = [
            "block_number,reason,severity,expected_timestamp,actual_timestamp,"
            "recovery_attempts,recovered,missed_at\n"
        ]
        rows.extend(
            f"{block.block_number},{block.reason.value},{block.severity.value},"
            f"{block.expected_timestamp},{block.actual_timestamp or 0},"
            f"{block.recovery_attempts},{_flag(block.recovered)},"
            f"{max(int(block.missed_at), 0)}\n"
            for block in blocks.values()
        )
        return "".join(rows).encode("utf-8")


def _block_to_dict(block: MissedBlock) -> dict:
    secs = max(int(block.missed_at), 0)
    nanos = max(int(round((block.missed_at - secs) * 1_000_000_000)), 0)
    return {
        "block_number": block.block_number,
        "expected_timestamp": block.expected_timestamp,
        "actual_timestamp": block.actual_timestamp,
        "missed_at": {"secs_since_epoch": secs, "nanos_since_epoch": nanos},
        "reason": block.reason.value,
        "severity": block.severity.value,
        "metadata": dict(block.metadata),
        "recovery_attempts": block.recovery_attempts,
        "recovered": block.recovered,
    }