import asyncio
import json
import os
import time
from datetime import timedelta
from pathlib import Path

import pytest

from mev_relay.domain import (
    BlockMonitor,
    BlockMonitoringConfig,
    MissedBlockReason,
    MissedBlockSeverity,
)
from mev_relay.missed_block_logger import (
    AlertChannel,
    AlertKind,
    ExportFormat,
    LoggerStats,
    MissedBlockLogEntry,
    MissedBlockLogger,
    MissedBlockLoggerConfig,
)


def _config(tmp_path, **overrides):
    return MissedBlockLoggerConfig(
        log_file_path=str(tmp_path / "logs" / "missed.jsonl"), **overrides
    )


def _monitor_with(numbers, severity=MissedBlockSeverity.MEDIUM):
    monitor = BlockMonitor(BlockMonitoringConfig(log_missed_blocks=False))
    for number in numbers:
        monitor.record_missed_block(number, 1_600_000_500, MissedBlockReason.TIMEOUT, severity)
    return monitor


def test_logger_creation_makes_log_directory(tmp_path):
    logger = MissedBlockLogger(_config(tmp_path), BlockMonitor())
    assert (tmp_path / "logs").is_dir()
    assert logger.buffered == []


def test_creation_with_default_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    logger = MissedBlockLogger(MissedBlockLoggerConfig(), BlockMonitor())
    assert logger.config.log_file_path == "logs/missed_blocks.jsonl"
    assert logger.buffered == []
    assert (tmp_path / "logs").is_dir()


def test_config_defaults():
    config = MissedBlockLoggerConfig()
    assert config.log_retention_days == 30
    assert config.batch_size == 100
    assert config.enable_file_logging
    assert config.enable_console_logging
    assert config.log_rotation_size == 10 * 1024 * 1024
    assert config.batch_timeout == timedelta(seconds=60)
    assert config.alert_channels == [AlertChannel.console()]


def test_logger_stats_fields():
    stats = LoggerStats(total_logged=10, total_alerts=5, total_errors=1)
    assert (stats.total_logged, stats.total_alerts, stats.total_errors) == (10, 5, 1)
    assert stats.rotation_count == 0


def test_alert_channels():
    channels = [
        AlertChannel.console(),
        AlertChannel.file(),
        AlertChannel.webhook("https://example.com/webhook"),
        AlertChannel.email("admin@example.com"),
    ]
    assert len(channels) == 4
    assert [c.kind for c in channels] == [
        AlertKind.CONSOLE,
        AlertKind.FILE,
        AlertKind.WEBHOOK,
        AlertKind.EMAIL,
    ]
    assert channels[3].target == "admin@example.com"


def test_targeted_channel_needs_target():
    with pytest.raises(ValueError):
        AlertChannel(AlertKind.SLACK)


def test_log_entry_from_missed_block_and_json():
    monitor = _monitor_with([7])
    entry = MissedBlockLogEntry.from_missed_block(monitor.missed_blocks[7])
    assert entry.reason == "Timeout"
    assert entry.severity == "Medium"
    data = json.loads(entry.to_json())
    assert data["block_number"] == 7
    assert data["expected_timestamp"] == 1_600_000_000 + 7 * 12
    assert data["actual_timestamp"] == 1_600_000_500
    assert data["alert_sent"] is False
    assert list(data) == [
        "timestamp",
        "block_number",
        "reason",
        "severity",
        "expected_timestamp",
        "actual_timestamp",
        "recovery_attempts",
        "recovered",
        "metadata",
        "alert_sent",
    ]


@pytest.mark.asyncio
async def test_process_buffers_until_flush(tmp_path):
    monitor = _monitor_with([1, 2])
    logger = MissedBlockLogger(_config(tmp_path), monitor)
    await logger.process_missed_block(monitor.missed_blocks[1])
    await logger.process_missed_block(monitor.missed_blocks[2])
    assert len(logger.buffered) == 2
    assert not Path(logger.config.log_file_path).exists()

    assert await logger.flush() == 2
    lines = Path(logger.config.log_file_path).read_text().splitlines()
    assert [json.loads(line)["block_number"] for line in lines] == [1, 2]
    assert logger.buffered == []
    assert (await logger.get_stats()).total_logged == 2


@pytest.mark.asyncio
async def test_full_buffer_is_written(tmp_path):
    monitor = _monitor_with([1, 2, 3])
    logger = MissedBlockLogger(_config(tmp_path, batch_size=2), monitor)
    for number in (1, 2, 3):
        await logger.process_missed_block(monitor.missed_blocks[number])
    lines = Path(logger.config.log_file_path).read_text().splitlines()
    assert len(lines) == 2
    assert len(logger.buffered) == 1


@pytest.mark.asyncio
async def test_flush_without_file_logging_writes_nothing(tmp_path):
    monitor = _monitor_with([4])
    logger = MissedBlockLogger(_config(tmp_path, enable_file_logging=False), monitor)
    await logger.process_missed_block(monitor.missed_blocks[4])
    assert await logger.flush() == 1
    assert not Path(logger.config.log_file_path).exists()


@pytest.mark.asyncio
async def test_alerts_only_for_high_severity(tmp_path):
    monitor = _monitor_with([1])
    monitor.record_missed_block(
        2, 1, MissedBlockReason.RPC_ERROR, MissedBlockSeverity.CRITICAL
    )
    monitor.record_missed_block(3, 1, MissedBlockReason.RPC_ERROR, MissedBlockSeverity.HIGH)
    logger = MissedBlockLogger(_config(tmp_path), monitor)
    for number in (1, 2, 3):
        await logger.process_missed_block(monitor.missed_blocks[number])
    stats = await logger.get_stats()
    assert stats.total_alerts == 2
    assert stats.last_alert_time is not None and stats.last_alert_time > 0


def test_rotation_on_creation(tmp_path):
    config = _config(tmp_path, log_rotation_size=10)
    path = Path(config.log_file_path)
    path.parent.mkdir(parents=True)
    path.write_text("x" * 20)
    logger = MissedBlockLogger(config, BlockMonitor())
    assert not path.exists()
    rotated = [p for p in path.parent.iterdir() if p.name.startswith("missed.jsonl.")]
    assert len(rotated) == 1
    assert rotated[0].read_text() == "x" * 20
    assert logger.rotate_log_if_needed() is False


@pytest.mark.asyncio
async def test_rotation_counted_in_stats(tmp_path):
    config = _config(tmp_path, log_rotation_size=5)
    logger = MissedBlockLogger(config, BlockMonitor())
    Path(config.log_file_path).write_text("123456")
    assert logger.rotate_log_if_needed() is True
    assert (await logger.get_stats()).rotation_count == 1


@pytest.mark.asyncio
async def test_cleanup_removes_only_old_jsonl(tmp_path):
    logger = MissedBlockLogger(_config(tmp_path, log_retention_days=1), BlockMonitor())
    log_dir = tmp_path / "logs"
    old = log_dir / "old.jsonl"
    recent = log_dir / "recent.jsonl"
    other = log_dir / "old.txt"
    for path in (old, recent, other):
        path.write_text("{}\n")
    past = time.time() - 3 * 24 * 3600
    os.utime(old, (past, past))
    os.utime(other, (past, past))

    removed = await logger.cleanup_old_logs()
    assert removed == [old]
    assert not old.exists()
    assert recent.exists()
    assert other.exists()


@pytest.mark.asyncio
async def test_report_lists_recent_blocks(tmp_path):
    monitor = _monitor_with(range(1, 13))
    logger = MissedBlockLogger(_config(tmp_path), monitor)
    report = await logger.generate_report()
    assert report.startswith("=== Missed Block Report ===\nGenerated: ")
    assert "- Total blocks missed: 12\n" in report
    assert "- Missed block rate: 100.00%\n" in report
    assert "- Recovery rate: 0.00%\n" in report
    assert "- Block 12: Timeout (Medium) - 0 attempts, recovered: false\n" in report
    assert "- Block 2:" not in report
    assert report.endswith("... and 2 more missed blocks\n")


@pytest.mark.asyncio
async def test_report_without_missed_blocks(tmp_path):
    logger = MissedBlockLogger(_config(tmp_path), BlockMonitor())
    report = await logger.generate_report()
    assert report.endswith("Recent Missed Blocks:\nNo missed blocks in recent history.")
    assert "- Recovery rate: 100.00%\n" in report


@pytest.mark.asyncio
async def test_export_csv(tmp_path):
    monitor = _monitor_with([5])
    logger = MissedBlockLogger(_config(tmp_path), monitor)
    lines = (await logger.export_data(ExportFormat.CSV)).decode().splitlines()
    assert lines[0] == (
        "block_number,reason,severity,expected_timestamp,actual_timestamp,"
        "recovery_attempts,recovered,missed_at"
    )
    fields = lines[1].split(",")
    assert fields[:7] == ["5", "Timeout", "Medium", str(1_600_000_060), "1600000500", "0", "false"]
    assert int(fields[7]) == int(monitor.missed_blocks[5].missed_at)


@pytest.mark.asyncio
async def test_export_json(tmp_path):
    monitor = _monitor_with([5, 9])
    logger = MissedBlockLogger(_config(tmp_path), monitor)
    data = json.loads(await logger.export_data(ExportFormat.JSON))
    assert set(data) == {"5", "9"}
    assert data["9"]["reason"] == "Timeout"
    assert data["9"]["severity"] == "Medium"
    assert data["9"]["recovered"] is False
    assert data["5"]["missed_at"]["secs_since_epoch"] == int(monitor.missed_blocks[5].missed_at)


@pytest.mark.asyncio
async def test_stats_and_metrics_come_from_monitor(tmp_path):
    monitor = _monitor_with([3, 4])
    monitor.last_processed_block = 10
    logger = MissedBlockLogger(_config(tmp_path), monitor)
    stats = await logger.get_missed_block_stats()
    assert stats.total_missed == 2
    stats.total_missed = 99
    assert monitor.stats.total_missed == 2
    metrics = await logger.get_block_metrics()
    assert metrics.blocks_missed == 2
    assert metrics.blocks_processed == 10


@pytest.mark.asyncio
async def test_start_flushes_periodically(tmp_path):
    monitor = _monitor_with([8])
    config = _config(tmp_path, batch_timeout=timedelta(seconds=0.02))
    logger = MissedBlockLogger(config, monitor)
    await logger.process_missed_block(monitor.missed_blocks[8])
    task = asyncio.create_task(logger.start())
    await asyncio.sleep(0.2)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    lines = Path(config.log_file_path).read_text().splitlines()
    assert [json.loads(line)["block_number"] for line in lines] == [8]