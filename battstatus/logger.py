"""
Logging setup for battstatus.

Sets up Python logging with a rotating file handler plus console output, and
removes log files past the retention period.
"""

import logging
import time
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path


def setup_logging(config, log_dir: str = "data/logs") -> logging.Logger:
    """
    Configure logging with rotating file handler and console output.

    Status decisions are logged at INFO, so the console shows INFO and above;
    the file gets everything at the configured level.

    Args:
        config: ConfigManager instance
        log_dir: Directory for log files

    Returns:
        Configured logger instance
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    log_level_str = config.get("log_level", "INFO")
    log_level = getattr(logging, log_level_str, logging.INFO)

    logger = logging.getLogger("BattStatus")
    logger.setLevel(log_level)

    # Remove existing handlers
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Same local time format as the status lines of the systray
    console_formatter = logging.Formatter(
        '[%(asctime)s]: %(message)s',
        datefmt='%a %b %d %I:%M:%S %p'
    )

    # File handler with rotation (10 MB max, keep 5 backups)
    log_file = log_path / f"battstatus_{datetime.now().strftime('%Y-%m-%d')}.log"
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(detailed_formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(max(log_level, logging.INFO))
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    logger.debug("=" * 60)
    logger.debug("battstatus logging initialized")
    logger.debug(f"Log level: {log_level_str}")
    logger.debug(f"Log file: {log_file}")
    logger.debug("=" * 60)

    return logger


def cleanup_old_logs(log_dir: str = "data/logs", retention_days: int = 30) -> int:
    """
    Delete log files older than retention period.

    Args:
        log_dir: Directory containing log files
        retention_days: Age threshold in days

    Returns:
        Number of files deleted
    """
    logger = logging.getLogger("BattStatus.Logs")
    log_path = Path(log_dir)

    if not log_path.exists():
        return 0

    deleted_count = 0
    cutoff_time = time.time() - (retention_days * 24 * 3600)

    for log_file in log_path.glob("battstatus_*.log*"):
        try:
            if log_file.stat().st_mtime < cutoff_time:
                log_file.unlink()
                deleted_count += 1
                logger.debug(f"Deleted old log file: {log_file.name}")
        except OSError as e:
            logger.warning(f"Error deleting log file {log_file}: {e}")

    if deleted_count:
        logger.info(f"Removed {deleted_count} log files older than {retention_days} days")

    return deleted_count
