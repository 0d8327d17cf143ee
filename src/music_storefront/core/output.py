"""
Unified output system using Loguru.
User-facing messages go to the console and the log file; everything else goes to the log only.
"""

import sys
import threading
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from .config import LoggingConfig, get_data_dir

# Page mode tracking (set while the full-screen storefront page owns the terminal)
_page_mode_active = False
_page_status_callback: Optional[Callable[[str, str], None]] = None
_page_mode_lock = threading.Lock()


def get_log_file_path() -> Path:
    """Get the default path to the log file."""
    return get_data_dir() / "storefront.log"


def setup_loguru(
    log_file: Optional[Path] = None,
    level: str = "INFO",
    rotation_mb: int = 10,
    retention: int = 5,
    console_output: bool = False,
) -> None:
    """
    Configure loguru with a rotating file sink.

    Args:
        log_file: Path to log file (default: ~/.local/share/music-storefront/storefront.log)
        level: Minimum level for file logging (DEBUG, INFO, WARNING, ERROR)
        rotation_mb: Size in MB before the log file rotates
        retention: Number of rotated files to keep
        console_output: Also log to stderr (for debugging)
    """
    log_file = log_file or get_log_file_path()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()

    logger.add(
        log_file,
        rotation=f"{rotation_mb} MB",
        retention=retention,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        enqueue=False,
    )

    if console_output:
        logger.add(sys.stderr, level=level, format="{level}: {message}")

    logger.info(f"Loguru initialized: {log_file} (level={level})")


def setup_from_config(config: LoggingConfig) -> None:
    """Configure loguru from the [logging] config section."""
    setup_loguru(
        log_file=Path(config.log_file) if config.log_file else None,
        level=config.level,
        rotation_mb=config.max_file_size_mb,
        retention=config.backup_count,
        console_output=config.console_output,
    )


def set_page_mode(status_callback: Optional[Callable[[str, str], None]] = None) -> None:
    """
    Enable page mode - suppresses stdout printing, routes messages to the page status line.

    Args:
        status_callback: Receives (message, level) for display inside the page
    """
    global _page_mode_active, _page_status_callback
    with _page_mode_lock:
        _page_mode_active = True
        _page_status_callback = status_callback
    logger.debug("Page mode enabled - log() will route through status callback")


def clear_page_mode() -> None:
    """Disable page mode - restores stdout printing."""
    global _page_mode_active, _page_status_callback
    with _page_mode_lock:
        _page_mode_active = False
        _page_status_callback = None
    logger.debug("Page mode disabled - log() will print to stdout")


def log(message: str, level: str = "info") -> None:
    """
    Unified logging: writes to file AND shows the message to the user.

    Use this instead of print() for user-facing messages that should also be logged.

    Args:
        message: User-facing message
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level)
    log_func(message)

    with _page_mode_lock:
        if _page_mode_active:
            if _page_status_callback:
                _page_status_callback(message, level)
            return

    if level == "debug":
        return
    stream = sys.stderr if level in ("warning", "error") else sys.stdout
    print(message, file=stream)
