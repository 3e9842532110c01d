# Logs optimizer process information to the selected outputs, configured once per process (singleton pattern)

import logging
import os
import sys
from datetime import datetime
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)-8s - %(name)s.%(funcName)s:%(lineno)d - %(message)s'

_logger_configured = False
_log_file_path: Optional[str] = None


def setup_logging(base_name: str = "tuner", level=logging.INFO, log_dir: Optional[str] = None) -> Optional[str]:
    """
    Set up the global logging configuration. Should be called once at application startup.

    Args:
        base_name: Prefix of the log file name when a log directory is given
        level: Root logging level
        log_dir: Directory for a timestamped log file. If None, only stderr is used.

    Returns:
        The log file path, or None when logging to stderr only.
    """
    global _logger_configured, _log_file_path

    if _logger_configured:
        return _log_file_path

    handlers = [logging.StreamHandler(sys.stderr)]

    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
        _log_file_path = os.path.join(log_dir, f"{base_name}_{timestamp}.log")
        handlers.append(logging.FileHandler(_log_file_path))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

    _logger_configured = True
    return _log_file_path


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance. Automatically sets up logging if not already configured.

    Args:
        name: Logger name. If None, uses the calling module's name.
    """
    if not _logger_configured:
        setup_logging()

    if name is None:
        import inspect
        frame = inspect.currentframe().f_back
        name = frame.f_globals.get('__name__', 'unknown')

    return logging.getLogger(name)
