import logging
import os
from pathlib import Path

LOG_DIR = Path(".polygot") / "logs"
LOG_FILE = LOG_DIR / "polygot.log"

LOG_MODE_ENV = "POLYGOT_LOG_MODE"

# Cache for log mode to avoid repeated config reads
_log_mode_cache = None


def _get_log_mode():
    """Get log mode from the environment, then configuration."""
    global _log_mode_cache
    if _log_mode_cache is not None:
        return _log_mode_cache

    env_mode = os.environ.get(LOG_MODE_ENV)
    if env_mode:
        _log_mode_cache = env_mode.strip().lower()
        return _log_mode_cache

    try:
        from polygot.config import load_config
        config = load_config()
        log_mode = config.get('log_mode', 'info')
        _log_mode_cache = log_mode
        return log_mode
    except Exception:
        # If config loading fails, fall back to console info
        return 'info'


def _levels_for_mode(log_mode):
    """Return (logger_level, console_level) for a log mode."""
    if log_mode == 'debug':
        return logging.DEBUG, logging.DEBUG
    if log_mode == 'off':
        # Higher than CRITICAL disables everything
        return logging.CRITICAL + 1, logging.CRITICAL + 1
    return logging.INFO, logging.INFO


def _make_file_handler(log_format):
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    f_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
    f_handler.setLevel(logging.DEBUG)
    f_handler.setFormatter(log_format)
    return f_handler


def _apply_mode(logger, log_mode, log_format):
    """Sync an already configured logger with the current log mode."""
    logger_level, console_level = _levels_for_mode(log_mode)
    logger.setLevel(logger_level)

    has_file_handler = any(isinstance(h, logging.FileHandler) for h in logger.handlers)

    if log_mode != 'off' and not has_file_handler:
        logger.addHandler(_make_file_handler(log_format))
    elif log_mode == 'off' and has_file_handler:
        handlers_to_remove = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        for handler in handlers_to_remove:
            handler.close()
            logger.removeHandler(handler)

    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(console_level)


def _clear_log_mode_cache():
    """Clear the log mode cache and update all existing loggers (call this when config is updated)."""
    global _log_mode_cache
    _log_mode_cache = None

    log_mode = _get_log_mode()
    log_format = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Only loggers with handlers were created by get_logger
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        if logger.handlers and logger_name.startswith('polygot'):
            _apply_mode(logger, log_mode, log_format)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)

    log_mode = _get_log_mode()
    log_format = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Prevent duplicate handlers if logger already configured
    if logger.handlers:
        _apply_mode(logger, log_mode, log_format)
        return logger

    logger_level, console_level = _levels_for_mode(log_mode)
    logger.setLevel(logger_level)
    logger.propagate = False

    if log_mode != 'off':
        logger.addHandler(_make_file_handler(log_format))

        c_handler = logging.StreamHandler()
        c_handler.setLevel(console_level)
        c_handler.setFormatter(log_format)
        logger.addHandler(c_handler)

    return logger
