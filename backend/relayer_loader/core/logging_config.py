from __future__ import annotations

import logging

_NOISY_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "httpcore.connection",
    "httpcore.http11",
    "httpcore.http2",
)

_LOG_FORMAT = '[%(levelname)s] %(name)s: %(message)s'


def _ensure_stream_handler(logger: logging.Logger) -> None:
    handler_exists = any(isinstance(h, logging.StreamHandler) for h in logger.handlers)
    if handler_exists:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)


def resolve_level(level_name: str | None) -> int:
    level = logging.getLevelName((level_name or 'INFO').upper())
    if isinstance(level, int):
        return level
    return logging.INFO


def configure_logging(level_name: str | None = None) -> None:
    """Configure the root logger and keep HTTP transport chatter at INFO or above."""

    lvl = resolve_level(level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(lvl)
    _ensure_stream_handler(root_logger)

    for noisy_name in _NOISY_LOGGERS:
        logger = logging.getLogger(noisy_name)
        if logger.level < logging.INFO:
            logger.setLevel(logging.INFO)
