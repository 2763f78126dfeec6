"""Centralized logging service using loguru."""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from fathom.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "hpack",
    "openai._base_client",
    "asyncio",
    "trafilatura",
)


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """Replace loguru's default handler with the CLI's console (and file) sinks.

    Library use leaves loguru's defaults alone.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=(level or settings.app_log_level).upper(),
        colorize=True,
    )

    target = log_file if log_file is not None else settings.app_log_file
    if target:
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            path,
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="00:00",
            retention="7 days",
        )

    # Network libraries log through stdlib logging.
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def log_llm_call(
    model: str,
    caller: str,
    prompt_tokens: int = 0,
    completion_tokens: int = 0,
    duration_ms: int = 0,
    status: str = "success",
    error: Optional[str] = None,
) -> None:
    """Log an LLM API call."""
    call_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "model": model,
        "caller": caller,
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": prompt_tokens + completion_tokens,
        "duration_ms": duration_ms,
        "status": status,
        "error": error,
    }
    if error:
        logger.error(f"LLM_CALL_FAILED: {json.dumps(call_data)}")
    else:
        logger.info(f"LLM_CALL: {json.dumps(call_data)}")


def log_event(
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.info(f"EVENT: {json.dumps(event_data, default=str)}")
