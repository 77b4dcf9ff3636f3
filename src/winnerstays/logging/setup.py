import sys
import logging
from typing import Any

from loguru import logger

from winnerstays.config.settings import settings


def sensitive_data_filter(record: dict[str, Any]) -> bool:
    """Filter function to mask credentials in log records."""
    sensitive_keys = ["key", "token", "password", "secret"]

    def mask_value(value: Any) -> Any:
        if isinstance(value, str):
            return value[:4] + "****" + value[-4:] if len(value) > 8 else "********"
        if isinstance(value, dict):
            return {k: mask_value(v) for k, v in value.items()}
        if isinstance(value, list):
            return [mask_value(item) for item in value]
        return value

    extra = record.get("extra")
    if isinstance(extra, dict):
        for extra_key in list(extra):
            if any(sk in extra_key.lower() for sk in sensitive_keys):
                extra[extra_key] = mask_value(extra[extra_key])

    # The configured Supabase key must never reach a sink verbatim
    if settings.supabase_key and settings.supabase_key in record["message"]:
        record["message"] = record["message"].replace(settings.supabase_key, "********")

    return True


def setup_logging(level: str | None = None) -> None:
    """Configures Loguru logger based on application settings."""
    logger.remove()  # Remove default handler

    resolved_level = (level or settings.log_level).upper()
    logger.add(
        sys.stderr,
        level=resolved_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
        backtrace=True,
        diagnose=False,
        filter=sensitive_data_filter,
    )

    logger.info(f"Logging initialized with level: {resolved_level}")

    # Intercept standard logging messages (httpx, postgrest, asyncio)
    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            try:
                level = logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

            # Find caller from where originated the logged message
            frame, depth = logging.currentframe(), 2
            while frame and frame.f_code.co_filename == logging.__file__:
                frame = frame.f_back
                depth += 1

            logger.opt(depth=depth, exception=record.exc_info).log(
                level, record.getMessage()
            )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logger.debug("Standard logging intercepted.")
