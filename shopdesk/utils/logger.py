"""
Logging configuration

Every record carries a ``shop`` field ("-" outside a shop). Use
``shop_logger(shop_id)`` in code that works on behalf of one shop so its
lines can be grepped per tenant. Model calls go to a separate file too.
"""
from loguru import logger
import sys
from shopdesk.config import get_settings

settings = get_settings()

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>shop={extra[shop]}</magenta> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | shop={extra[shop]} | {name}:{function} - {message}"


def _is_llm_record(record) -> bool:
    return record["extra"].get("llm", False)


def setup_logger(log_dir: str = None):
    """Configure logger sinks; file sinks only when log_to_file is on."""
    logger.remove()
    logger.configure(extra={"shop": "-"})

    logger.add(sys.stdout, colorize=True, format=CONSOLE_FORMAT, level=settings.log_level)

    if not settings.log_to_file:
        return logger

    log_dir = log_dir or settings.log_dir
    logger.add(
        f"{log_dir}/shopdesk_{{time:YYYY-MM-DD}}.log",
        format=FILE_FORMAT,
        rotation="00:00",
        retention=f"{settings.log_retention_days} days",
        compression="zip",
        level="INFO"
    )

    logger.add(
        f"{log_dir}/errors_{{time:YYYY-MM-DD}}.log",
        format=FILE_FORMAT,
        rotation="00:00",
        retention="90 days",
        level="ERROR"
    )

    # Model calls only, for auditing token spend per shop
    logger.add(
        f"{log_dir}/llm_{{time:YYYY-MM-DD}}.log",
        format=FILE_FORMAT,
        rotation="00:00",
        retention=f"{settings.log_retention_days} days",
        level="DEBUG",
        filter=_is_llm_record,
    )

    return logger


def shop_logger(shop_id: str, **extra):
    """Logger bound to one shop (plus any extra fields, e.g. llm=True)."""
    return log.bind(shop=shop_id, **extra)


# Initialize logger
log = setup_logger()
