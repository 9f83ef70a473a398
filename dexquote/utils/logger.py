"""
Logging utilities
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

from dexquote.config.settings import LOG_LEVEL

# Global console for rich output
console = Console(stderr=True)


def setup_logging(level: str | None = None):
    """Configure logging with rich handler"""
    level_name = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console,
                rich_tracebacks=True,
                show_path=False,
                markup=True
            )
        ],
        force=True,
    )

    # Reduce noise from external libraries
    for noisy in ("web3", "urllib3", "asyncio", "aiohttp"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    return logging.getLogger(name)


def short_address(address: str) -> str:
    """0x1234...abcd form for log lines"""
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"
