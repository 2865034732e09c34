import logging
import sys

_is_logging_configured = False

NOISY_LOGGERS = ("web3", "urllib3", "aiohttp", "websockets", "asyncio", "httpx", "mcp")


def setup_logging(level: str = "INFO"):
    """Configure the root logger once; later calls only adjust the level."""
    global _is_logging_configured

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if _is_logging_configured:
        return root_logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _is_logging_configured = True
    return root_logger
