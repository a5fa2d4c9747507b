"""
Centralized logging configuration for the ISCN SDK.
"""

import logging
import sys

_LOGGING_CONFIGURED = False

class ThreeCharLevelFormatter(logging.Formatter):
    """Formatter that prints 3-character level names, colored on a TTY."""

    LEVEL_MAPPING = {
        'DEBUG': 'DBG',
        'INFO': 'INF',
        'WARNING': 'WRN',
        'ERROR': 'ERR',
        'CRITICAL': 'CRT',
    }

    # ANSI color codes
    COLORS = {
        'DBG': '\033[36m',      # Cyan
        'INF': '\033[32m',      # Green
        'WRN': '\033[33m',      # Yellow
        'ERR': '\033[31m',      # Red
        'CRT': '\033[35m',      # Magenta
        'RESET': '\033[0m',
    }

    def __init__(self, fmt: str, use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        levelname = self.LEVEL_MAPPING.get(record.levelname, record.levelname[:3])
        if self.use_color:
            color = self.COLORS.get(levelname, '')
            record.levelname = f"{color}{levelname}{self.COLORS['RESET']}"
        else:
            record.levelname = levelname
        return super().format(record)

SDK_LOGGERS = [
    'iscn_sdk',
    'iscn_sdk.iscn',
    'iscn_sdk.rpc_client',
    'iscn_sdk.tools',
]

def setup_sdk_logging(debug: bool = False, force: bool = False, use_color: bool = True):
    """
    Configure logging for the ISCN SDK.

    Args:
        debug: If True, set DEBUG level, otherwise INFO level
        force: If True, reconfigure even if already configured
        use_color: If True, use colored output (auto-disabled for non-TTY)
    """
    global _LOGGING_CONFIGURED

    if _LOGGING_CONFIGURED and not force:
        return

    sdk_level = logging.DEBUG if debug else logging.INFO

    formatter = ThreeCharLevelFormatter(
        fmt='%(asctime)s %(levelname)s %(message)s',
        use_color=use_color
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    # Root stays at WARNING so httpx and cosmpy debug output is suppressed
    logging.basicConfig(
        level=logging.WARNING,
        handlers=[handler],
        force=True
    )

    for logger_name in SDK_LOGGERS:
        logger = logging.getLogger(logger_name)
        logger.setLevel(sdk_level)
        logger.propagate = True

    _LOGGING_CONFIGURED = True

def is_configured() -> bool:
    """Check if SDK logging has been configured."""
    return _LOGGING_CONFIGURED
