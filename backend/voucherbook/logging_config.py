# voucherbook/logging_config.py
from __future__ import annotations

import logging

from voucherbook import settings

_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root = logging.getLogger()
    root.setLevel(level or settings.log_level())
    root.addHandler(handler)
    _CONFIGURED = True
