# cart_core/utils/logging.py
import logging
import sys

from cart_core.utils.settings import LOG_LEVEL

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_configured = False


def _configure_root():
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT))

    root = logging.getLogger("cart_core")
    root.addHandler(handler)
    root.setLevel(LOG_LEVEL.upper())
    root.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger under the cart_core hierarchy, configured once per process."""
    _configure_root()
    if not name.startswith("cart_core"):
        name = f"cart_core.{name}"
    return logging.getLogger(name)
