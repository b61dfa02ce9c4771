"""Global functions and variables, used across various modules."""

import getpass
import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler

import keyring
from keyring import get_password
from keyring.backends import null
from platformdirs import user_log_dir
from rich.console import Console

# Default locations and system details
DEFAULT_CONFIG_FILE = os.path.join(os.path.expanduser("~"), ".explain.json")
LOG_DIR = user_log_dir("explain")
USER_NAME = getpass.getuser()
KEYRING_SERVICE = "explain"

# Terminal integration
CONSOLE = Console()


def config_path() -> str:
    """State file location, EXPLAIN_CONFIG wins over the home directory default."""
    return os.path.expanduser(os.getenv("EXPLAIN_CONFIG") or DEFAULT_CONFIG_FILE)


def request_timeout() -> float | None:
    """Provider timeout in seconds from EXPLAIN_TIMEOUT, None when unset."""
    raw = os.getenv("EXPLAIN_TIMEOUT", "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        logging.getLogger(__name__).warning("Ignoring EXPLAIN_TIMEOUT=%r", raw)
        return None
    return value if value > 0 else None


def init_logger():
    """Initializes the logging system."""
    os.makedirs(LOG_DIR, exist_ok=True)
    date_str = datetime.now().strftime("%Y%m%d")
    # Output example: explain_20261019.log
    log_path = os.path.join(LOG_DIR, f"explain_{date_str}.log")
    # Max of 3 backups, max size of 1MB
    handler = RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    level = getattr(logging, os.getenv("EXPLAIN_LOG_LEVEL", "ERROR").upper(), None)
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.ERROR,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
    )


def log_exception(e: BaseException, context: str = ""):
    """Creates a full formatted traceback string and writes it to a log file"""
    import traceback

    tb = "".join(traceback.format_exception(type(e), e, e.__traceback__))
    msg = f"{context}\n{tb}" if context else tb
    logging.error(msg)


def setup_keyring_backend():
    """Safely detects a keyring backend."""
    try:
        keyring.get_keyring()
    except Exception as e:
        keyring.set_keyring(null.Keyring())
        logging.error(
            f"Keyring backend failed. Falling back to NullBackend. Error: {e}"
        )


def retrieve_key(stored: str = "") -> str:
    """
    Resolves the API key to send to the provider.\n
    Prio: stored config value -> OPENAI_API_KEY env variable -> OS keyring entry
    """
    if stored:
        return stored
    api_key = os.getenv("OPENAI_API_KEY", "")
    if not api_key:
        try:
            api_key = get_password(KEYRING_SERVICE, USER_NAME) or ""
        except Exception as e:
            logging.getLogger(__name__).warning("Keyring lookup failed: %s", e)
            api_key = ""
    return api_key
