"""Persisted state: the API key, the selected model and the running conversation."""

import json
import logging
import os
import re
import tempfile
from contextlib import suppress
from datetime import datetime, timezone
from enum import Enum

from explain.errors import ConfigCorruptError, ConfigNotFoundError, PersistenceError
from explain.models import KNOWN_MODELS

logger = logging.getLogger(__name__)

# Written by releases that never stamped the file
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

# RFC 3339, fractional seconds of any precision
_TIMESTAMP_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


ROLES = frozenset(r.value for r in Role)


def make_message(role: Role, content: str) -> dict:
    return {"role": role.value, "content": content}


def now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(raw: str) -> datetime:
    """Parses an RFC 3339 timestamp. Raises ValueError on anything else."""
    match = _TIMESTAMP_RE.match(raw.strip())
    if not match:
        raise ValueError(f"not an RFC 3339 timestamp: {raw!r}")
    date, clock, fraction, offset = match.groups()
    # datetime only keeps microseconds
    fraction = (fraction or "")[:6].ljust(6, "0")
    offset = "+00:00" if offset in ("Z", "z") else offset
    return datetime.fromisoformat(f"{date}T{clock}.{fraction}{offset}")


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class ConfigState:
    """In-memory copy of the state file"""

    def __init__(
        self,
        api_key: str = "",
        model: str = "",
        updated_at: datetime = ZERO_TIME,
        conversation: list[dict] | None = None,
    ):
        self.api_key: str = api_key
        self.model: str = model
        self.updated_at: datetime = updated_at
        self.conversation: list[dict] = conversation if conversation is not None else []

    def __eq__(self, other) -> bool:
        if not isinstance(other, ConfigState):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"ConfigState(model={self.model!r}, updated_at={self.updated_at!r}, "
            f"messages={len(self.conversation)})"
        )

    def to_dict(self) -> dict:
        """JSON shape of the state file"""
        return {
            "openai_api_key": self.api_key,
            "model": self.model,
            "updated_at": format_timestamp(self.updated_at),
            "conversation": [dict(m) for m in self.conversation],
        }

    @classmethod
    def from_dict(cls, data) -> "ConfigState":
        """
        Builds a state from decoded JSON.\n
        Raises ValueError describing the first shape problem found.
        """
        if not isinstance(data, dict):
            raise ValueError("top level is not an object")

        api_key = data.get("openai_api_key", "")
        model = data.get("model", "")
        if not isinstance(api_key, str):
            raise ValueError("openai_api_key is not a string")
        if not isinstance(model, str):
            raise ValueError("model is not a string")
        if model and model not in KNOWN_MODELS:
            raise ValueError(f"unknown model {model!r}")

        raw_time = data.get("updated_at")
        if raw_time is None:
            updated_at = ZERO_TIME
        elif isinstance(raw_time, str):
            updated_at = parse_timestamp(raw_time)
        else:
            raise ValueError("updated_at is not a string")

        # Older releases wrote null for an empty conversation
        raw_conversation = data.get("conversation")
        if raw_conversation is None:
            raw_conversation = []
        if not isinstance(raw_conversation, list):
            raise ValueError("conversation is not a list")
        conversation = []
        for i, msg in enumerate(raw_conversation):
            if not isinstance(msg, dict):
                raise ValueError(f"conversation[{i}] is not an object")
            role = msg.get("role")
            content = msg.get("content", "")
            if role not in ROLES:
                raise ValueError(f"conversation[{i}] has unknown role {role!r}")
            if not isinstance(content, str):
                raise ValueError(f"conversation[{i}] content is not a string")
            conversation.append({"role": role, "content": content})

        return cls(api_key, model, updated_at, conversation)


def default_state() -> ConfigState:
    """State written by `explain -init`"""
    return ConfigState(api_key="", model="gpt-4", updated_at=now(), conversation=[])


class ConfigStore:
    """Reads and atomically rewrites the state file at a fixed path"""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> ConfigState:
        """Loads the state file."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            raise ConfigNotFoundError(self.path) from None
        except OSError as e:
            raise PersistenceError(f"{self.path}: {e}", "read config") from e

        try:
            state = ConfigState.from_dict(json.loads(raw))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError as well
            raise ConfigCorruptError(self.path, str(e)) from e

        if state.updated_at == ZERO_TIME:
            state.updated_at = now()
        logger.debug("Loaded %r from %s", state, self.path)
        return state

    def save(self, state: ConfigState):
        """
        Replaces the state file with the full document.\n
        Writes a 0600 temp file beside the target and renames it over, so
        readers see either the old or the new content.
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        payload = json.dumps(state.to_dict(), indent=2, ensure_ascii=True)
        tmp_path = ""
        try:
            os.makedirs(directory, exist_ok=True)
            # mkstemp creates the file with mode 0600
            fd, tmp_path = tempfile.mkstemp(
                dir=directory, prefix=".explain-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"{self.path}: {e}", "save config") from e
        finally:
            # Gone already after a successful replace
            if tmp_path and os.path.exists(tmp_path):
                with suppress(OSError):
                    os.remove(tmp_path)
        logger.debug("Saved %r to %s", state, self.path)
