"""Conversation policy: when to start over, and how turns are appended."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from explain.config import ConfigState, ConfigStore, Role, make_message, now
from explain.errors import EmptyPromptError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You will be straight to the point and very concise."
STALENESS_WINDOW = timedelta(hours=24)


class ConversationManager:
    """Owns every mutation of ConfigState.conversation"""

    def __init__(
        self,
        store: ConfigStore,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        window: timedelta = STALENESS_WINDOW,
        clock: Callable[[], datetime] = now,
    ):
        self.store = store
        self.system_prompt = system_prompt
        self.window = window
        self.clock = clock

    def should_reset(self, state: ConfigState) -> bool:
        """True once the conversation has been idle longer than the window."""
        return state.updated_at + self.window < self.clock()

    def start(self, state: ConfigState) -> bool:
        """
        Seeds a fresh conversation when the stored one is empty or stale.\n
        Returns True if the conversation was replaced. Does not persist.
        """
        if state.conversation and not self.should_reset(state):
            return False
        if state.conversation:
            logger.info(
                "Discarding %d stale messages (last update %s)",
                len(state.conversation),
                state.updated_at.isoformat(),
            )
        state.conversation = [make_message(Role.SYSTEM, self.system_prompt)]
        return True

    def append_user(self, state: ConfigState, text: str) -> ConfigState:
        """Adds the user's turn. Blank text is rejected and leaves state untouched."""
        if not text or not text.strip():
            raise EmptyPromptError()
        state.conversation.append(make_message(Role.USER, text))
        return state

    def append_assistant(self, state: ConfigState, text: str) -> ConfigState:
        # Model output is never validated, an empty reply is still a turn
        state.conversation.append(make_message(Role.ASSISTANT, text))
        return state

    def clear(self, state: ConfigState) -> ConfigState:
        """Empties the conversation and persists immediately."""
        state.updated_at = self.clock()
        state.conversation = []
        self.store.save(state)
        return state

    def commit(self, state: ConfigState) -> ConfigState:
        """Stamps the state with the current time and persists it."""
        state.updated_at = self.clock()
        self.store.save(state)
        return state
