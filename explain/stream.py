"""Drains a completion stream, echoing each fragment as it arrives."""

import logging
from collections.abc import Callable, Iterable

from explain.errors import StreamError

logger = logging.getLogger(__name__)


class StreamAccumulator:
    """
    Pulls text fragments from a provider stream.

    Every fragment is written through to the sink immediately, in receive
    order, and collected for the final assistant turn.
    """

    def __init__(self, sink: Callable[[str], object]):
        self.sink = sink
        self.response_buffer: list[str] = []
        self.fragment_count: int = 0

    @property
    def text(self) -> str:
        """Everything accumulated so far"""
        return "".join(self.response_buffer)

    def reset(self):
        self.response_buffer.clear()
        self.fragment_count = 0

    def drain(self, fragments: Iterable[str]) -> str:
        """
        Consumes the stream until it ends and returns the full text.\n
        A failure mid-stream raises StreamError; fragments already forwarded
        stay where the sink put them.
        """
        self.reset()
        try:
            for fragment in fragments:
                if not fragment:
                    continue
                self.response_buffer.append(fragment)
                self.fragment_count += 1
                self.sink(fragment)
        except StreamError as e:
            e.forwarded = self.fragment_count
            raise
        except Exception as e:
            raise StreamError(
                f"{e} (after {self.fragment_count} fragments)",
                "receive completion",
                forwarded=self.fragment_count,
            ) from e
        logger.debug("Stream finished after %d fragments", self.fragment_count)
        return self.text
