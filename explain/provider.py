"""OpenAI chat-completion boundary."""

import logging
from collections.abc import Iterator

from openai import OpenAI, OpenAIError, Stream
from openai.types.chat.chat_completion_chunk import ChatCompletionChunk

from explain.errors import StreamError

logger = logging.getLogger(__name__)

MAX_TOKENS = 1500
TEMPERATURE = 0


def chunk_text(chunk: ChatCompletionChunk) -> str:
    """Extracts the response text carried by one streamed chunk"""
    if not chunk.choices:
        # Some servers send usage or keep-alive chunks without choices
        logger.debug("Skipping chunk without choices: %s", getattr(chunk, "id", ""))
        return ""
    return getattr(chunk.choices[0].delta, "content", "") or ""


class Provider:
    """Opens streaming completions against an OpenAI-compatible endpoint"""

    def __init__(
        self,
        api_key: str,
        timeout: float | None = None,
        client: OpenAI | None = None,
    ):
        if client is None:
            kwargs = {"api_key": api_key}
            if timeout is not None:
                kwargs["timeout"] = timeout
            client = OpenAI(**kwargs)
        self.client = client

    def open_stream(self, model: str, messages: list[dict]) -> Iterator[str]:
        """Starts the request and returns a lazy sequence of text fragments."""
        try:
            completion: Stream[ChatCompletionChunk] = (
                self.client.chat.completions.create(
                    model=model,
                    messages=messages,  # pyright: ignore
                    max_tokens=MAX_TOKENS,
                    temperature=TEMPERATURE,
                    stream=True,
                )
            )
        except OpenAIError as e:
            raise StreamError(str(e), f"open completion with {model}") from e
        return self._fragments(completion)

    def _fragments(self, completion: Stream[ChatCompletionChunk]) -> Iterator[str]:
        try:
            for chunk in completion:
                text = chunk_text(chunk)
                if text:
                    yield text
        finally:
            completion.close()
