"""StreamAccumulator tests. A plain list stands in for the terminal."""

import logging

import pytest

from explain.errors import StreamError
from explain.stream import StreamAccumulator


def failing_stream(fragments: list[str], error: Exception):
    yield from fragments
    raise error


def test_fragments_forwarded_in_order():
    written: list[str] = []
    accumulator = StreamAccumulator(written.append)
    fragments = ["The ", "quick ", "brown ", "fox"]

    result = accumulator.drain(iter(fragments))

    assert written == fragments
    assert result == "The quick brown fox"
    assert accumulator.fragment_count == 4


def test_each_fragment_reaches_sink_before_the_next_is_pulled():
    events: list[str] = []

    def source():
        for text in ("a", "b", "c"):
            events.append(f"pull {text}")
            yield text

    StreamAccumulator(lambda t: events.append(f"write {t}")).drain(source())

    assert events == [
        "pull a",
        "write a",
        "pull b",
        "write b",
        "pull c",
        "write c",
    ]


def test_empty_stream_returns_empty_text():
    written: list[str] = []
    assert StreamAccumulator(written.append).drain(iter([])) == ""
    assert written == []


def test_empty_fragments_are_not_forwarded():
    written: list[str] = []
    result = StreamAccumulator(written.append).drain(iter(["", "Hel", "", "lo"]))
    assert written == ["Hel", "lo"]
    assert result == "Hello"


def test_failure_mid_stream_raises_after_forwarding():
    written: list[str] = []
    accumulator = StreamAccumulator(written.append)

    with pytest.raises(StreamError) as exc:
        accumulator.drain(failing_stream(["Hel", "lo"], ConnectionError("reset")))

    # Already on screen, but the caller gets no text back
    assert written == ["Hel", "lo"]
    assert exc.value.forwarded == 2
    assert isinstance(exc.value.__cause__, ConnectionError)
    assert "receive completion" in str(exc.value)


def test_stream_error_from_source_keeps_count():
    accumulator = StreamAccumulator(lambda t: None)
    with pytest.raises(StreamError) as exc:
        accumulator.drain(failing_stream(["x"], StreamError("bad chunk")))
    assert exc.value.forwarded == 1


def test_keyboard_interrupt_is_not_wrapped():
    accumulator = StreamAccumulator(lambda t: None)
    with pytest.raises(KeyboardInterrupt):
        accumulator.drain(failing_stream(["x"], KeyboardInterrupt()))


def test_accumulator_is_reusable():
    written: list[str] = []
    accumulator = StreamAccumulator(written.append)
    accumulator.drain(iter(["first"]))
    assert accumulator.drain(iter(["second"])) == "second"


def test_failure_is_left_to_the_caller_to_log(caplog):
    accumulator = StreamAccumulator(lambda t: None)
    with caplog.at_level(logging.ERROR):
        with pytest.raises(StreamError):
            accumulator.drain(failing_stream(["x"], ConnectionError("reset")))
    assert caplog.records == []
