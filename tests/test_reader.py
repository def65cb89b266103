"""
Unit tests for the stream reader and cancellation handle.
"""

import asyncio

import pytest

from chatstream.core.errors import Cancelled
from chatstream.models.events import DeltaEvent, DoneEvent
from chatstream.stream.cancellation import CancellationHandle
from chatstream.stream.reader import consume


async def chunked(*chunks: bytes):
    for chunk in chunks:
        yield chunk


async def collect(body, handle=None):
    return [event async for event in consume(body, handle)]


class TestConsume:
    """Tests for the stream reader."""

    @pytest.mark.asyncio
    async def test_frames_split_across_chunks(self):
        events = await collect(chunked(
            b'data: {"del', b'ta":"Hi"}\n', b'\ndata: {"delta":" there"}\n\nda',
            b'ta: {"done":true,"text":"Hi there!"}\n\n',
        ))
        assert events == [DeltaEvent("Hi"), DeltaEvent(" there"), DoneEvent("Hi there!")]

    @pytest.mark.asyncio
    async def test_multibyte_character_split_across_chunks(self):
        raw = 'data: {"delta":"café ☕"}\n\n'.encode("utf-8")
        split = raw.index("☕".encode("utf-8")) + 1
        events = await collect(chunked(raw[:split], raw[split:]))
        assert events == [DeltaEvent("café ☕")]

    @pytest.mark.asyncio
    async def test_residual_frame_flushed_at_end(self):
        events = await collect(chunked(b'data: {"delta":"a"}\n\ndata: {"done":true,"text":"ab"}'))
        assert events == [DeltaEvent("a"), DoneEvent("ab")]

    @pytest.mark.asyncio
    async def test_crlf_framing(self):
        events = await collect(chunked(b'data: {"delta":"a"}\r\n\r', b'\ndata: {"delta":"b"}\r\n\r\n'))
        assert events == [DeltaEvent("a"), DeltaEvent("b")]

    @pytest.mark.asyncio
    async def test_bad_frame_does_not_stop_stream(self):
        events = await collect(chunked(
            b'data: {"delta":"a"}\n\n', b"data: {oops\n\n", b'data: {"delta":"b"}\n\n',
        ))
        assert events == [DeltaEvent("a"), DeltaEvent("b")]

    @pytest.mark.asyncio
    async def test_empty_body(self):
        assert await collect(chunked()) == []

    @pytest.mark.asyncio
    async def test_cancelled_before_read_yields_nothing(self):
        handle = CancellationHandle()
        handle.cancel()
        assert await collect(chunked(b'data: {"delta":"a"}\n\n'), handle) == []

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_for_chunk(self):
        handle = CancellationHandle()
        gate = asyncio.Event()

        async def stalled():
            yield b'data: {"delta":"a"}\n\n'
            await gate.wait()
            yield b'data: {"delta":"never"}\n\n'

        received = []

        async def reader():
            async for event in consume(stalled(), handle):
                received.append(event)

        task = asyncio.create_task(reader())
        while not received:
            await asyncio.sleep(0)
        handle.cancel()
        await asyncio.wait_for(task, timeout=1)

        assert received == [DeltaEvent("a")]


class TestCancellationHandle:
    """Tests for CancellationHandle."""

    @pytest.mark.asyncio
    async def test_run_returns_result(self):
        handle = CancellationHandle()

        async def work():
            return 42

        assert await handle.run(work()) == 42
        assert not handle.cancelled

    @pytest.mark.asyncio
    async def test_run_propagates_errors(self):
        handle = CancellationHandle()

        async def work():
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            await handle.run(work())

    @pytest.mark.asyncio
    async def test_run_raises_cancelled_when_signalled(self):
        handle = CancellationHandle()
        task = asyncio.create_task(handle.run(asyncio.sleep(10)))
        await asyncio.sleep(0)
        handle.cancel()
        with pytest.raises(Cancelled):
            await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_run_after_cancel_does_not_start_work(self):
        handle = CancellationHandle()
        handle.cancel()
        started = False

        async def work():
            nonlocal started
            started = True

        with pytest.raises(Cancelled):
            await handle.run(work())
        assert started is False
