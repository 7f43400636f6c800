"""
Ordered audio assembly over many upstream segment requests.

This module turns a list of text segments into one lazy stream of MP3
buffers. A producer task fetches segments and pushes buffers onto a bounded
queue; the consumer-facing async generator drains it.

Architecture:
    segments → producer task → audio_queue → iter_chunks() → HTTP response

Two modes are picked once per request:
- Serial (concurrency <= 1 or at most two segments): one segment at a time,
  every network chunk is forwarded as soon as it arrives.
- Batched: segments are fetched ``concurrency`` at a time. Each batch is a
  barrier; once every fetch in it has finished, the successful buffers are
  emitted in segment order and the next batch starts.

A failed segment (error status, transport error, timeout, text the upstream
form cannot encode) is logged and skipped; it never stops its siblings or the stream. Any other exception
raised while producing aborts the stream and is re-raised to the consumer;
the other fetches of that batch are cancelled first.
Closing the generator early cancels the producer, so no further batches are
scheduled.

Usage:
    assembler = AudioChunkAssembler(tts_service, concurrency=3)
    async for chunk in assembler.stream_text(article, voice="DeepSeek"):
        await send(chunk)
"""

import asyncio
import logging
import time
from contextlib import aclosing, suppress
from typing import AsyncGenerator, AsyncIterator, List, Optional, Protocol, Sequence

import httpx

from ..tts_service import UpstreamHTTPError
from .text_segmenter import DEFAULT_MAX_LEN, split_text

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3
SEGMENT_ERRORS = (UpstreamHTTPError, httpx.HTTPError, TimeoutError, UnicodeEncodeError)

_END = object()


class AudioFetcher(Protocol):
    def stream_audio(self, text: str, voice: str) -> AsyncGenerator[bytes, None]: ...


def _preview(text: str) -> str:
    return text[:30].replace("\n", " ")


class AudioChunkAssembler:
    """
    Fetch audio for many segments and yield it in segment order.

    Attributes:
        fetcher: Object providing stream_audio(text, voice)
        concurrency: Default batch size when a call does not give one
        max_segment_chars: Segment length bound used by stream_text()
        queue_size: Capacity of the producer → consumer queue
        segment_timeout: Seconds of upstream time allowed per segment, or None
    """

    def __init__(
        self,
        fetcher: AudioFetcher,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        max_segment_chars: int = DEFAULT_MAX_LEN,
        queue_size: int = 8,
        segment_timeout: Optional[float] = None,
    ):
        self.fetcher = fetcher
        self.concurrency = concurrency
        self.max_segment_chars = max_segment_chars
        self.queue_size = queue_size
        self.segment_timeout = segment_timeout

    def stream_text(
        self,
        text: str,
        voice: str,
        concurrency: Optional[int] = None,
    ) -> AsyncIterator[bytes]:
        """
        Split ``text`` and return the lazy audio stream for it.

        Raises ValueError immediately, before any network call, when there
        is no text to synthesize.
        """
        if not text or not text.strip():
            raise ValueError("No text to synthesize")
        if not voice:
            raise ValueError("No voice given")

        segments = split_text(text, self.max_segment_chars)
        logger.info(
            f"Synthesizing {len(text)} chars as {len(segments)} segment(s) "
            f"with voice={voice}"
        )
        return self.iter_chunks(segments, voice, concurrency)

    async def iter_chunks(
        self,
        segments: Sequence[str],
        voice: str,
        concurrency: Optional[int] = None,
    ) -> AsyncIterator[bytes]:
        """Yield audio buffers for ``segments`` in their original order."""
        limit = self.concurrency if concurrency is None else concurrency
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        producer = asyncio.create_task(
            self._produce(list(segments), voice, limit, queue)
        )

        try:
            while True:
                item = await queue.get()
                if item is _END:
                    break
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            if not producer.done():
                producer.cancel()
            with suppress(asyncio.CancelledError):
                await producer

    async def _produce(
        self,
        segments: List[str],
        voice: str,
        concurrency: int,
        queue: asyncio.Queue,
    ) -> None:
        start_time = time.monotonic()
        try:
            if concurrency <= 1 or len(segments) <= 2:
                emitted = await self._produce_serial(segments, voice, queue)
            else:
                emitted = await self._produce_batched(
                    segments, voice, concurrency, queue
                )
        except asyncio.CancelledError:
            logger.info("Audio producer cancelled by consumer")
            raise
        except Exception as exc:
            logger.error(f"Audio production aborted: {exc}", exc_info=True)
            await queue.put(exc)
            return

        elapsed = (time.monotonic() - start_time) * 1000
        logger.info(
            f"Audio production complete: {emitted}/{len(segments)} segment(s) "
            f"in {elapsed:.0f}ms"
        )
        await queue.put(_END)

    async def _produce_serial(
        self,
        segments: List[str],
        voice: str,
        queue: asyncio.Queue,
    ) -> int:
        total = len(segments)
        emitted = 0
        for index, segment in enumerate(segments):
            logger.info(f"Processing segment {index + 1}/{total}: {_preview(segment)}...")
            try:
                async with aclosing(self._timed_chunks(segment, voice)) as chunks:
                    async for chunk in chunks:
                        await queue.put(chunk)
            except SEGMENT_ERRORS as exc:
                # Chunks already forwarded for this segment stay sent.
                logger.warning(f"Segment {index + 1}/{total} failed, skipping: {exc!r}")
                continue
            emitted += 1
        return emitted

    async def _produce_batched(
        self,
        segments: List[str],
        voice: str,
        concurrency: int,
        queue: asyncio.Queue,
    ) -> int:
        total = len(segments)
        emitted = 0
        for start in range(0, total, concurrency):
            batch = segments[start : start + concurrency]
            tasks = [
                asyncio.create_task(
                    self._fetch_segment(start + offset, total, segment, voice)
                )
                for offset, segment in enumerate(batch)
            ]
            try:
                results = await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            for buffer in results:
                if buffer:
                    await queue.put(buffer)
                    emitted += 1
        return emitted

    async def _fetch_segment(
        self, index: int, total: int, segment: str, voice: str
    ) -> Optional[bytes]:
        """Drain one segment into a buffer; None marks a failed segment."""
        logger.info(f"Processing segment {index + 1}/{total}: {_preview(segment)}...")
        buffer = bytearray()
        try:
            async with aclosing(self._timed_chunks(segment, voice)) as chunks:
                async for chunk in chunks:
                    buffer.extend(chunk)
        except SEGMENT_ERRORS as exc:
            logger.warning(f"Segment {index + 1}/{total} failed, skipping: {exc!r}")
            return None
        return bytes(buffer)

    async def _timed_chunks(self, segment: str, voice: str) -> AsyncGenerator[bytes, None]:
        """
        Yield upstream chunks for one segment within ``segment_timeout``.

        Only time spent waiting on the upstream counts against the budget, so
        a slow consumer never fails a segment. Raises TimeoutError once the
        budget is used up.
        """
        loop = asyncio.get_running_loop()
        remaining = self.segment_timeout
        async with aclosing(self.fetcher.stream_audio(segment, voice)) as chunks:
            while True:
                started = loop.time()
                try:
                    async with asyncio.timeout(remaining):
                        chunk = await anext(chunks)
                except StopAsyncIteration:
                    return
                if remaining is not None:
                    remaining = max(remaining - (loop.time() - started), 0.0)
                yield chunk
