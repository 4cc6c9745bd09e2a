"""
Live state streams.

A StateStream is an append-only broadcast of snapshots. Every subscriber gets
its own queue, starting with the latest snapshot (if any), so a late
subscriber never waits for a change that has already happened. Streams end
either by close() or by fail(error); both are terminal.
"""
import asyncio
import logging
from typing import AsyncIterator, Generic, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

_MISSING = object()
_END = object()


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException):
        self.error = error


class Subscription(Generic[T]):
    """
    One consumer's view of a StateStream.

    Iterate it with ``async for`` or call next(); close() detaches it from the
    stream. Also usable as a context manager that closes on exit.
    """

    def __init__(self, stream: "StateStream[T]"):
        self._stream = stream
        self._queue: asyncio.Queue = asyncio.Queue()
        self._terminal = None
        self.closed = False

    def _push(self, item) -> None:
        self._queue.put_nowait(item)

    async def next(self) -> T:
        """
        Wait for the next snapshot.

        Raises:
            StopAsyncIteration: If the stream was closed
            Exception: The error the stream failed with
        """
        if self._terminal is None:
            item = await self._queue.get()
            if item is not _END and not isinstance(item, _Failure):
                return item
            self._terminal = item

        if isinstance(self._terminal, _Failure):
            raise self._terminal.error
        raise StopAsyncIteration

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        return await self.next()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._stream._detach(self)

    def __enter__(self) -> "Subscription[T]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class StateStream(Generic[T]):
    """Broadcast hub of state snapshots."""

    def __init__(self, name: str = "state"):
        self.name = name
        self._subscribers: Set[Subscription[T]] = set()
        self._latest = _MISSING
        self._terminal = None

    @property
    def latest(self) -> Optional[T]:
        return None if self._latest is _MISSING else self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def closed(self) -> bool:
        return self._terminal is not None

    def publish(self, value: T) -> None:
        """
        Emit a snapshot to every subscriber.

        Raises:
            RuntimeError: If the stream has already ended
        """
        if self._terminal is not None:
            raise RuntimeError(f"Stream {self.name} has ended")
        self._latest = value
        for subscription in list(self._subscribers):
            subscription._push(value)

    def fail(self, error: BaseException) -> None:
        """End the stream with an error."""
        self._end(_Failure(error))

    def close(self) -> None:
        """End the stream normally."""
        self._end(_END)

    def _end(self, terminal) -> None:
        if self._terminal is not None:
            return
        self._terminal = terminal
        for subscription in list(self._subscribers):
            subscription._push(terminal)
        self._subscribers.clear()
        logger.debug("Stream %s ended", self.name)

    def subscribe(self, replay: bool = True) -> Subscription[T]:
        """
        Subscribe to the stream.

        Args:
            replay: Deliver the latest snapshot first, if there is one

        Returns:
            A new Subscription
        """
        subscription: Subscription[T] = Subscription(self)
        if replay and self._latest is not _MISSING:
            subscription._push(self._latest)
        if self._terminal is not None:
            subscription._push(self._terminal)
        else:
            self._subscribers.add(subscription)
        return subscription

    def _detach(self, subscription: Subscription[T]) -> None:
        self._subscribers.discard(subscription)


async def throttle(source: Subscription[T], interval: float) -> AsyncIterator[T]:
    """
    Coalesce bursts of snapshots.

    The first snapshot passes immediately and opens a window of interval
    seconds. Snapshots arriving inside the window replace each other; the
    last one is emitted when the window closes. A pending snapshot is flushed
    before the source's end or failure is propagated.

    Args:
        source: Subscription to read from
        interval: Window length in seconds; 0 disables throttling
    """
    if interval <= 0:
        async for item in source:
            yield item
        return

    loop = asyncio.get_running_loop()
    window_end = None
    pending = _MISSING

    while True:
        if pending is _MISSING:
            try:
                item = await source.next()
            except StopAsyncIteration:
                return
            now = loop.time()
            if window_end is None or now >= window_end:
                window_end = now + interval
                yield item
            else:
                pending = item
            continue

        remaining = window_end - loop.time()
        if remaining > 0:
            try:
                pending = await asyncio.wait_for(source.next(), remaining)
                continue
            except asyncio.TimeoutError:
                pass
            except StopAsyncIteration:
                yield pending
                return
            except Exception:
                yield pending
                raise

        item, pending = pending, _MISSING
        window_end = loop.time() + interval
        yield item
