"""
In-process fan-out of toast notifications to connected stream clients.

- Each stream connection owns a bounded Mailbox; the Broadcaster only keeps a
  membership set of them.
- send() never blocks: a full mailbox drops the message for that client only.
- Membership is guarded by a reader/writer lock so sends from request threads
  can run side by side while subscribe/unsubscribe are exclusive.
"""
from __future__ import annotations
import asyncio, json, logging, threading
from collections import deque
from contextlib import contextmanager
from typing import Deque, Iterator, Optional, Set

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10


class NotSubscribedError(RuntimeError):
    """Raised when a mailbox is unsubscribed twice or was never registered."""


class RWLock:
    """Shared readers, exclusive writers. A waiting writer holds off new readers."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class Mailbox:
    """Bounded FIFO owned by one stream connection.

    offer() may be called from any thread and decides keep/drop on the spot,
    so messages land in the order offer() was called. get() has a single
    consumer, which may be any event loop.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = capacity
        self._items: Deque[str] = deque()
        self._lock = threading.Lock()
        self._closed = False
        self._waiter: Optional[asyncio.Future] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        with self._lock:
            return len(self._items)

    def offer(self, msg: str) -> bool:
        """Enqueue without blocking. False means the message was dropped."""
        with self._lock:
            if self._closed:
                return False
            if len(self._items) >= self.capacity:
                logger.debug("mailbox full, message dropped", extra={"event": "drop"})
                return False
            self._items.append(msg)
            waiter, self._waiter = self._waiter, None
        if waiter is not None:
            _wake(waiter)
        return True

    def get_nowait(self) -> str:
        with self._lock:
            if not self._items:
                raise asyncio.QueueEmpty
            return self._items.popleft()

    async def get(self) -> str:
        while True:
            with self._lock:
                if self._items:
                    return self._items.popleft()
                waiter = asyncio.get_running_loop().create_future()
                self._waiter = waiter
            try:
                await waiter
            finally:
                with self._lock:
                    if self._waiter is waiter:
                        self._waiter = None

    def close(self) -> None:
        with self._lock:
            self._closed = True


def _wake(waiter: asyncio.Future) -> None:
    def _set() -> None:
        if not waiter.done():
            waiter.set_result(None)

    loop = waiter.get_loop()
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        _set()
    else:
        try:
            loop.call_soon_threadsafe(_set)
        except RuntimeError:
            # consumer loop already closed, nobody left to wake
            pass


class Broadcaster:
    """Sends messages to every subscribed mailbox."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = capacity
        self._lock = RWLock()
        self._mailboxes: Set[Mailbox] = set()

    def subscribe(self) -> Mailbox:
        mailbox = Mailbox(self.capacity)
        with self._lock.write():
            self._mailboxes.add(mailbox)
            count = len(self._mailboxes)
        logger.debug(
            "subscriber added", extra={"event": "subscribe", "subscribers": count}
        )
        return mailbox

    def unsubscribe(self, mailbox: Mailbox) -> None:
        with self._lock.write():
            if mailbox not in self._mailboxes:
                raise NotSubscribedError("mailbox is not subscribed")
            self._mailboxes.remove(mailbox)
            mailbox.close()
            count = len(self._mailboxes)
        logger.debug(
            "subscriber removed", extra={"event": "unsubscribe", "subscribers": count}
        )

    def send(self, message: str) -> None:
        with self._lock.read():
            for mailbox in self._mailboxes:
                mailbox.offer(message)

    def publish_toast(self, toast_type: str, message: str) -> None:
        data = encode_toast(toast_type, message)
        logger.info("toast published", extra={"event": "toast", "toast_type": toast_type})
        self.send(data)

    @property
    def subscriber_count(self) -> int:
        with self._lock.read():
            return len(self._mailboxes)

    def __contains__(self, mailbox: object) -> bool:
        with self._lock.read():
            return mailbox in self._mailboxes


def encode_toast(toast_type: str, message: str) -> str:
    """JSON body of a toast; `toast_type` is passed through unvalidated."""
    return json.dumps(
        {"type": toast_type, "message": message}, ensure_ascii=False, separators=(",", ":")
    )
