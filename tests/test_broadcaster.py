import asyncio
import threading
import time
import pytest
from app.infra.broadcaster import (
    Broadcaster,
    Mailbox,
    NotSubscribedError,
    RWLock,
    encode_toast,
)


def _drain(mailbox: Mailbox) -> list:
    out = []
    while mailbox.qsize():
        out.append(mailbox.get_nowait())
    return out


def test_subscribe_works_without_event_loop():
    b = Broadcaster()
    m = b.subscribe()
    assert m in b
    b.send("hello")
    assert _drain(m) == ["hello"]
    b.unsubscribe(m)
    assert b.subscriber_count == 0


def test_registry_size_tracks_subscribe_and_unsubscribe():
    b = Broadcaster()
    boxes = [b.subscribe() for _ in range(5)]
    assert len(set(map(id, boxes))) == 5
    assert b.subscriber_count == 5
    b.unsubscribe(boxes[0])
    b.unsubscribe(boxes[3])
    assert b.subscriber_count == 3
    assert boxes[0] not in b and boxes[3] not in b
    assert all(m in b for m in (boxes[1], boxes[2], boxes[4]))


def test_send_reaches_every_subscriber_once_in_order():
    b = Broadcaster()
    boxes = [b.subscribe() for _ in range(3)]
    b.send("first")
    b.send("second")
    b.send("third")
    for m in boxes:
        assert _drain(m) == ["first", "second", "third"]


def test_full_mailbox_drops_only_for_that_subscriber():
    b = Broadcaster(capacity=10)
    slow = b.subscribe()
    for i in range(10):
        b.send(f"m{i}")
    assert slow.qsize() == 10
    fast = b.subscribe()
    b.send("overflow")
    assert _drain(slow) == [f"m{i}" for i in range(10)]
    assert _drain(fast) == ["overflow"]


def test_offer_reports_drop_when_full():
    m = Mailbox(capacity=1)
    assert m.offer("a") is True
    assert m.offer("b") is False
    assert m.get_nowait() == "a"
    with pytest.raises(asyncio.QueueEmpty):
        m.get_nowait()


def test_unsubscribed_mailbox_never_receives():
    b = Broadcaster()
    gone = b.subscribe()
    kept = b.subscribe()
    b.unsubscribe(gone)
    assert gone.closed
    b.send("after")
    assert gone.qsize() == 0
    assert gone.offer("direct") is False
    assert _drain(kept) == ["after"]


def test_double_unsubscribe_is_an_error():
    b = Broadcaster()
    m = b.subscribe()
    b.unsubscribe(m)
    with pytest.raises(NotSubscribedError):
        b.unsubscribe(m)
    assert b.subscriber_count == 0


def test_send_without_subscribers_is_a_noop():
    b = Broadcaster()
    b.send("nobody listening")
    assert b.subscriber_count == 0


def test_send_from_worker_thread_wakes_waiting_reader():
    async def scenario():
        b = Broadcaster()
        m = b.subscribe()
        pending = asyncio.ensure_future(m.get())
        await asyncio.sleep(0)
        await asyncio.to_thread(b.send, "from-thread")
        assert await asyncio.wait_for(pending, timeout=1.0) == "from-thread"

    asyncio.run(scenario())


def test_thread_and_loop_senders_keep_call_order():
    async def scenario():
        b = Broadcaster()
        m = b.subscribe()
        sent = threading.Event()

        def worker():
            b.send("A")
            sent.set()

        await asyncio.to_thread(worker)
        assert sent.is_set()
        b.send("B")
        assert [await m.get(), await m.get()] == ["A", "B"]

    asyncio.run(scenario())


def test_concurrent_senders_keep_per_sender_order():
    b = Broadcaster(capacity=100)
    m = b.subscribe()

    def sender(tag):
        for i in range(20):
            b.send(f"{tag}-{i}")

    threads = [threading.Thread(target=sender, args=(t,)) for t in ("a", "b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    got = _drain(m)
    assert len(got) == 40
    for tag in ("a", "b"):
        mine = [x for x in got if x.startswith(tag + "-")]
        assert mine == [f"{tag}-{i}" for i in range(20)]


def test_waiting_writer_holds_off_new_readers():
    lock = RWLock()
    order = []

    def writer():
        with lock.write():
            order.append("write")

    def reader():
        with lock.read():
            order.append("read")

    with lock.read():
        w = threading.Thread(target=writer)
        w.start()
        deadline = time.time() + 2.0
        while not lock._writers_waiting and time.time() < deadline:
            time.sleep(0.005)
        assert lock._writers_waiting == 1
        r = threading.Thread(target=reader)
        r.start()
        time.sleep(0.05)
        assert order == []
    w.join(timeout=2.0)
    r.join(timeout=2.0)
    assert order == ["write", "read"]


def test_publish_toast_passes_type_through():
    b = Broadcaster()
    m = b.subscribe()
    b.publish_toast("made-up", "hi")
    assert m.get_nowait() == '{"type":"made-up","message":"hi"}'


def test_encode_toast_is_compact_json():
    assert (
        encode_toast("success", "Operation completed successfully!")
        == '{"type":"success","message":"Operation completed successfully!"}'
    )
