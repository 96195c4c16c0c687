import threading

from services.work_queue import WorkQueue


def test_fifo_without_dedup():
    q = WorkQueue()
    q.enqueue("temperature")
    q.enqueue("humidity")
    q.enqueue("temperature")
    assert len(q) == 3
    assert [q.try_dequeue() for _ in range(3)] == ["temperature", "humidity", "temperature"]
    assert q.try_dequeue() is None


def test_dequeue_times_out_when_empty():
    assert WorkQueue().dequeue(timeout=0.01) is None


def test_concurrent_producers_lose_nothing():
    q = WorkQueue()

    def produce(n):
        for i in range(100):
            q.enqueue(f"p{n}-{i}")

    threads = [threading.Thread(target=produce, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    items = []
    while (item := q.try_dequeue()) is not None:
        items.append(item)
    assert len(items) == 400
    # per-producer order is preserved
    p0 = [i for i in items if i.startswith("p0-")]
    assert p0 == [f"p0-{i}" for i in range(100)]
