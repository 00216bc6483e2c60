import os, sys
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import numpy as np
import pytest

from heap import Heap


def test_pop_returns_entries_in_key_order():
    heap = Heap(10)
    values = [5.0, 3.0, 8.0, 1.0, 4.0, 7.0]
    for address, value in enumerate(values):
        heap.push(address, value)

    popped = []
    while not heap.empty:
        popped.append(heap.pop())
        assert heap.verify()

    assert [v for _, v in popped] == sorted(values)
    assert [a for a, _ in popped] == [3, 1, 4, 0, 5, 2]


def test_decrease_key_through_handle():
    heap = Heap(3)
    ha = heap.push(10, 10.0)
    hb = heap.push(20, 20.0)
    hc = heap.push(30, 30.0)

    heap.set(hc, 1.0)
    assert heap.verify()
    assert heap.value(hc) == 1.0
    assert heap.address(hc) == 30
    assert heap.peek() == (30, 1.0)

    heap.set(ha, 50.0)
    assert heap.verify()
    assert [heap.pop()[0] for _ in range(3)] == [30, 20, 10]
    assert heap.value(hb) == 20.0


def test_handles_stay_valid_while_entries_move():
    rng = np.random.default_rng(1234)
    n = 200
    heap = Heap(n)
    keys = rng.uniform(0.0, 100.0, n)
    handles = [heap.push(i, keys[i]) for i in range(n)]

    # Decrease a random subset of keys several times
    for _ in range(5):
        for i in rng.choice(n, size=40, replace=False):
            keys[i] *= 0.5
            heap.set(handles[i], keys[i])
            assert heap.value(handles[i]) == keys[i]
            assert heap.address(handles[i]) == i
        assert heap.verify()

    popped = [heap.pop() for _ in range(n)]
    popped_values = [v for _, v in popped]
    assert popped_values == sorted(popped_values)
    assert sorted(a for a, _ in popped) == list(range(n))
    for address, value in popped:
        assert value == keys[address]


def test_empty_heap_errors():
    heap = Heap(2)
    assert len(heap) == 0
    with pytest.raises(IndexError):
        heap.pop()
    with pytest.raises(IndexError):
        heap.peek()


def test_capacity_and_popped_handles():
    heap = Heap(2)
    h0 = heap.push(0, 1.0)
    heap.push(1, 2.0)
    with pytest.raises(IndexError):
        heap.push(2, 3.0)

    heap.pop()
    with pytest.raises(IndexError):
        heap.set(h0, 0.5)


def test_verify_detects_broken_order():
    heap = Heap(4)
    h0 = heap.push(0, 1.0)
    heap.push(1, 2.0)
    heap.push(2, 3.0)
    assert heap.verify()

    # Corrupt the root key without restoring the order
    heap._value[h0] = 10.0
    assert not heap.verify()
