"""
Binary min-heap with back-pointers for the Fast Marching Method.

Every pushed entry gets a stable handle. The handle stays valid while the
entry moves around inside the heap, so a queued key can be decreased in
O(log n) without searching and without pushing duplicates as with heapq.
"""


class Heap:
    """
    Array-backed binary min-heap addressed by handles.

    Each entry carries an ``address`` (the mesh node it belongs to) and a
    ``value`` (its key). ``push`` returns the entry's handle; every swap
    keeps the handle -> slot table in step with the heap array.

    Parameters:
    -----------
    max_length : int
        Maximum number of entries that can be pushed over the heap's lifetime
    """

    def __init__(self, max_length):
        self.max_length = int(max_length)

        self._heap = []      # slot -> handle
        self._slot = []      # handle -> slot, -1 once popped
        self._value = []     # handle -> key
        self._address = []   # handle -> node

    def __len__(self):
        return len(self._heap)

    @property
    def empty(self):
        return not self._heap

    def push(self, address, value):
        """
        Insert a new entry.

        Returns:
        --------
        handle : int
            Back-pointer to the entry, valid until it is popped
        """
        if len(self._value) >= self.max_length:
            raise IndexError(f"heap is full (max_length={self.max_length})")

        handle = len(self._value)
        self._value.append(float(value))
        self._address.append(int(address))
        self._slot.append(len(self._heap))
        self._heap.append(handle)
        self._sift_up(len(self._heap) - 1)

        return handle

    def peek(self):
        """Return (address, value) of the minimum entry without removing it."""
        if not self._heap:
            raise IndexError("peek from an empty heap")
        handle = self._heap[0]
        return self._address[handle], self._value[handle]

    def pop(self):
        """Remove the minimum entry and return its (address, value)."""
        if not self._heap:
            raise IndexError("pop from an empty heap")

        top = self._heap[0]
        last = self._heap.pop()
        if self._heap:
            self._heap[0] = last
            self._slot[last] = 0
            self._sift_down(0)
        self._slot[top] = -1

        return self._address[top], self._value[top]

    def set(self, handle, value):
        """Change the key of a queued entry and restore the heap order."""
        pos = self._slot[handle]
        if pos < 0:
            raise IndexError(f"heap entry {handle} has already been popped")

        old = self._value[handle]
        self._value[handle] = float(value)
        if value < old:
            self._sift_up(pos)
        else:
            self._sift_down(pos)

    def value(self, handle):
        return self._value[handle]

    def address(self, handle):
        return self._address[handle]

    def verify(self):
        """
        Check the heap ordering and the handle <-> slot tables.

        Returns:
        --------
        ok : bool
            True if every parent key is <= its children's keys and every
            queued handle points back at its own slot
        """
        heap = self._heap
        for pos in range(1, len(heap)):
            if self._value[heap[pos]] < self._value[heap[(pos - 1) >> 1]]:
                return False
        for pos, handle in enumerate(heap):
            if self._slot[handle] != pos:
                return False
        return True

    def _sift_up(self, pos):
        heap, slot, values = self._heap, self._slot, self._value
        handle = heap[pos]
        value = values[handle]

        while pos > 0:
            parent = (pos - 1) >> 1
            parent_handle = heap[parent]
            if value < values[parent_handle]:
                heap[pos] = parent_handle
                slot[parent_handle] = pos
                pos = parent
            else:
                break

        heap[pos] = handle
        slot[handle] = pos

    def _sift_down(self, pos):
        heap, slot, values = self._heap, self._slot, self._value
        n = len(heap)
        handle = heap[pos]
        value = values[handle]

        while True:
            child = 2 * pos + 1
            if child >= n:
                break
            right = child + 1
            if right < n and values[heap[right]] < values[heap[child]]:
                child = right
            child_handle = heap[child]
            if values[child_handle] < value:
                heap[pos] = child_handle
                slot[child_handle] = pos
                pos = child
            else:
                break

        heap[pos] = handle
        slot[handle] = pos
