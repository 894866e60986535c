class CircularBuffer:
    """
    Growable staging buffer for bytes read but not yet parsed.

    Data lives between ``position`` and ``end`` of a single allocation.
    Consumed bytes are dropped for good, and when the tail runs out of room
    the unconsumed bytes are shifted back to the front.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("CircularBuffer: capacity must be positive")
        self._memory = bytearray(capacity)
        self._position = 0
        self._end = 0

    @property
    def capacity(self) -> int:
        return len(self._memory)

    def available_data(self) -> int:
        return self._end - self._position

    def available_space(self) -> int:
        return len(self._memory) - self._end

    def data(self) -> memoryview:
        """Readable window over the unconsumed bytes."""
        return memoryview(self._memory)[self._position : self._end]

    def space(self) -> memoryview:
        """Writable window over the free tail, for ``readinto``."""
        return memoryview(self._memory)[self._end :]

    def fill(self, count: int) -> int:
        count = min(count, self.available_space())
        self._end += count
        return count

    def consume(self, count: int) -> int:
        count = min(count, self.available_data())
        self._position += count
        if self._position == self._end:
            self._position = self._end = 0
        return count

    def shift(self):
        """Move the unconsumed bytes to the front of the allocation."""
        if self._position == 0:
            return
        length = self.available_data()
        self._memory[:length] = self._memory[self._position : self._end]
        self._position = 0
        self._end = length

    def grow(self, new_capacity: int) -> bool:
        """
        Reallocate to ``new_capacity`` bytes keeping the unconsumed data.

        :return: False if the buffer is already at least that large.
        """
        if new_capacity <= len(self._memory):
            return False
        length = self.available_data()
        # A fresh allocation, the old one may still be exported to a memoryview
        memory = bytearray(new_capacity)
        memory[:length] = self._memory[self._position : self._end]
        self._memory = memory
        self._position = 0
        self._end = length
        return True
