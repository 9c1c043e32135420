"""
The bounded mailbox between the port pollers and the network forwarder.
"""
import threading
from collections import deque

DEFAULT_CAPACITY = 100


class RelayQueueError(Exception):
    pass


class RelayQueueClosed(RelayQueueError):
    """ Raised on enqueue to a closed queue, and on dequeue from a closed queue that has been drained. """


class RelayQueueFull(RelayQueueError):
    """ Raised when an enqueue gives up waiting for space. Nothing is enqueued. """


class RelayQueueEmpty(RelayQueueError):
    """ Raised when a dequeue gives up waiting for an item. """


class RelayQueue:
    """
    A bounded FIFO queue for many producers and a single consumer.

    Producers block while the queue is full, so a slow consumer slows the producers down rather than
    losing items. Items from any one producer are dequeued in the order that producer enqueued them;
    items from different producers interleave in arrival order.

    Closing the queue wakes every blocked producer and consumer. Items already enqueued can still be
    dequeued after the queue is closed.
    :param capacity the most items held at once
    """

    def __init__(self, capacity=DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("relay queue capacity must be at least 1, not %s" % capacity)
        self.capacity = capacity
        self._items = deque()
        self._closed = False
        self._mutex = threading.Lock()
        self._not_empty = threading.Condition(self._mutex)
        self._not_full = threading.Condition(self._mutex)

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        with self._mutex:
            return len(self._items)

    def enqueue(self, item, timeout=None):
        """
        Appends an item, waiting for space if the queue is full.
        :param timeout: the longest time in seconds to wait for space, or None to wait indefinitely
        :raises RelayQueueFull: when the timeout passes with the queue still full
        :raises RelayQueueClosed: when the queue is closed
        """
        with self._not_full:
            if not self._not_full.wait_for(self._has_space_or_closed, timeout):
                raise RelayQueueFull("relay queue is full (capacity %d)" % self.capacity)
            if self._closed:
                raise RelayQueueClosed("relay queue is closed")
            self._items.append(item)
            self._not_empty.notify()

    def dequeue(self, timeout=None):
        """
        Removes and returns the oldest item, waiting for one if the queue is empty.
        :param timeout: the longest time in seconds to wait, or None to wait indefinitely
        :raises RelayQueueEmpty: when the timeout passes with the queue still empty
        :raises RelayQueueClosed: when the queue is closed and empty
        """
        with self._not_empty:
            if not self._not_empty.wait_for(self._has_items_or_closed, timeout):
                raise RelayQueueEmpty("relay queue is empty")
            if not self._items:
                raise RelayQueueClosed("relay queue is closed")
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def close(self):
        """ closes the queue, waking all waiting producers and consumers. """
        with self._mutex:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    def _has_space_or_closed(self):
        return self._closed or len(self._items) < self.capacity

    def _has_items_or_closed(self):
        return self._closed or len(self._items) > 0
