"""Snowflake-style ID generator for order, intent and coupon ids.

IDs are decimal strings, so they never contain "_". The eSewa adapter relies
on that: it appends "_<epoch_ms>" to the order id to build a per-attempt
transaction uuid and strips it again on callback.
"""

import threading
import time

_EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
_NODE_BITS = 10
_SEQUENCE_BITS = 12
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1


class SnowflakeIdGenerator:
    """41-bit ms timestamp | 10-bit node id | 12-bit per-ms sequence."""

    def __init__(self, node_id: int = 0) -> None:
        if not (0 <= node_id < (1 << _NODE_BITS)):
            raise ValueError(f"node_id must be 0-{(1 << _NODE_BITS) - 1}")
        self._node_id = node_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = int(time.time() * 1000)
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    # sequence exhausted for this millisecond
                    while now_ms <= self._last_ms:
                        now_ms = int(time.time() * 1000)
            else:
                self._sequence = 0
            self._last_ms = now_ms
            value = (
                ((now_ms - _EPOCH_MS) << (_NODE_BITS + _SEQUENCE_BITS))
                | (self._node_id << _SEQUENCE_BITS)
                | self._sequence
            )
            return str(value)


_default_generator = SnowflakeIdGenerator()


def generate_id() -> str:
    return _default_generator.next_id()
