"""Time-ordered, version-tagged resource identifiers.

Learn: every tenant-scoped row is keyed by a UUID version 7. The first
48 bits are a Unix millisecond timestamp, so identifiers sort by
creation time. Indexes and pagination rely on that. Layout used here:

    | 48 unix_ms | 4 ver=7 | 12 counter_hi | 2 var | 30 counter_lo | 32 random |

The 42-bit counter makes ordering strict inside one millisecond. A new
millisecond reseeds it with a random value whose top bit is clear, so
there's always room to count up before overflowing into the next
millisecond.

Anything coming from outside the process (path params, body fields,
token subjects) goes through parse(). It rejects malformed text with
InvalidIdFormat and well-formed UUIDs of any other version with
InvalidIdVersion, so a random v4 from another system never gets in.
"""

import secrets
import threading
import time
import uuid
from typing import Callable, Optional, Union

from tessera.errors import InvalidIdFormat, InvalidIdVersion

ID_VERSION = 7

_COUNTER_BITS = 42
_COUNTER_MAX = (1 << _COUNTER_BITS) - 1
_TIMESTAMP_MAX = (1 << 48) - 1


def _system_ms() -> int:
    return time.time_ns() // 1_000_000


class IdGenerator:
    """Thread-safe, strictly monotonic UUIDv7 generator."""

    def __init__(self, clock_ms: Optional[Callable[[], int]] = None):
        self._clock_ms = clock_ms or _system_ms
        self._lock = threading.Lock()
        self._last_ms = -1
        self._counter = 0

    def generate(self) -> uuid.UUID:
        with self._lock:
            now_ms = self._clock_ms()
            if now_ms > self._last_ms:
                self._last_ms = now_ms
                self._counter = secrets.randbits(_COUNTER_BITS - 1)
            else:
                # Same millisecond, or the wall clock stepped backwards.
                self._counter += 1
                if self._counter > _COUNTER_MAX:
                    self._last_ms += 1
                    self._counter = secrets.randbits(_COUNTER_BITS - 1)
            unix_ms = self._last_ms & _TIMESTAMP_MAX
            counter = self._counter

        counter_hi = counter >> 30
        counter_lo = counter & ((1 << 30) - 1)
        value = (
            (unix_ms << 80)
            | (ID_VERSION << 76)
            | (counter_hi << 64)
            | (0b10 << 62)
            | (counter_lo << 32)
            | secrets.randbits(32)
        )
        return uuid.UUID(int=value)


_generator = IdGenerator()


def new_id() -> uuid.UUID:
    """Generate a fresh identifier. Safe to call from any thread or task."""
    return _generator.generate()


def parse_id(value: Union[str, uuid.UUID], field: str = "id") -> uuid.UUID:
    """Parse an identifier from outside the process boundary.

    Raises InvalidIdFormat for malformed input and InvalidIdVersion for a
    valid UUID that this service didn't issue.
    """
    if isinstance(value, uuid.UUID):
        parsed = value
    else:
        if not isinstance(value, str):
            raise InvalidIdFormat(field)
        try:
            parsed = uuid.UUID(value.strip())
        except ValueError:
            raise InvalidIdFormat(field)

    if parsed.variant != uuid.RFC_4122 or parsed.version != ID_VERSION:
        raise InvalidIdVersion(field, version=parsed.version)
    return parsed


def id_timestamp_ms(value: uuid.UUID) -> int:
    """Creation time (Unix ms) embedded in an identifier."""
    return value.int >> 80
