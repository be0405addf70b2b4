"""Time-ordered identity identifiers (UUIDv7, RFC 9562)."""

from __future__ import annotations

import os
import threading
import time
import uuid

_lock = threading.Lock()
_last_ms = 0
_last_rand_a = 0


def new_identity_id() -> str:
    """Return a fresh UUIDv7 in canonical hyphenated hex form.

    Ids generated within the same millisecond by this process stay ordered:
    the 12-bit ``rand_a`` field is used as a counter seeded randomly per
    millisecond. The alphabet is ``[0-9a-f-]``.
    """
    global _last_ms, _last_rand_a

    with _lock:
        now_ms = time.time_ns() // 1_000_000
        if now_ms > _last_ms:
            _last_ms = now_ms
            _last_rand_a = int.from_bytes(os.urandom(2), "big") & 0x7FF
        else:
            _last_rand_a += 1
            if _last_rand_a > 0xFFF:
                # counter exhausted: borrow the next millisecond
                _last_ms += 1
                _last_rand_a = 0
        ms = _last_ms
        rand_a = _last_rand_a

    rand_b = int.from_bytes(os.urandom(8), "big") & ((1 << 62) - 1)
    value = (ms & ((1 << 48) - 1)) << 80
    value |= 0x7 << 76
    value |= rand_a << 64
    value |= 0b10 << 62
    value |= rand_b
    return str(uuid.UUID(int=value))


__all__ = ["new_identity_id"]
