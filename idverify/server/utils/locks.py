"""
进程内按 key 加锁

Used to serialize the read-then-write initiation sequence for one (user, provider, tenant). A key's lock is
dropped from the registry once nobody holds or waits for it, so the registry does not grow with the user base.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, List

_locks: Dict[Hashable, List] = {}  # key -> [lock, number of holders and waiters]
_registry_lock = threading.Lock()


@contextmanager
def keyed_lock(*key: Hashable):
    with _registry_lock:
        entry = _locks.get(key)
        if entry is None:
            entry = [threading.Lock(), 0]
            _locks[key] = entry
        entry[1] += 1

    try:
        with entry[0]:
            yield
    finally:
        with _registry_lock:
            entry[1] -= 1
            if entry[1] == 0:
                del _locks[key]


def held_keys() -> int:
    """number of keys currently present in the registry"""
    with _registry_lock:
        return len(_locks)
