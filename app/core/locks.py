# app/core/locks.py

import threading
from contextlib import contextmanager


class KeyedLock:
    """
    Un lock por clave (por ejemplo, por token QR).

    Dos claves distintas nunca se bloquean entre sí. Los locks se liberan del
    registro cuando nadie los está usando.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}  # clave -> [lock, usuarios]

    @contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1

        entry[0].acquire()
        try:
            yield
        finally:
            entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self):
        with self._guard:
            return len(self._locks)
