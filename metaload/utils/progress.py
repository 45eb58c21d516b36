"""
Metaload Progress Counters
Per-segment counters shared by the binary loader's worker threads.
"""
import sys
import threading
from typing import Dict, Iterable


class ProgressBars:
    def __init__(self, names: Iterable[str] = (), stream=None, enabled: bool = True):
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {name: 0 for name in names}
        self._stream = stream or sys.stdout
        self._enabled = enabled

    def incr(self, name: str, count: int = 1):
        """Safe to call from any worker thread; unseen names get a fresh counter"""
        with self._lock:
            self._counts[name] = self._counts.get(name, 0) + count
            if self._enabled:
                self._render_locked()

    __call__ = incr

    def get(self, name: str) -> int:
        with self._lock:
            return self._counts.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def done(self):
        with self._lock:
            if self._enabled:
                self._render_locked()
                self._stream.write('\n')
                self._stream.flush()

    def _render_locked(self):
        line = '  '.join(f"{name}: {self._counts[name]}" for name in sorted(self._counts))
        self._stream.write(f'\r   {line}')
        self._stream.flush()


__all__ = ["ProgressBars"]
