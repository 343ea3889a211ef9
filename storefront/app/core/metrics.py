from __future__ import annotations
import threading
import time
from collections import defaultdict
from typing import Dict, Tuple, Iterable as IterableT, Optional

# ---------- Primitives ----------

LabelKey = Tuple[Tuple[str, str], ...]


def _label_key(labels: Optional[Dict[str, str]]) -> LabelKey:
    return tuple(sorted((labels or {}).items()))


def _label_str(key: LabelKey) -> str:
    return ",".join(f'{k}="{v}"' for k, v in key)


class _Counter:
    def __init__(self, name: str, help_: str = ""):
        self.name = name
        self.help = help_
        self._lock = threading.Lock()
        self._values: Dict[LabelKey, int] = defaultdict(int)

    def inc(self, labels: Optional[Dict[str, str]] = None, by: int = 1) -> None:
        key = _label_key(labels)
        with self._lock:
            self._values[key] += by

    def value(self, labels: Optional[Dict[str, str]] = None) -> int:
        with self._lock:
            return self._values.get(_label_key(labels), 0)

    def render(self) -> IterableT[str]:
        if self.help:
            yield f"# HELP {self.name} {self.help}\n# TYPE {self.name} counter\n"
        for labels, v in sorted(self._values.items()):
            if labels:
                yield f"{self.name}{{{_label_str(labels)}}} {v}\n"
            else:
                yield f"{self.name} {v}\n"


class _Histogram:
    DEFAULT_BUCKETS = [0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10]  # seconds

    def __init__(self, name: str, help_: str = "", buckets: Optional[IterableT[float]] = None):
        self.name = name
        self.help = help_
        self._lock = threading.Lock()
        self._buckets = list(buckets or self.DEFAULT_BUCKETS)
        self._counts: Dict[LabelKey, Dict[float, float]] = defaultdict(lambda: defaultdict(float))
        self._sum: Dict[LabelKey, float] = defaultdict(float)
        self._obs: Dict[LabelKey, float] = defaultdict(float)

    def observe(self, value_seconds: float, labels: Optional[Dict[str, str]] = None) -> None:
        key = _label_key(labels)
        with self._lock:
            self._sum[key] += value_seconds
            self._obs[key] += 1
            for b in self._buckets:
                if value_seconds <= b + 1e-12:
                    self._counts[key][b] += 1
                    break
            else:  # +Inf
                self._counts[key][float("inf")] += 1

    def timer(self, labels: Optional[Dict[str, str]] = None):
        start = time.perf_counter()
        def _stop():
            self.observe(time.perf_counter() - start, labels=labels)
        return _stop

    def render(self) -> IterableT[str]:
        if self.help:
            yield f"# HELP {self.name} {self.help}\n# TYPE {self.name} histogram\n"
        for key in sorted(set(self._obs.keys())):
            counts = self._counts.get(key, {})
            label_str = _label_str(key)
            running = 0.0
            # cumulative buckets
            for b in self._buckets + [float("inf")]:
                running += counts.get(b, 0.0)
                le = "+Inf" if b == float("inf") else f"{b:.2f}"
                if label_str:
                    yield f'{self.name}_bucket{{{label_str},le="{le}"}} {running}\n'
                else:
                    yield f'{self.name}_bucket{{le="{le}"}} {running}\n'
            if label_str:
                yield f"{self.name}_sum{{{label_str}}} {self._sum[key]}\n"
                yield f"{self.name}_count{{{label_str}}} {self._obs[key]}\n"
            else:
                yield f"{self.name}_sum {self._sum[key]}\n"
                yield f"{self.name}_count {self._obs[key]}\n"


# ---------- Registry ----------

class MetricsRegistry:
    def __init__(self):
        self._items: list[object] = []

    def counter(self, name: str, help_: str = "") -> _Counter:
        c = _Counter(name, help_)
        self._items.append(c)
        return c

    def histogram(self, name: str, help_: str = "", buckets: Optional[IterableT[float]] = None) -> _Histogram:
        h = _Histogram(name, help_, buckets=buckets)
        self._items.append(h)
        return h

    def render_prometheus(self) -> str:
        out: list[str] = []
        for it in self._items:
            out.extend(it.render())
        return "".join(out)


REGISTRY = MetricsRegistry()

# ---------- App metrics ----------

# Client side: background projections of local cart mutations
cart_sync_counter = REGISTRY.counter(
    "storefront_cart_sync_total", "Cart sync calls by operation and result"
)
cart_sync_duration = REGISTRY.histogram(
    "storefront_cart_sync_duration_seconds", "Cart sync call duration in seconds"
)

# Server side: cart store API requests
cart_request_counter = REGISTRY.counter(
    "storefront_cart_requests_total", "Cart store API requests by method and status"
)
