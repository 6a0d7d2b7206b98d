# User value: This file tracks request, intake and operation counts so operators can see how the document tools behave.
import threading
from typing import Any

_LOCK = threading.Lock()
_COUNTERS: dict[tuple, float] = {}
_LATENCIES: dict[tuple, dict] = {}


def _key(name: str, labels: dict[str, Any]) -> tuple:
    return (name, tuple(sorted((k, str(v)) for k, v in labels.items())))


def incr(name: str, amount: float = 1, **labels: Any) -> None:
    key = _key(name, labels)
    with _LOCK:
        _COUNTERS[key] = _COUNTERS.get(key, 0) + amount


def observe_ms(name: str, value_ms: float, **labels: Any) -> None:
    key = _key(name, labels)
    with _LOCK:
        stats = _LATENCIES.setdefault(key, {"count": 0, "sum_ms": 0.0, "max_ms": 0.0})
        stats["count"] += 1
        stats["sum_ms"] += float(value_ms)
        stats["max_ms"] = max(stats["max_ms"], float(value_ms))


def snapshot() -> dict:
    with _LOCK:
        counters = [
            {"name": name, "labels": dict(labels), "value": value}
            for (name, labels), value in sorted(_COUNTERS.items())
        ]
        latencies = [
            {"name": name, "labels": dict(labels), **stats}
            for (name, labels), stats in sorted(_LATENCIES.items())
        ]
    return {"counters": counters, "latencies": latencies}


def reset() -> None:
    with _LOCK:
        _COUNTERS.clear()
        _LATENCIES.clear()
