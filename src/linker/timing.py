import time
from contextlib import contextmanager


class Timings:
    """Durations of the read / link / write steps of one or more diagrams.

    Every step is summed over the diagrams it ran for, and the slowest diagram
    per step is remembered so a batch report can point at it.
    """

    def __init__(self) -> None:
        self._dur: dict[str, float] = {}
        self._runs: dict[str, int] = {}
        self._slowest: dict[str, tuple[str, float]] = {}
        self._t0 = time.perf_counter()

    @contextmanager
    def step(self, name: str, diagram: str = ""):
        start = time.perf_counter()
        try:
            yield
        finally:
            self._record(name, diagram, time.perf_counter() - start)

    def _record(self, name: str, diagram: str, sec: float) -> None:
        self._dur[name] = self._dur.get(name, 0.0) + sec
        self._runs[name] = self._runs.get(name, 0) + 1
        if diagram and sec >= self._slowest.get(name, ("", -1.0))[1]:
            self._slowest[name] = (diagram, sec)

    def absorb(self, other: "Timings") -> None:
        """Add the steps recorded by ``other`` (one diagram) to this batch."""
        for name, sec in other._dur.items():
            self._dur[name] = self._dur.get(name, 0.0) + sec
            self._runs[name] = self._runs.get(name, 0) + other._runs[name]
        for name, (diagram, sec) in other._slowest.items():
            if sec >= self._slowest.get(name, ("", -1.0))[1]:
                self._slowest[name] = (diagram, sec)

    def as_dict(self) -> dict:
        out: dict = {f"{name}_sec": sec for name, sec in self._dur.items()}
        if any(n > 1 for n in self._runs.values()):
            out["runs"] = dict(self._runs)
        if self._slowest:
            out["slowest"] = {name: {"diagram": d, "sec": s} for name, (d, s) in self._slowest.items()}
        out["total_wall_sec"] = time.perf_counter() - self._t0
        return out
