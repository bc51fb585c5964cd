"""
Training history.

`History` records scalar metrics produced by `fit`, keyed by solver
iteration. Metrics may be recorded at different intervals (training loss
every iteration, test loss every ``test_interval`` iterations), so each
metric keeps its own list of iterations.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Union


Number = Union[int, float]


@dataclass
class History:
    """
    Container for per-iteration training metrics.

    Attributes
    ----------
    history : Dict[str, List[float]]
        Mapping from metric name to its recorded values, in recording order.
    iterations : Dict[str, List[int]]
        Mapping from metric name to the solver iteration of each value.
    """

    history: Dict[str, List[float]] = field(default_factory=dict)
    iterations: Dict[str, List[int]] = field(default_factory=dict)

    def record(self, iteration: int, logs: Mapping[str, Number]) -> None:
        """
        Append the metrics in ``logs`` under solver iteration ``iteration``.
        """
        for k, v in logs.items():
            self.history.setdefault(k, []).append(float(v))
            self.iterations.setdefault(k, []).append(int(iteration))

    def last(self) -> Dict[str, float]:
        """
        Return the most recent value of every metric.
        """
        return {k: vs[-1] for k, vs in self.history.items() if vs}

    def windowed_mean(self, key: str, window: int) -> List[float]:
        """
        Means of consecutive non-overlapping windows of metric ``key``.

        A trailing partial window is dropped.
        """
        if window <= 0:
            raise ValueError(f"window must be > 0, got {window}")
        vs = self.history.get(key, [])
        return [
            sum(vs[i : i + window]) / window
            for i in range(0, len(vs) - window + 1, window)
        ]

    def __len__(self) -> int:
        return max((len(vs) for vs in self.history.values()), default=0)
