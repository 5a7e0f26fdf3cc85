import math


class ErrorStatistic:
    """Running count, mean, minimum and maximum of observed values."""

    def __init__(self) -> None:
        self.n = 0
        self.mean = 0.0
        self.min = math.inf
        self.max = -math.inf
        self._sum = 0.0

    def add(self, value: float) -> None:
        self.n += 1
        self._sum += value
        self.mean = self._sum / self.n
        self.min = min(self.min, value)
        self.max = max(self.max, value)

    def __repr__(self) -> str:
        return (
            f"ErrorStatistic(n={self.n}, mean={self.mean:.4f}, "
            f"min={self.min:.4f}, max={self.max:.4f})"
        )
