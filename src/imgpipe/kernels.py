from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np


@dataclass(frozen=True, eq=False)
class Kernel:
    name: str
    weights: np.ndarray = field(repr=False)  # float64, indexed [dx, dy]

    def __post_init__(self) -> None:
        w = np.array(self.weights, dtype=np.float64)
        if w.ndim != 2 or w.shape[0] != w.shape[1] or w.shape[0] % 2 == 0:
            raise ValueError(f"kernel {self.name!r} must be square with odd size, got {w.shape}")
        w.setflags(write=False)
        object.__setattr__(self, "weights", w)

    @property
    def size(self) -> int:
        return int(self.weights.shape[0])

    @property
    def radius(self) -> int:
        return self.size // 2


_BINOMIAL_5 = np.array([1, 4, 6, 4, 1], dtype=np.float64)

KERNELS: Dict[str, Kernel] = {
    "edge": Kernel("edge", [[0, 1, 0], [1, -4, 1], [0, 1, 0]]),
    "sharpen": Kernel("sharpen", [[0, -1, 0], [-1, 5, -1], [0, -1, 0]]),
    # 1/256 is exact in binary, so the weights sum to exactly 1
    "blur": Kernel("blur", np.outer(_BINOMIAL_5, _BINOMIAL_5) * 0.00390625),
}


def get_kernel(name: str) -> Optional[Kernel]:
    return KERNELS.get(name)
