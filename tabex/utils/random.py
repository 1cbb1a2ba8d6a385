"""Injectable random source for the randomized steps."""

import numpy as np


RandomSource = np.random.Generator | int | None


def resolve_rng(rng: RandomSource = None) -> np.random.Generator:
    """Return a :class:`numpy.random.Generator`.

    An existing generator is passed through unchanged so that callers can share
    one stream across several calls; an int seeds a fresh generator and
    ``None`` draws entropy from the OS.
    """
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


__all__ = ["RandomSource", "resolve_rng"]
