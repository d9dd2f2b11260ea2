from __future__ import annotations

import random


def additive_jitter(delay: float, jitter_factor: float) -> float:
    """
    Add up to `jitter_factor * delay` on top of a base delay.

    Jitter only ever lengthens the wait, so a jittered delay never drops below
    the computed backoff.
    """
    base = max(0.0, delay)
    return base + base * jitter_factor * random.random()
