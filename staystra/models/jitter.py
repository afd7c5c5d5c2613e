import random
from ..core.config import settings

class RandomJitter:
    """
    Nudges a projected figure by a uniform factor in [-pct, +pct] so the
    exact provider-derived number is never exposed. Every call draws
    afresh; there is no seed to persist or reuse.
    """
    def __init__(self, pct: float = settings.JITTER_PCT, rng: random.Random | None = None):
        self.pct = abs(pct)
        self.rng = rng or random.SystemRandom()

    def __call__(self, value: float) -> float:
        if value <= 0:
            return value
        factor = self.rng.uniform(-self.pct, self.pct)
        return value * (1 + factor)

def no_jitter(value: float) -> float:
    return value
