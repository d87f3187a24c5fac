"""Native helpers exposed to scripts."""

import random


def perm(n: int) -> list[int]:
    values = list(range(n))
    random.shuffle(values)
    return values


def entropy_bits() -> tuple[int, Exception | None]:
    try:
        return random.SystemRandom().getrandbits(32), None
    except NotImplementedError as e:
        return 0, e
