"""
Token-set similarity used for every match and dedup decision
"""

import re
from typing import Iterable, List

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> List[str]:
    """Lower-case, turn anything that is not [a-z0-9] into a separator, drop empties"""
    return _NON_ALNUM.sub(" ", str(text or "").lower()).split()


def similarity(tokens_a: Iterable[str], tokens_b: Iterable[str]) -> float:
    """Jaccard index of the two token sets, 0.0 when either side is empty"""
    a, b = set(tokens_a), set(tokens_b)
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)
