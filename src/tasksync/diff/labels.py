"""Order-independent comparison of label selections."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable


def equal_label_sets(a: Iterable[str], b: Iterable[str]) -> bool:
    """Return ``True`` if *a* and *b* hold the same labels, ignoring order.

    Comparison is by multiset: a label picked twice differs from the same
    label picked once.

    Examples
    --------
    >>> equal_label_sets(["Home", "Work"], ["Work", "Home"])
    True
    >>> equal_label_sets(["Home"], ["Home", "Home"])
    False
    """
    return Counter(a) == Counter(b)
