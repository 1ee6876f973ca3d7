from __future__ import annotations

"""Edit-distance similarity for species names.

Comparison is on lower-cased, trimmed strings only: no transliteration and
no punctuation stripping.
"""

from typing import Iterable, List


def normalize(text: str | None) -> str:
    return (text or "").strip().lower()


def levenshtein(a: str, b: str) -> int:
    """Unit-cost insert/delete/substitute distance (two-row DP)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur[j] = min(cur[j - 1] + 1, prev[j] + 1, prev[j - 1] + cost)
        prev = cur
    return prev[-1]


def similarity(a: str | None, b: str | None) -> float:
    """Return (max_len - distance) / max_len in [0, 1]; 1.0 for two empty strings."""
    na = normalize(a)
    nb = normalize(b)
    longest = max(len(na), len(nb))
    if longest == 0:
        return 1.0
    return (longest - levenshtein(na, nb)) / longest


def suggest_corrections(
    answer: str,
    candidates: Iterable[str],
    max_suggestions: int = 3,
    min_similarity: float = 0.3,
) -> List[str]:
    """Return up to ``max_suggestions`` candidate names closest to ``answer``.

    Candidates at or below ``min_similarity`` are dropped. Ties keep the
    input order.
    """
    scored = []
    seen = set()
    for name in candidates:
        if name in seen:
            continue
        seen.add(name)
        s = similarity(answer, name)
        if s > min_similarity:
            scored.append((s, name))
    scored.sort(key=lambda item: item[0], reverse=True)
    return [name for _, name in scored[:max_suggestions]]
