"""Trigram similarity with the same rules as PostgreSQL ``pg_trgm``.

Text is lowercased and split into words on anything that is not a letter or a
digit. Each word is padded with two spaces in front and one behind before its
trigrams are taken, so "cat" yields ``"  c"``, ``" ca"``, ``"cat"``, ``"at "``.
Similarity is the Jaccard index of the two trigram sets.
"""

import re

_WORD = re.compile(r"[^\W_]+")


def trigrams(text: str) -> set[str]:
    result: set[str] = set()
    for word in _WORD.findall(text.lower()):
        padded = f"  {word} "
        result.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return result


def trigram_similarity(a: str, b: str) -> float:
    ta, tb = trigrams(a), trigrams(b)
    if not ta or not tb:
        return 0.0
    return len(ta & tb) / len(ta | tb)
