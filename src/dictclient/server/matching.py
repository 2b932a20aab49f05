from __future__ import annotations

from typing import Callable, Dict, Iterable, List


def _within_one_edit(a: str, b: str) -> bool:
    if a == b:
        return True
    la, lb = len(a), len(b)
    if abs(la - lb) > 1:
        return False
    if la > lb:
        a, b, la, lb = b, a, lb, la
    i = 0
    while i < la and a[i] == b[i]:
        i += 1
    if la == lb:
        # one substitution
        return a[i + 1:] == b[i + 1:]
    # one insertion into the shorter word
    return a[i:] == b[i + 1:]


STRATEGIES: Dict[str, Callable[[str, str], bool]] = {
    "exact": lambda headword, word: headword == word,
    "prefix": lambda headword, word: headword.startswith(word),
    "suffix": lambda headword, word: headword.endswith(word),
    "substring": lambda headword, word: word in headword,
    "lev": _within_one_edit,
}


def match_headwords(headwords: Iterable[str], word: str, strategy: str) -> List[str]:
    """Return the headwords that match `word` under `strategy`, case-insensitively."""
    fn = STRATEGIES[strategy]
    w = word.lower()
    return [h for h in headwords if fn(h.lower(), w)]
