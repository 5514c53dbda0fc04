from __future__ import annotations

import re
from typing import FrozenSet, Iterable, Set, Tuple

_TOKEN_RE = re.compile(r"[^\W_]+", re.UNICODE)
MIN_TOKEN_LEN = 3

STOP_WORDS: FrozenSet[str] = frozenset(
    """
    il lo la i gli le un uno una di da del dello della dei degli delle dal dallo dalla dai dagli dalle
    al allo alla ai agli alle nel nello nella nei negli nelle sul sullo sulla sui sugli sulle con per
    tra fra che chi cui non più meno come dove quando anche ancora sono essere stato stata stati state
    questo questa questi queste quello quella quelli quelle suo sua suoi sue loro nostro nostra ogni
    tutti tutte tutto tutta molto alcuni alcune altro altra altri altre sia sul poi però mentre quindi
    bando bandi progetto progetti imprese impresa
    the and for with from that this these those are was were been being have has had not but into
    onto over under about their there which while what when where who whom will would shall should
    can could may might must our your its his her they them then than also any all each other such
    """.split()
)


def tokenize(text: str) -> Set[str]:
    """Lower-cased word set without stop words and short tokens."""
    out = set()
    for tok in _TOKEN_RE.findall((text or "").lower()):
        if len(tok) < MIN_TOKEN_LEN or tok in STOP_WORDS or tok.isdigit():
            continue
        out.add(tok)
    return out


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    A, B = set(a), set(b)
    if not A or not B:
        return 0.0
    return len(A & B) / len(A | B)


def keyword_overlap(requirements: str, grant_text: str) -> Tuple[float, FrozenSet[str]]:
    """Jaccard similarity between the two token sets plus the shared tokens."""
    A, B = tokenize(requirements), tokenize(grant_text)
    return jaccard(A, B), frozenset(A & B)
