"""
Term rules for full-text matching over job titles and query titles.

Text is lower-cased and split into Unicode word tokens, English stop words
are dropped and plurals are folded onto their singular. Ranking only uses
the terms, so the same query over the same rows always orders the same way.
"""

import re
from typing import Iterable, List, Sequence, Tuple, TypeVar

from .normalize import normalize_text

T = TypeVar("T")

_TOKEN_RE = re.compile(r"[^\W_]+")

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in",
    "is", "it", "of", "on", "or", "the", "to", "with",
})


def stem(token: str) -> str:
    """
    Fold simple English plurals onto their singular.

    engineers -> engineer, boxes -> box, companies -> company. A trailing
    "e" is dropped last, so nurse and nurses both become "nurs".
    """
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 4 and token.endswith(("ses", "xes", "zes", "ches", "shes")):
        token = token[:-2]
    elif len(token) > 3 and token.endswith("s") and not token.endswith(("ss", "us", "is")):
        token = token[:-1]
    if len(token) > 3 and token.endswith("e"):
        token = token[:-1]
    return token


def terms(text: str) -> List[str]:
    """Index terms of a piece of text, in order, duplicates kept."""
    return [
        stem(tok)
        for tok in _TOKEN_RE.findall(normalize_text(text))
        if tok not in STOP_WORDS
    ]


def query_terms(query: str) -> List[str]:
    """Distinct terms of a query, first occurrence order."""
    seen = set()
    result = []
    for term in terms(query):
        if term not in seen:
            seen.add(term)
            result.append(term)
    return result


def score(query: Sequence[str], text: str) -> float:
    """Sum of query term frequencies in the text, normalized by text length."""
    text_terms = terms(text)
    if not text_terms:
        return 0.0
    hits = sum(text_terms.count(term) for term in query)
    return hits / len(text_terms)


def rank(query: str, rows: Iterable[T], text_of, id_of) -> List[T]:
    """
    Keep rows whose text matches the query and order them by relevance.

    Args:
        query: Raw query text
        rows: Candidate rows
        text_of: Callable returning the indexed text of a row
        id_of: Callable returning a row's id (final tie-break)

    Returns:
        Matching rows, best first. Ties break on text, then id.
    """
    q = query_terms(query)
    if not q:
        return []
    scored: List[Tuple[float, str, str, T]] = []
    for row in rows:
        s = score(q, text_of(row))
        if s > 0:
            scored.append((s, text_of(row), id_of(row), row))
    scored.sort(key=lambda item: (-item[0], item[1], item[2]))
    return [item[3] for item in scored]
