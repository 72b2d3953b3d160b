"""FTS5 query construction helpers."""

from __future__ import annotations

import re

_OPERATORS = re.compile(r"\b(AND|OR|NOT|NEAR)\b")


def escape_query(text: str) -> str:
    """Escape a string for use inside an FTS5 double-quoted token."""
    return text.replace('"', '""')


def _quote(term: str) -> str:
    return f'"{escape_query(term)}"'


def basic_search(query: str) -> str:
    """All terms must match: ``foo bar`` -> ``"foo" AND "bar"``."""
    return " AND ".join(_quote(term) for term in query.split())


def phrase_search(phrase: str) -> str:
    return _quote(phrase)


def prefix_search(term: str) -> str:
    return f"{_quote(term)}*"


def or_search(terms: list[str]) -> str:
    return " OR ".join(_quote(t) for t in terms if t)


def proximity_search(term1: str, term2: str, distance: int = 10) -> str:
    return f"NEAR({_quote(term1)} {_quote(term2)}, {distance})"


def smart_search(query: str) -> str:
    """Turn free user input into a MATCH expression.

    Quoted input becomes a phrase search, input that already uses boolean
    operators is passed through, anything else is an AND of its terms.
    """
    text = query.strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return phrase_search(text[1:-1])
    if _OPERATORS.search(text):
        return text
    return basic_search(text)


def highlight_snippet(content: str, terms: list[str], max_length: int = 200) -> str:
    """Excerpt around the first matching term, or the head of the content."""
    lowered = content.lower()
    for term in terms:
        index = lowered.find(term.lower())
        if index != -1:
            start = max(0, index - 50)
            end = min(len(content), index + len(term) + 150)
            snippet = content[start:end]
            if start > 0:
                snippet = "..." + snippet
            if end < len(content):
                snippet = snippet + "..."
            return snippet

    return content[:max_length] + ("..." if len(content) > max_length else "")
