from __future__ import annotations

import re
import unicodedata

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_TRAILING_ROMAN_RE = re.compile(
    r"^(?:i|ii|iii|iv|v|vi|vii|viii|ix|x|xi|xii|xiii|xiv|xv|xvi|xvii|xviii|xix|xx)$"
)


def normalize_query(value: str | None) -> str:
    """
    Canonical form of a search string or a catalog title.

    - lowercase, accents folded ("Pokémon" -> "pokemon")
    - '&' becomes the word 'and'
    - every run of non-alphanumeric characters collapses to a single space
    - trimmed

    The output is a fixed point: normalize_query(normalize_query(s)) == normalize_query(s).
    """
    s = str(value or "").lower()
    if not s.strip():
        return ""
    s = "".join(ch for ch in unicodedata.normalize("NFKD", s) if not unicodedata.combining(ch))
    s = s.replace("&", " and ")
    return _NON_ALNUM_RE.sub(" ", s).strip()


def tokenize(canonical: str) -> list[str]:
    return [t for t in canonical.split(" ") if t]


def _is_sequel_marker(token: str) -> bool:
    return token.isdigit() or bool(_TRAILING_ROMAN_RE.match(token))


def loose_query(canonical: str) -> str:
    """
    Drop a trailing sequel number or roman numeral ("final fantasy vii" -> "final fantasy").

    Single-token queries are returned unchanged so "doom" never becomes empty.
    """
    tokens = tokenize(canonical)
    if len(tokens) > 1 and _is_sequel_marker(tokens[-1]):
        tokens = tokens[:-1]
    return " ".join(tokens) or canonical
