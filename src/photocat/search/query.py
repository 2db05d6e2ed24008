"""
PhotoCat - Query Parsing
"""
import re
from typing import List, Tuple

_TERM = re.compile(r'"([^"]*)"?|(\S+)')


def parse_query(text: str) -> List[str]:
    """
    Split a search string into terms.

    Whitespace separates terms; a double-quoted span is one term with the
    quotes removed. An unclosed quote runs to the end of the string.
    Empty terms are dropped.

    >>> parse_query('sunset "new york" beach')
    ['sunset', 'new york', 'beach']
    """
    terms = []
    for quoted, bare in _TERM.findall(text or ""):
        term = (quoted if quoted else bare).strip()
        if term:
            terms.append(term)
    return terms


def split_live_token(text: str) -> Tuple[List[str], str]:
    """
    Split autocomplete input into (completed tokens, token being typed).

    The live token is empty when the input ends with whitespace.
    """
    text = text or ""
    tokens = text.split()
    if not tokens or text[-1].isspace():
        return tokens, ""
    return tokens[:-1], tokens[-1]
