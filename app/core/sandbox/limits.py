import re

_TRAILING_SEMICOLON = re.compile(r"\s*;\s*$")


def apply_limit(query: str, cap: int) -> str:
    """
    Append "LIMIT <cap>" unless the query already mentions LIMIT somewhere.

    Best effort only: a LIMIT inside a subquery counts as present. The
    executor still fetches at most `cap` rows either way.
    """
    if "LIMIT" in query.strip().upper():
        return query
    cleaned = _TRAILING_SEMICOLON.sub("", query, count=1)
    return f"{cleaned} LIMIT {cap}"
