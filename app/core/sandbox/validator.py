import re
from dataclasses import dataclass
from typing import Optional

# -----------------------------------------------------------------------------
# VALIDATOR - Lexical safety gate
# Purpose: reject learner SQL that is not a single read-only statement before
# it ever reaches a connection pool.
# This is a textual filter, not a parser. The real isolation boundary is the
# learner role's privileges; this only catches the obvious cases early.
# -----------------------------------------------------------------------------

ALLOWED_PREFIXES = ("SELECT", "WITH", "EXPLAIN")

BLOCKED_KEYWORDS = [
    "INSERT",
    "UPDATE",
    "DELETE",
    "DROP",
    "ALTER",
    "CREATE",
    "TRUNCATE",
    "GRANT",
    "REVOKE",
    "COPY",
    "EXECUTE",
    "CALL",
    "SET",
    "RESET",
    "BEGIN",
    "COMMIT",
    "ROLLBACK",
]

_BLOCKED_PATTERNS = [
    (keyword, re.compile(rf"\b{keyword}\b", re.IGNORECASE)) for keyword in BLOCKED_KEYWORDS
]
_FIRST_WORD = re.compile(r"[A-Za-z_]+")

EMPTY_QUERY = "Query cannot be empty."
PREFIX_NOT_ALLOWED = (
    "Only SELECT queries are allowed. "
    "Your query must start with SELECT, WITH or EXPLAIN."
)
MULTIPLE_STATEMENTS = "Only a single SQL statement is allowed per execution."


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    reason: Optional[str] = None


def strip_leading_comments(query: str) -> str:
    """
    Drop leading whitespace, "--" line comments and "/* */" block comments
    until the first real token. An unterminated comment swallows the rest.
    """
    head = query.lstrip()
    while True:
        if head.startswith("--"):
            newline = head.find("\n")
            head = "" if newline == -1 else head[newline + 1 :].lstrip()
        elif head.startswith("/*"):
            end = head.find("*/", 2)
            head = "" if end == -1 else head[end + 2 :].lstrip()
        else:
            return head


def prefix_error(head: str) -> str:
    word = _FIRST_WORD.match(head)
    if word is None:
        return PREFIX_NOT_ALLOWED
    return (
        "Only SELECT queries are allowed. "
        f"Your query must start with SELECT, WITH or EXPLAIN, not {word.group(0)}."
    )


def find_blocked_keyword(query: str) -> Optional[str]:
    """First blocklisted keyword appearing as a whole word anywhere in the text."""
    for keyword, pattern in _BLOCKED_PATTERNS:
        if pattern.search(query):
            return keyword
    return None


def count_statements(query: str) -> int:
    return len([fragment for fragment in query.split(";") if fragment.strip()])


def validate_query(query: str) -> ValidationOutcome:
    if not query.strip():
        return ValidationOutcome(False, EMPTY_QUERY)

    # The comment-stripped head is only used for the prefix check
    head = strip_leading_comments(query).upper()
    if not head.startswith(ALLOWED_PREFIXES):
        return ValidationOutcome(False, prefix_error(head))

    # Keyword scan and statement split look at the original text
    keyword = find_blocked_keyword(query)
    if keyword is not None:
        return ValidationOutcome(
            False,
            f'The keyword "{keyword}" is not allowed in learner queries. '
            "Only SELECT queries are permitted.",
        )

    if count_statements(query) > 1:
        return ValidationOutcome(False, MULTIPLE_STATEMENTS)

    return ValidationOutcome(True)
