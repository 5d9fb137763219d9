"""Deterministic repair of common defects in generated SQL scripts."""

from __future__ import annotations

import re

TERMINATOR = ";"

TRAILING_COMMA_RE = re.compile(r",(?:\s*,)*(\s*);")
STATEMENT_SPLIT_RE = re.compile(r";\s*[\r\n]+")


def auto_correct_sql(sql: str) -> str:
    """Repair a raw script body into a well-terminated, normalized script.

    The steps run in a fixed order:

    1. Trim surrounding whitespace; empty input maps to ``""``.
    2. Append a terminating ``;`` when missing.
    3. Collapse a run of dangling commas before a terminator (``VALUES (...),,;``).
    4. When there are more ``(`` than ``)``, insert the missing closers right
       before the last ``;``. Surplus closers are left alone.
    5. Split into statements on ``;`` followed by a line break, trim them,
       drop empty ones and make sure each one ends with ``;``.
    6. Join statements with a blank line and end with a single newline.

    The result is a fixed point: ``auto_correct_sql(auto_correct_sql(s))``
    equals ``auto_correct_sql(s)``.

    Args:
        sql: Raw script body, already stripped of Markdown code fences.

    Returns:
        The corrected script body.
    """
    corrected = sql.strip()
    if not corrected:
        return ""

    if not corrected.endswith(TERMINATOR):
        corrected += TERMINATOR

    corrected = TRAILING_COMMA_RE.sub(r"\1" + TERMINATOR, corrected)

    missing_closers = corrected.count("(") - corrected.count(")")
    if missing_closers > 0:
        last_terminator = corrected.rfind(TERMINATOR)
        corrected = corrected[:last_terminator] + ")" * missing_closers + corrected[last_terminator:]

    statements = []
    for statement in STATEMENT_SPLIT_RE.split(corrected):
        statement = statement.strip()
        if not statement:
            continue
        if not statement.endswith(TERMINATOR):
            statement += TERMINATOR
        statements.append(statement)

    return "\n\n".join(statements) + "\n"
