"""Advisory lint checks for generated SQL scripts."""

from __future__ import annotations

import re

UNBALANCED_PARENTHESES = "Unbalanced parentheses: opening and closing counts do not match."

DEPRECATED_CODE_LOOKUP_RE = re.compile(
    r"select\s+id\s+from\s+entidades\s+where\s+codigo\s*=",
    re.IGNORECASE,
)


def validate_sql(sql: str) -> list[str]:
    """Scan a script body and report structural and lint defects.

    The checks are heuristic and never modify the input:

    - a running ``(``/``)`` balance across the whole document, reported once
      when it is nonzero at the end (net count only, so ``")("`` passes);
    - an odd number of single quotes on a line, which usually means an
      unterminated literal;
    - relation subqueries that look entities up by ``codigo`` instead of the
      temporary ``temp_id`` column.

    Returns:
        Defect messages in first-occurrence order without duplicates. An empty
        list means nothing was detected, not that the script is correct.
    """
    if not sql:
        return []

    errors: list[str] = []
    balance = 0

    for line_no, line in enumerate(sql.split("\n"), start=1):
        balance += line.count("(") - line.count(")")

        if line.count("'") % 2 != 0:
            errors.append(f"Possibly unterminated quoted literal on line {line_no}.")

        if DEPRECATED_CODE_LOOKUP_RE.search(line):
            errors.append(
                f"Deprecated code-based lookup on line {line_no}: "
                "use temp_id instead of codigo in the subquery."
            )

    if balance != 0:
        errors.append(UNBALANCED_PARENTHESES)

    return list(dict.fromkeys(errors))
