from __future__ import annotations

import re

HALF_WIDTH_SPACE = " "
FULL_WIDTH_SPACE = "　"
SPACE_ALTERNATION = f"({HALF_WIDTH_SPACE}|{FULL_WIDTH_SPACE})"

_SPACE_PATTERN = re.compile(f"[{HALF_WIDTH_SPACE}{FULL_WIDTH_SPACE}]")


def keyword_query_pattern(keyword: str) -> str:
    """Whole-query regex for ``keyword`` where either space width matches.

    The expression is sent to Search Console as-is (RE2 syntax), so other
    metacharacters in the keyword are not escaped.
    """
    body = _SPACE_PATTERN.sub(SPACE_ALTERNATION, keyword.strip())
    return f"^{body}$"
