"""
Issue reference extraction for pull request text.

Recognises bare ``#123`` references as well as the closing keywords GitHub
understands (``fixes #123``, ``closes #123``, ``resolves #123`` and their
singular forms), in any letter case.
"""

import re
from typing import List, Optional

ISSUE_REFERENCE_PATTERN = re.compile(r"(?:\b(?:fix(?:es)?|close[s]?|resolve[s]?)\s+)?#(\d+)", re.IGNORECASE)


def extract_issue_numbers(text: Optional[str]) -> List[int]:
    """
    Return the issue numbers referenced in ``text``, in order of first appearance.

    Duplicates are kept. ``#0`` is not a valid issue and is dropped.
    """
    if not text:
        return []

    numbers = []
    for match in ISSUE_REFERENCE_PATTERN.finditer(text):
        number = int(match.group(1))
        if number > 0:
            numbers.append(number)
    return numbers


def pull_request_text(pull_request: dict) -> str:
    """Title and body of a pull request payload joined for reference scanning."""
    title = pull_request.get("title") or ""
    body = pull_request.get("body") or ""
    return f"{title} {body}"
