"""
Mapping of artifact file names onto the three named columns of a meeting.
"""
import os
from typing import Callable, Optional

# Conventional draft names, in generation order
FUNCTIONAL_DOC_NAME = "FunctionalDoc.txt"
MOCKUPS_NAME = "Mockups.txt"
MARKDOWN_NAME = "Markdown.md"
ARTIFACT_NAMES = (FUNCTIONAL_DOC_NAME, MOCKUPS_NAME, MARKDOWN_NAME)

# stem (lower-case, no extension) -> MeetingRecord column
ARTIFACT_SLOTS = {
    "functionaldoc": "functional_doc",
    "mockups": "mockups",
    "markdown": "markdown",
}

SlotMatcher = Callable[[str], Optional[str]]


def match_artifact_slot(name: str) -> Optional[str]:
    """
    Resolve a file name to its artifact column.

    "FunctionalDoc.txt", "functionaldoc.md" and "FUNCTIONALDOC" all map to
    ``functional_doc``. Unknown names map to None.
    """
    if not name:
        return None
    stem, _ = os.path.splitext(name.strip())
    return ARTIFACT_SLOTS.get(stem.lower())
