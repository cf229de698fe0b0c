"""
Two-tier text diff: lines first, words within changed lines.

The default alignment is positional: element i of one side is compared
with element i of the other, and no insertion or deletion shifting is
detected. This keeps output predictable for short prompt fields.
An edit-distance alignment (difflib) is available as an explicit
strategy and produces records of the same shape.
"""

from __future__ import annotations

import difflib
import re
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from abtest.app.schemas.changes import ContentChange
from abtest.app.schemas.text_diff import DiffKind, LineDiffRecord, WordDiffRecord


_WHITESPACE_RUN = re.compile(r"(\s+)")

EMPTY_CONTENT_PLACEHOLDER = "(empty)"


class DiffStrategy(str, Enum):
    POSITIONAL = "positional"
    EDIT_DISTANCE = "edit_distance"


LineDiff = Tuple[List[LineDiffRecord], List[LineDiffRecord]]
WordDiff = Tuple[List[WordDiffRecord], List[WordDiffRecord]]


# ----------------------------------------------------------------------
# Tokenization
# ----------------------------------------------------------------------

def split_lines(text: str) -> List[str]:
    # A trailing newline yields a trailing empty line.
    return text.split("\n")


def split_words(line: str) -> List[str]:
    """
    Split on whitespace runs, keeping the runs as tokens.

    "".join(split_words(line)) == line for every line.
    """
    return _WHITESPACE_RUN.split(line)


# ----------------------------------------------------------------------
# Word level
# ----------------------------------------------------------------------

def word_diff(
    line_a: str,
    line_b: str,
    strategy: DiffStrategy = DiffStrategy.POSITIONAL,
) -> WordDiff:
    """
    Diff two lines token by token.

    Unequal tokens are marked REMOVED on A and ADDED on B. There are no
    placeholders at word level, so the sides may differ in length.
    """
    words_a = split_words(line_a)
    words_b = split_words(line_b)

    if strategy == DiffStrategy.EDIT_DISTANCE:
        return _word_diff_edit_distance(words_a, words_b)

    diff_a: List[WordDiffRecord] = []
    diff_b: List[WordDiffRecord] = []

    for i in range(max(len(words_a), len(words_b))):
        word_a = words_a[i] if i < len(words_a) else None
        word_b = words_b[i] if i < len(words_b) else None

        if word_a is None:
            diff_b.append(WordDiffRecord(text=word_b, kind=DiffKind.ADDED))
        elif word_b is None:
            diff_a.append(WordDiffRecord(text=word_a, kind=DiffKind.REMOVED))
        elif word_a == word_b:
            diff_a.append(WordDiffRecord(text=word_a, kind=DiffKind.SAME))
            diff_b.append(WordDiffRecord(text=word_b, kind=DiffKind.SAME))
        else:
            diff_a.append(WordDiffRecord(text=word_a, kind=DiffKind.REMOVED))
            diff_b.append(WordDiffRecord(text=word_b, kind=DiffKind.ADDED))

    return diff_a, diff_b


def _word_diff_edit_distance(
    words_a: Sequence[str],
    words_b: Sequence[str],
) -> WordDiff:
    diff_a: List[WordDiffRecord] = []
    diff_b: List[WordDiffRecord] = []

    matcher = difflib.SequenceMatcher(a=words_a, b=words_b, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            diff_a.extend(
                WordDiffRecord(text=w, kind=DiffKind.SAME) for w in words_a[i1:i2]
            )
            diff_b.extend(
                WordDiffRecord(text=w, kind=DiffKind.SAME) for w in words_b[j1:j2]
            )
            continue

        diff_a.extend(
            WordDiffRecord(text=w, kind=DiffKind.REMOVED) for w in words_a[i1:i2]
        )
        diff_b.extend(
            WordDiffRecord(text=w, kind=DiffKind.ADDED) for w in words_b[j1:j2]
        )

    return diff_a, diff_b


# ----------------------------------------------------------------------
# Line level
# ----------------------------------------------------------------------

def line_diff(
    text_a: str,
    text_b: str,
    strategy: DiffStrategy = DiffStrategy.POSITIONAL,
) -> LineDiff:
    """
    Diff two texts line by line.

    Both returned sequences have the same length. Lines present on one
    side only are paired with an EMPTY placeholder on the other; unequal
    paired lines are CHANGED and carry their side of the word diff.
    """
    lines_a = split_lines(text_a)
    lines_b = split_lines(text_b)

    if strategy == DiffStrategy.EDIT_DISTANCE:
        return _line_diff_edit_distance(lines_a, lines_b)

    result_a: List[LineDiffRecord] = []
    result_b: List[LineDiffRecord] = []

    for i in range(max(len(lines_a), len(lines_b))):
        _append_pair(
            result_a,
            result_b,
            lines_a[i] if i < len(lines_a) else None,
            lines_b[i] if i < len(lines_b) else None,
            strategy,
        )

    return result_a, result_b


def _line_diff_edit_distance(
    lines_a: Sequence[str],
    lines_b: Sequence[str],
) -> LineDiff:
    result_a: List[LineDiffRecord] = []
    result_b: List[LineDiffRecord] = []

    matcher = difflib.SequenceMatcher(a=lines_a, b=lines_b, autojunk=False)
    for _tag, i1, i2, j1, j2 in matcher.get_opcodes():
        # equal and replace runs pair up positionally; delete and insert
        # runs have one empty side
        block_a = lines_a[i1:i2]
        block_b = lines_b[j1:j2]
        for k in range(max(len(block_a), len(block_b))):
            _append_pair(
                result_a,
                result_b,
                block_a[k] if k < len(block_a) else None,
                block_b[k] if k < len(block_b) else None,
                DiffStrategy.EDIT_DISTANCE,
            )

    return result_a, result_b


def _append_pair(
    result_a: List[LineDiffRecord],
    result_b: List[LineDiffRecord],
    line_a: Optional[str],
    line_b: Optional[str],
    strategy: DiffStrategy,
) -> None:
    if line_a is None:
        result_a.append(LineDiffRecord(text="", kind=DiffKind.EMPTY))
        result_b.append(LineDiffRecord(text=line_b, kind=DiffKind.ADDED))
    elif line_b is None:
        result_a.append(LineDiffRecord(text=line_a, kind=DiffKind.REMOVED))
        result_b.append(LineDiffRecord(text="", kind=DiffKind.EMPTY))
    elif line_a == line_b:
        result_a.append(LineDiffRecord(text=line_a, kind=DiffKind.SAME))
        result_b.append(LineDiffRecord(text=line_b, kind=DiffKind.SAME))
    else:
        words_a, words_b = word_diff(line_a, line_b, strategy)
        result_a.append(
            LineDiffRecord(text=line_a, kind=DiffKind.CHANGED, words=words_a)
        )
        result_b.append(
            LineDiffRecord(text=line_b, kind=DiffKind.CHANGED, words=words_b)
        )


# ----------------------------------------------------------------------
# Detailed view of a content change
# ----------------------------------------------------------------------

def compare_change(
    change: ContentChange,
    strategy: DiffStrategy = DiffStrategy.POSITIONAL,
) -> LineDiff:
    """
    Line/word diff of a content-changed record.

    Missing or empty content is shown as "(empty)".
    """
    return line_diff(
        change.content_a or EMPTY_CONTENT_PLACEHOLDER,
        change.content_b or EMPTY_CONTENT_PLACEHOLDER,
        strategy,
    )
