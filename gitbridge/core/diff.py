"""
Line-level diff classification between two text snapshots
"""

import itertools
import re
from typing import List, Optional, Sequence, Tuple, Union

from .models import DiffComputationError, DiffLine, DiffLineType, DiffResult


_LINE_BREAK = re.compile(r"\r\n|\r|\n")

Opcode = Tuple[str, int, int, int, int]


def _as_text(content: Union[str, bytes, None]) -> str:
    if content is None:
        return ""
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    if isinstance(content, str):
        return content
    raise DiffComputationError(f"Cannot diff content of type {type(content).__name__}")


def split_lines(text: str) -> List[str]:
    """Split on \\r\\n, \\r and \\n only; a final line break adds no line"""
    lines = _LINE_BREAK.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def _myers(old: Sequence[str], new: Sequence[str]) -> List[str]:
    """Shortest edit script as a list of "=", "-" and "+" steps

    Myers' O((N+M)D) greedy search. Each round keeps only the band of
    furthest-reaching x values it can touch, which the backtrack replays.
    """
    n, m = len(old), len(new)
    offset = n + m + 1
    v = [0] * (2 * offset + 1)
    trace: List[List[int]] = []

    for d in range(n + m + 1):
        trace.append(v[offset - d - 1:offset + d + 2])
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and v[offset + k - 1] < v[offset + k + 1]):
                x = v[offset + k + 1]
            else:
                x = v[offset + k - 1] + 1
            y = x - k
            while x < n and y < m and old[x] == new[y]:
                x += 1
                y += 1
            v[offset + k] = x
            if x >= n and y >= m:
                return _backtrack(trace, n, m)
    return _backtrack(trace, n, m)


def _backtrack(trace: List[List[int]], n: int, m: int) -> List[str]:
    steps: List[str] = []
    x, y = n, m
    for d in range(len(trace) - 1, -1, -1):
        band = trace[d]
        k = x - y
        # band index of diagonal k is k + d + 1
        if k == -d or (k != d and band[k - 1 + d + 1] < band[k + 1 + d + 1]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = band[prev_k + d + 1]
        prev_y = prev_x - prev_k

        while x > prev_x and y > prev_y:
            steps.append("=")
            x -= 1
            y -= 1
        if d > 0:
            steps.append("+" if x == prev_x else "-")
        x, y = prev_x, prev_y

    steps.reverse()
    return steps


def edit_opcodes(old: Sequence[str], new: Sequence[str]) -> List[Opcode]:
    """Minimal edit script grouped into equal/delete/insert/replace blocks

    Same tuple layout as difflib's get_opcodes: (tag, i1, i2, j1, j2).
    """
    prefix = 0
    while prefix < len(old) and prefix < len(new) and old[prefix] == new[prefix]:
        prefix += 1
    suffix = 0
    while (suffix < len(old) - prefix and suffix < len(new) - prefix
           and old[-1 - suffix] == new[-1 - suffix]):
        suffix += 1

    middle = _myers(old[prefix:len(old) - suffix], new[prefix:len(new) - suffix])
    steps = ["="] * prefix + middle + ["="] * suffix

    opcodes: List[Opcode] = []
    i = j = 0
    for unchanged, group in itertools.groupby(steps, key=lambda step: step == "="):
        group = list(group)
        if unchanged:
            opcodes.append(("equal", i, i + len(group), j, j + len(group)))
            i += len(group)
            j += len(group)
            continue
        deleted = group.count("-")
        inserted = group.count("+")
        if deleted and inserted:
            tag = "replace"
        else:
            tag = "delete" if deleted else "insert"
        opcodes.append((tag, i, i + deleted, j, j + inserted))
        i += deleted
        j += inserted
    return opcodes


class DiffEngine:
    """Classifies a longest-common-subsequence edit script into
    Unchanged/Added/Deleted/Modified

    A deletion paired positionally with an insertion inside one replaced
    block is Modified and counts on both sides. Old and new line numbers
    start at 1 and advance only on the side where the line exists.
    """

    def compute_diff(self, old_content: Union[str, bytes, None],
                     new_content: Union[str, bytes, None]) -> DiffResult:
        old_text = _as_text(old_content)
        new_text = _as_text(new_content)
        old_lines = split_lines(old_text)
        new_lines = split_lines(new_text)

        lines: List[DiffLine] = []
        old_no = 1
        new_no = 1

        for tag, i1, i2, j1, j2 in edit_opcodes(old_lines, new_lines):
            if tag == "equal":
                for text in old_lines[i1:i2]:
                    lines.append(DiffLine(DiffLineType.UNCHANGED, text, old_no, new_no))
                    old_no += 1
                    new_no += 1
            elif tag == "delete":
                for text in old_lines[i1:i2]:
                    lines.append(DiffLine(DiffLineType.DELETED, text, old_line_number=old_no))
                    old_no += 1
            elif tag == "insert":
                for text in new_lines[j1:j2]:
                    lines.append(DiffLine(DiffLineType.ADDED, text, new_line_number=new_no))
                    new_no += 1
            else:
                removed = old_lines[i1:i2]
                inserted = new_lines[j1:j2]
                paired = min(len(removed), len(inserted))
                for old_text_line, new_text_line in zip(removed[:paired], inserted[:paired]):
                    lines.append(DiffLine(DiffLineType.MODIFIED, new_text_line, old_no, new_no,
                                          old_content=old_text_line))
                    old_no += 1
                    new_no += 1
                for text in removed[paired:]:
                    lines.append(DiffLine(DiffLineType.DELETED, text, old_line_number=old_no))
                    old_no += 1
                for text in inserted[paired:]:
                    lines.append(DiffLine(DiffLineType.ADDED, text, new_line_number=new_no))
                    new_no += 1

        added = sum(1 for line in lines if line.type in (DiffLineType.ADDED, DiffLineType.MODIFIED))
        deleted = sum(1 for line in lines if line.type in (DiffLineType.DELETED, DiffLineType.MODIFIED))

        return DiffResult(
            old_content=old_text,
            new_content=new_text,
            lines=tuple(lines),
            added_lines=added,
            deleted_lines=deleted,
        )


def compute_diff(old_content: Optional[str], new_content: Optional[str]) -> DiffResult:
    """Module-level shortcut for DiffEngine().compute_diff"""
    return DiffEngine().compute_diff(old_content, new_content)
