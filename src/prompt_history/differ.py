"""
Text differ for prompt versions.

Compares the prompt files of two versions line by line and renders the
result as a unified (one pane) or side-by-side (two pane) diff.
"""

import difflib
from dataclasses import dataclass

NO_NEWLINE_MARKER = "\\ No newline at end of file"


@dataclass
class DiffResult:
    """Result of comparing two prompt versions."""
    from_version: str
    to_version: str
    added_lines: int
    removed_lines: int
    similarity: float  # 0.0 to 1.0

    @property
    def has_changes(self) -> bool:
        return bool(self.added_lines or self.removed_lines)

    @property
    def summary(self) -> dict:
        return {
            'from': self.from_version,
            'to': self.to_version,
            'added': self.added_lines,
            'removed': self.removed_lines,
            'similarity': self.similarity,
        }


def compute_similarity(old_text: str, new_text: str) -> float:
    """Compute similarity ratio between two texts."""
    if not old_text and not new_text:
        return 1.0
    if not old_text or not new_text:
        return 0.0
    return difflib.SequenceMatcher(None, old_text, new_text).ratio()


def diff_versions(
    old_text: str,
    new_text: str,
    from_version: str,
    to_version: str,
) -> DiffResult:
    """
    Compare the prompts of two versions.

    Args:
        old_text: Prompt text of the older version
        new_text: Prompt text of the newer version
        from_version: Label for the older version
        to_version: Label for the newer version
    """
    added = removed = 0
    for line in difflib.ndiff(old_text.splitlines(), new_text.splitlines()):
        if line.startswith('+ '):
            added += 1
        elif line.startswith('- '):
            removed += 1

    return DiffResult(
        from_version=from_version,
        to_version=to_version,
        added_lines=added,
        removed_lines=removed,
        similarity=compute_similarity(old_text, new_text),
    )


def format_unified_diff(
    old_text: str,
    new_text: str,
    old_path: str = "old",
    new_path: str = "new",
    context_lines: int = 3,
) -> str:
    """
    Generate a unified diff string.

    A last line without a trailing newline is marked the way diff(1)
    does, with ``\\ No newline at end of file``.
    """
    old_lines = old_text.splitlines(keepends=True)
    new_lines = new_text.splitlines(keepends=True)

    diff = difflib.unified_diff(
        old_lines,
        new_lines,
        fromfile=old_path,
        tofile=new_path,
        n=context_lines,
    )
    output = []
    for line in diff:
        if line.endswith('\n'):
            output.append(line)
        else:
            output.append(line + '\n' + NO_NEWLINE_MARKER + '\n')
    return ''.join(output)


def format_side_by_side_diff(
    old_text: str,
    new_text: str,
    width: int = 80,
) -> list[tuple[str, str, str]]:
    """
    Generate side-by-side diff.

    Returns list of (marker, old_line, new_line) tuples.
    Marker is one of: ' ' (same), '<' (removed), '>' (added), '|' (modified)
    """
    old_lines = old_text.splitlines()
    new_lines = new_text.splitlines()

    matcher = difflib.SequenceMatcher(None, old_lines, new_lines)
    result = []

    half_width = (width - 3) // 2

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == 'equal':
            for i in range(i1, i2):
                result.append((' ', old_lines[i][:half_width], new_lines[j1 + (i - i1)][:half_width]))
        elif tag == 'replace':
            for k in range(max(i2 - i1, j2 - j1)):
                old_line = old_lines[i1 + k][:half_width] if i1 + k < i2 else ''
                new_line = new_lines[j1 + k][:half_width] if j1 + k < j2 else ''
                result.append(('|', old_line, new_line))
        elif tag == 'delete':
            for i in range(i1, i2):
                result.append(('<', old_lines[i][:half_width], ''))
        elif tag == 'insert':
            for j in range(j1, j2):
                result.append(('>', '', new_lines[j][:half_width]))

    return result
