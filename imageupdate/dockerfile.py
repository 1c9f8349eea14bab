"""
Line-oriented base image rewriting for Dockerfiles.

Only ``FROM`` lines are looked at. Everything else, including line
endings, is passed through untouched.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

_WHITESPACE_SPLIT = re.compile(r'(\s+)')


@dataclass
class RewriteResult:
    """Rewritten Dockerfile text and the 1-based numbers of changed lines."""
    text: str
    changed_lines: List[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changed_lines)


def image_name(token: str) -> str:
    """
    Strip the tag and digest from an image token.

    Examples:
        base:1.0 -> base
        registry:5000/team/base:1.0 -> registry:5000/team/base
        base@sha256:abc -> base
    """
    token = token.split('@', 1)[0]
    slash = token.rfind('/')
    colon = token.rfind(':')
    if colon > slash:
        return token[:colon]
    return token


def _split_line_ending(line: str):
    stripped = line.rstrip('\r\n')
    return stripped, line[len(stripped):]


def find_image_token(line: str) -> Optional[int]:
    """
    Return the index of the image token in ``line`` split on whitespace.

    The split keeps the separators, so joining the parts gives the
    original line back. Returns None when the line is not a FROM line.
    """
    parts = _WHITESPACE_SPLIT.split(line)
    words = [(i, p) for i, p in enumerate(parts) if p and not p.isspace()]
    if not words or words[0][1].upper() != 'FROM':
        return None
    for index, word in words[1:]:
        if word.startswith('--'):
            continue
        return index
    return None


def rewrite_line(line: str, image: str, tag: str) -> str:
    """Rewrite one line, returning it unchanged when it does not reference ``image``."""
    body, ending = _split_line_ending(line)
    token_index = find_image_token(body)
    if token_index is None:
        return line

    parts = _WHITESPACE_SPLIT.split(body)
    if image_name(parts[token_index]) != image:
        return line

    parts[token_index] = f"{image}:{tag}"
    return ''.join(parts) + ending


def rewrite_dockerfile(text: str, image: str, tag: str) -> RewriteResult:
    """
    Point every ``FROM`` line that uses ``image`` at ``image:tag``.

    ``--platform`` style flags and ``AS <stage>`` suffixes are preserved.

    Args:
        text: Dockerfile contents
        image: Image name without tag
        tag: New tag

    Returns:
        RewriteResult with the new text and which lines changed
    """
    lines = text.splitlines(keepends=True)
    changed = []
    out = []
    for number, line in enumerate(lines, start=1):
        new_line = rewrite_line(line, image, tag)
        if new_line != line:
            changed.append(number)
        out.append(new_line)
    return RewriteResult(text=''.join(out), changed_lines=changed)
