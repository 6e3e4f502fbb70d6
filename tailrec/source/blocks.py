"""
Block Scanner
=============

Finds every indented suite in a function body.

A Python block is delimited by indentation rather than braces, so the
scanner walks the stdlib ``tokenize`` stream: an ``INDENT`` opens a suite,
the matching ``DEDENT`` closes it and emits a ``Block``. Blocks therefore
come out in the order they close, which puts every nested suite before
the suite that contains it. That is the order the loop rewriter needs:
unrolling a block shifts all later offsets, so inner blocks are rewritten
first and the body is rescanned after each rewrite.
"""

import io
import tokenize
from dataclasses import dataclass
from typing import List, Tuple

from tailrec.errors import MalformedSourceError


@dataclass(frozen=True)
class Block:
    """
    Span of one indented suite inside a body string.

    ``start`` is the offset of the suite's first statement line and
    ``end`` the offset just past its last logical line, so
    ``text[start:end]`` is the suite and ``text[end:]`` begins with the
    statement that follows it.
    """
    start: int
    end: int
    indent: str

    def slice(self, text: str) -> str:
        return text[self.start:self.end]


def _line_offsets(text: str) -> List[int]:
    offsets = [0]
    for line in text.splitlines(keepends=True):
        offsets.append(offsets[-1] + len(line))
    return offsets


def _offset(offsets: List[int], position: Tuple[int, int], limit: int) -> int:
    row, col = position
    if row - 1 >= len(offsets):
        return limit
    return min(offsets[row - 1] + col, limit)


def find_blocks(body_text: str) -> List[Block]:
    """
    Return every indented suite of *body_text*, innermost first.

    Raises:
        MalformedSourceError: if the text cannot be tokenized (inconsistent
            dedent, unterminated bracket or string).
    """
    offsets = _line_offsets(body_text)
    limit = len(body_text)
    blocks: List[Block] = []
    open_suites: List[Tuple[int, str]] = []
    last_line_end = 0

    try:
        for tok in tokenize.generate_tokens(io.StringIO(body_text).readline):
            if tok.type == tokenize.INDENT:
                open_suites.append((_offset(offsets, (tok.start[0], 0), limit), tok.string))
            elif tok.type == tokenize.DEDENT:
                if not open_suites:
                    raise MalformedSourceError("Dedent without a matching indent")
                start, indent = open_suites.pop()
                blocks.append(Block(start, last_line_end, indent))
            elif tok.type == tokenize.NEWLINE:
                last_line_end = _offset(offsets, tok.end, limit)
    except (tokenize.TokenError, SyntaxError) as exc:
        raise MalformedSourceError(f"Cannot split source into blocks: {exc}") from exc

    if open_suites:
        raise MalformedSourceError("Unclosed indented block")
    return blocks
