"""
Text Helpers
============

Small bracket- and string-aware scanners shared by the codec, the
detector and the rewriter. They work on raw source text; nothing here
builds a syntax tree.
"""

import io
import os
import re
import tokenize
from typing import List, Set

from tailrec.errors import MalformedSourceError, UnrecognizedFunctionFormat

_OPENERS = {'(': ')', '[': ']', '{': '}'}
_CLOSERS = frozenset(')]}')
_QUOTES = frozenset('\'"')

_PARAMETER = re.compile(r'\A(\*{0,2})[ \t]*([A-Za-z_]\w*)')

# Token types that open and close a multi-token string (f-strings on 3.12+,
# t-strings on 3.14+).
_STRING_STARTS = frozenset(
    getattr(tokenize, name) for name in ('FSTRING_START', 'TSTRING_START')
    if hasattr(tokenize, name)
)
_STRING_ENDS = frozenset(
    getattr(tokenize, name) for name in ('FSTRING_END', 'TSTRING_END')
    if hasattr(tokenize, name)
)
_LAYOUT_TOKENS = frozenset({
    tokenize.NL, tokenize.COMMENT, tokenize.INDENT, tokenize.DEDENT,
    tokenize.ENCODING, tokenize.ENDMARKER,
})


def skip_string(text: str, index: int) -> int:
    """Return the index just past the string literal starting at *index*."""
    quote = text[index]
    delimiter = quote * 3 if text.startswith(quote * 3, index) else quote
    i = index + len(delimiter)
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '\\':
            i += 2
            continue
        if text.startswith(delimiter, i):
            return i + len(delimiter)
        if ch == '\n' and len(delimiter) == 1:
            # Unterminated single-quoted literal; stop at the line end.
            return i + 1
        i += 1
    return n


def find_closing(text: str, open_index: int) -> int:
    """
    Index of the bracket that closes ``text[open_index]``, or -1.

    Brackets inside quoted strings are ignored; mismatched bracket kinds
    end the scan with -1.
    """
    stack: List[str] = []
    i = open_index
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            i = skip_string(text, i)
            continue
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if not stack or stack.pop() != ch:
                return -1
            if not stack:
                return i
        i += 1
    return -1


def is_balanced(text: str) -> bool:
    """True when every bracket in *text* is closed in the right order."""
    stack: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            i = skip_string(text, i)
            continue
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in _CLOSERS:
            if not stack or stack.pop() != ch:
                return False
        i += 1
    return not stack


def split_top_level(text: str) -> List[str]:
    """
    Split a parameter or argument list on commas outside brackets.

    Surrounding whitespace is stripped from every item and a trailing
    comma is tolerated, so ``"a, f(b, c), "`` gives ``['a', 'f(b, c)']``.
    """
    parts: List[str] = []
    depth = 0
    start = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            i = skip_string(text, i)
            continue
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        elif ch == ',' and depth == 0:
            parts.append(text[start:i].strip())
            start = i + 1
        i += 1
    tail = text[start:].strip()
    if tail:
        parts.append(tail)
    return parts


def parse_parameters(params_text: str) -> List[str]:
    """
    Parameter names of a ``def`` parameter list, in declaration order.

    Annotations and defaults are dropped. Variadic parameters keep their
    ``*``/``**`` prefix; the bare ``/`` and ``*`` markers are skipped.
    """
    names = []
    for part in split_top_level(params_text):
        if part in ('/', '*'):
            continue
        match = _PARAMETER.match(part)
        if match is None:
            raise UnrecognizedFunctionFormat(f"Unrecognized parameter: {part!r}")
        names.append(match.group(1) + match.group(2))
    return names


def signature_parameters(head_text: str) -> List[str]:
    """Parameter names of a ``def NAME(PARAMS):`` head."""
    open_index = head_text.find('(')
    close_index = find_closing(head_text, open_index) if open_index >= 0 else -1
    if close_index < 0:
        raise UnrecognizedFunctionFormat(f"No parameter list in head: {head_text!r}")
    return parse_parameters(head_text[open_index + 1:close_index])


def string_continuation_rows(text: str) -> Set[int]:
    """1-based line numbers that continue a multi-line string literal."""
    rows: Set[int] = set()
    opened: List[int] = []
    try:
        for tok in tokenize.generate_tokens(io.StringIO(text).readline):
            if tok.type == tokenize.STRING and tok.end[0] > tok.start[0]:
                rows.update(range(tok.start[0] + 1, tok.end[0] + 1))
            elif tok.type in _STRING_STARTS:
                opened.append(tok.start[0])
            elif tok.type in _STRING_ENDS and opened:
                start_row = opened.pop()
                rows.update(range(start_row + 1, tok.end[0] + 1))
    except (tokenize.TokenError, SyntaxError) as exc:
        raise MalformedSourceError(f"Cannot tokenize source: {exc}") from exc
    return rows


def logical_line_starts(text: str) -> Set[int]:
    """
    1-based line numbers on which a logical line begins.

    Continuation lines of strings, brackets and backslashes are left out,
    as are blank and comment-only lines.
    """
    starts: Set[int] = set()
    at_start = True
    try:
        for tok in tokenize.generate_tokens(io.StringIO(text).readline):
            if tok.type == tokenize.NEWLINE:
                at_start = True
            elif tok.type in _LAYOUT_TOKENS:
                continue
            elif at_start:
                starts.add(tok.start[0])
                at_start = False
    except (tokenize.TokenError, SyntaxError) as exc:
        raise MalformedSourceError(f"Cannot tokenize source: {exc}") from exc
    return starts


def indent_lines(text: str, prefix: str) -> str:
    """
    Prefix every non-blank line of *text* with *prefix*.

    Unlike ``textwrap.indent`` this leaves the continuation lines of
    multi-line string literals alone, so their values do not change.
    """
    skip = string_continuation_rows(text)
    lines = text.splitlines(keepends=True)
    out = []
    for row, line in enumerate(lines, start=1):
        if row in skip or not line.strip():
            out.append(line)
        else:
            out.append(prefix + line)
    return ''.join(out)


def dedent_lines(text: str) -> str:
    """
    Remove the leading whitespace common to every line of *text*.

    The counterpart of ``indent_lines``: continuation lines of multi-line
    string literals are neither measured nor changed. Whitespace-only
    lines are reduced to their line break, as ``textwrap.dedent`` does.
    """
    skip = string_continuation_rows(text)
    lines = text.splitlines(keepends=True)
    margins = [
        line[:len(line) - len(line.lstrip(' \t'))]
        for row, line in enumerate(lines, start=1)
        if row not in skip and line.strip()
    ]
    margin = os.path.commonprefix(margins) if margins else ''
    out = []
    for row, line in enumerate(lines, start=1):
        if row in skip:
            out.append(line)
        elif not line.strip():
            out.append(line[len(line.rstrip('\r\n')):])
        else:
            out.append(line[len(margin):])
    return ''.join(out)


def indent_unit(text: str) -> str:
    """One level of indentation in the style *text* already uses."""
    for line in text.splitlines():
        stripped = line.lstrip(' \t')
        if stripped and stripped != line:
            return '\t' if line.startswith('\t') else '    '
    return '    '


def indent_width(line: str) -> int:
    """Column of the first non-blank character, tabs expanded."""
    stripped = line.lstrip(' \t')
    return len(line[:len(line) - len(stripped)].expandtabs())


def mentions(text: str, name: str) -> bool:
    """True when *name* occurs in *text* as a whole identifier."""
    return re.search(r'(?<![\w.])' + re.escape(name) + r'\b', text) is not None
