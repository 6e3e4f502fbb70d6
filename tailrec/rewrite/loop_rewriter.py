"""
Loop Rewriter
=============

Turns one tail-called function definition at a time into a loop, and
repeats until no tail-called definition is left (fixpoint).

A single pass scans the body's blocks innermost first. The first block
that ``match_tail_form`` recognizes is rewritten::

    def go(i, acc):                 i_new = 0
        if i == n:                  acc_new = 1
            return acc              i = i_new
        return go(i + 1, acc * 2)   acc = acc_new
    return go(0, 1)                 while True:
                                        if i == n:
                                            return acc
                                        i_new = i + 1
                                        acc_new = acc * 2
                                        i = i_new
                                        acc = acc_new
                                        continue
                                        return None

Every parameter is first computed into its ``_new`` temporary from the
old bindings and only then assigned, which mirrors call-by-value
argument evaluation. Splicing the new text shifts every later offset, so
a pass stops after one rewrite and the next pass rescans.

Python has no loop labels. A tail call whose ``continue`` would bind to a
nested ``for``/``while``, or that sits inside ``try``/``with`` (where a
loop would move the next call outside the handler), is left as an
ordinary call.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from tailrec.errors import NameCollisionError, TailRecError, UnrecognizedFunctionFormat
from tailrec.source.blocks import Block, find_blocks
from tailrec.source.text import (
    find_closing, indent_width, logical_line_starts, mentions, parse_parameters,
    signature_parameters, split_top_level,
)
from tailrec.rewrite.conditionals import expand_conditionals
from tailrec.rewrite.detector import TailCallMatch, match_tail_form

logger = logging.getLogger(__name__)

TEMP_SUFFIX = '_new'

_KEYWORD_ARG = re.compile(r'\A([A-Za-z_]\w*)[ \t]*=(?!=)(.*)\Z', re.DOTALL)
_STATEMENT_END = re.compile(r'[ \t]*;?[ \t]*(?:\n|\Z)')
_PAREN_STATEMENT_END = re.compile(r'[ \t]*\)[ \t]*;?[ \t]*(?:\n|\Z)')
_HEADER_WORD = re.compile(r'[ \t]*(?:async[ \t]+)?([A-Za-z_]\w*)')
_DEF_PARAMS = re.compile(r'(?m)^[ \t]*(?:async[ \t]+)?def[ \t]+\w+[ \t]*\(([^()]*)\)')
_FUNCTION_NAME = re.compile(r'def[ \t]+(\w+)')
_NEEDS_PARENS = re.compile(r'\n|:=|(?<![\w.])(?:for|yield)\b')

# Enclosing statements that make a ``continue`` unsafe or a ``return`` not ours.
_BLOCKING_HEADERS = frozenset({'for', 'while', 'try', 'except', 'finally', 'with', 'def', 'class'})
_ELSE_OWNERS = frozenset({'if', 'for', 'while', 'try'})


def bind_arguments(formals: List[str], actuals: List[str]) -> Optional[List[Tuple[str, str]]]:
    """
    Pair every formal parameter with the argument expression passed to it.

    Positional arguments bind in order, ``name=expr`` arguments by name.
    Returns ``None`` when the call cannot be bound without running it:
    star arguments, unknown or repeated keywords, too many arguments, or a
    parameter left to its default.
    """
    if any(param.startswith('*') for param in formals):
        return None

    positional: List[str] = []
    keywords: Dict[str, str] = {}
    for arg in actuals:
        if arg.startswith('*'):
            return None
        keyword = _KEYWORD_ARG.match(arg)
        if keyword is not None:
            name, expr = keyword.group(1), keyword.group(2).strip()
            if name not in formals or name in keywords:
                return None
            keywords[name] = expr
        elif keywords:
            return None
        else:
            positional.append(arg)

    if len(positional) > len(formals):
        return None
    bound = dict(zip(formals, positional))
    for name, expr in keywords.items():
        if name in bound:
            return None
        bound[name] = expr
    if len(bound) != len(formals):
        return None
    return [(name, bound[name]) for name in formals]


def _as_operand(expr: str) -> str:
    if _NEEDS_PARENS.search(expr):
        return f"({expr})"
    return expr


def parallel_assignment(binding: List[Tuple[str, str]], indent: str) -> List[str]:
    """Lines that rebind parameters simultaneously through ``_new`` temporaries."""
    changed = [(param, expr) for param, expr in binding if expr != param]
    lines = [f"{indent}{param}{TEMP_SUFFIX} = {_as_operand(expr)}\n" for param, expr in changed]
    lines.extend(f"{indent}{param} = {param}{TEMP_SUFFIX}\n" for param, _ in changed)
    return lines


def _header_keyword(line: str) -> str:
    match = _HEADER_WORD.match(line)
    return match.group(1) if match else ''


def _else_owner(lines: List[str], index: int, width: int) -> str:
    for line in reversed(lines[:index]):
        if not line.strip():
            continue
        line_width = indent_width(line)
        if line_width < width:
            break
        if line_width == width:
            keyword = _header_keyword(line)
            if keyword in _ELSE_OWNERS:
                return keyword
    return 'if'


def blocking_header(lines_above: List[str], site_width: int) -> Optional[str]:
    """
    Keyword of the nearest enclosing header that rules out a ``continue``.

    Walks *lines_above* bottom-up, following each shallower line as the next
    enclosing header, so *lines_above* must hold logical-line starts only
    (no string or bracket continuation lines). An ``else`` is judged by the statement that owns it:
    only ``try``/``else`` blocks, since a loop's ``else`` runs outside the loop.
    """
    current = site_width
    for index in range(len(lines_above) - 1, -1, -1):
        line = lines_above[index]
        if not line.strip():
            continue
        width = indent_width(line)
        if width >= current:
            continue
        current = width
        keyword = _header_keyword(line)
        if keyword == 'else':
            keyword = 'try' if _else_owner(lines_above, index, width) == 'try' else 'else'
        if keyword in _BLOCKING_HEADERS:
            return keyword
        if current == 0:
            break
    return None


class LoopRewriter:
    """
    Rewrites tail-called function definitions into ``while True`` loops.

    Usage:
        >>> rewriter = LoopRewriter()
        >>> body = rewriter.optimize_body('def f(n):', source_body)

    ``stats`` accumulates over the lifetime of the instance.
    """

    MAX_PASSES = 1000

    def __init__(self, max_passes: int = MAX_PASSES):
        self.max_passes = max_passes
        self.stats = {
            'passes': 0,
            'blocks_unrolled': 0,
            'tail_calls_rewritten': 0,
            'sites_skipped': 0,
        }

    def optimize_body(self, head_text: str, body_text: str) -> str:
        """
        Apply ``rewrite_one_tail_call`` until the body stops changing.

        Returns the input unchanged when it holds no tail-called definition,
        so applying it to its own output is a no-op.

        Raises:
            TailRecError: if no fixpoint is reached within ``max_passes``.
        """
        match = _FUNCTION_NAME.search(head_text)
        label = match.group(1) if match else '<body>'
        for _ in range(self.max_passes):
            rewritten = self.rewrite_one_tail_call(body_text, label)
            if rewritten == body_text:
                return body_text
            body_text = rewritten
        raise TailRecError(f"{label}: no fixpoint after {self.max_passes} passes")

    def rewrite_one_tail_call(self, body_text: str, label: str = '<body>') -> str:
        """Unroll the first tail-called block found; return *body_text* if none."""
        self.stats['passes'] += 1
        for block in find_blocks(body_text):
            match = match_tail_form(body_text[:block.start], body_text[block.end:])
            if match is None:
                continue
            replacement = self._unroll_block(match, block, block.slice(body_text))
            if replacement is None:
                continue
            start = block.start - len(match.prefix_match)
            end = block.end + len(match.suffix_match)
            self.stats['blocks_unrolled'] += 1
            logger.debug(f"{label}: unrolled '{match.callee_name}' ({match.form} form)")
            return body_text[:start] + replacement + body_text[end:]
        return body_text

    def check_temporaries(self, head_text: str, body_text: str) -> None:
        """
        Refuse functions that already use a ``<param>_new`` identifier.

        Every parameter of the function and of each ``def`` inside it is a
        candidate for a temporary, so all of them are checked.

        Raises:
            NameCollisionError: on the first temporary already in use.
        """
        stems = set(signature_parameters(head_text))
        for match in _DEF_PARAMS.finditer(body_text):
            try:
                stems.update(parse_parameters(match.group(1)))
            except UnrecognizedFunctionFormat:
                continue
        text = head_text + '\n' + body_text
        for stem in sorted(stems):
            if stem.startswith('*'):
                continue
            if mentions(text, stem + TEMP_SUFFIX):
                raise NameCollisionError(
                    f"'{stem}{TEMP_SUFFIX}' is already used; it is reserved as the "
                    f"temporary for parameter '{stem}'"
                )

    def _unroll_block(self, match: TailCallMatch, block: Block, suite: str) -> Optional[str]:
        binding = bind_arguments(match.formal_params, match.actual_args)
        if binding is None:
            logger.debug(f"Cannot bind arguments {match.actual_args} to {match.formal_params}")
            return None

        expanded = expand_conditionals(suite, match.callee_name)
        loop_body, rewritten = self._replace_tail_calls(
            expanded, match.callee_name, match.formal_params
        )
        if not rewritten:
            return None
        if not loop_body.endswith('\n'):
            loop_body += '\n'

        parts = []
        if match.keeps_binding and mentions(loop_body, match.callee_name):
            # Calls left in place still need the recursive definition.
            kept = match.prefix_match + suite
            parts.append(kept if kept.endswith('\n') else kept + '\n')
        parts.extend(parallel_assignment(binding, match.indent))
        parts.append(f"{match.indent}while True:\n")
        parts.append(loop_body)
        parts.append(f"{block.indent}return None\n")
        return ''.join(parts)

    def _replace_tail_calls(self, text: str, callee: str, formals: List[str]) -> Tuple[str, int]:
        pattern = re.compile(
            r'(?m)^(?P<indent>[ \t]*)return(?:[ \t]+|[ \t]*(?P<paren>\()[ \t]*)'
            + re.escape(callee) + r'[ \t]*\('
        )
        starts = logical_line_starts(text)
        cursor = 0
        count = 0
        while True:
            site = pattern.search(text, cursor)
            if site is None:
                break
            if text.count('\n', 0, site.start()) + 1 not in starts:
                # Text inside a string literal.
                cursor = site.end()
                continue
            close_index = find_closing(text, site.end() - 1)
            end_pattern = _PAREN_STATEMENT_END if site.group('paren') else _STATEMENT_END
            end = end_pattern.match(text, close_index + 1) if close_index >= 0 else None
            if end is None:
                # Not a bare call: ``return f(x) + 1``, ``return f(x)(y)``...
                cursor = site.end()
                continue

            indent = site.group('indent')
            lines_above = [
                line for row, line in enumerate(text[:site.start()].splitlines(), start=1)
                if row in starts
            ]
            reason = blocking_header(lines_above, indent_width(indent))
            binding = None
            if reason is None:
                binding = bind_arguments(formals, split_top_level(text[site.end():close_index]))
                if binding is None:
                    reason = 'unbindable arguments'
            if binding is None:
                self.stats['sites_skipped'] += 1
                logger.debug(f"Left call to '{callee}' in place ({reason})")
                cursor = end.end()
                continue

            replacement = ''.join(parallel_assignment(binding, indent)) + f"{indent}continue\n"
            text = text[:site.start()] + replacement + text[end.end():]
            starts = logical_line_starts(text)
            cursor = site.start() + len(replacement)
            count += 1
            self.stats['tail_calls_rewritten'] += 1
        return text, count
