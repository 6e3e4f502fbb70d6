"""
Conditional Expander
====================

Rewrites conditional-expression returns into ``if`` statements so that a
self call hidden in a branch becomes a plain ``return f(...)`` statement
the loop rewriter can see::

    return acc if n <= 1 else fact(n - 1, acc * n)

becomes::

    if n <= 1:
        return acc
    return fact(n - 1, acc * n)

The else branch is rescanned after each expansion, so chained conditional
expressions (``a if c1 else b if c2 else d``) expand one level at a time.
"""

import logging
import re

from tailrec.errors import AmbiguousConditionalError
from tailrec.source.text import is_balanced, logical_line_starts, mentions, split_top_level

logger = logging.getLogger(__name__)

_CONDITIONAL_RETURN = re.compile(
    r'(?m)^(?P<indent>[ \t]*)return[ \t]+(?P<a>[^\n]+?)[ \t]+if[ \t]+(?P<cond>[^\n]+?)'
    r'[ \t]+else[ \t]+(?P<b>[^\n]+?)[ \t]*;?[ \t]*$'
)


def _is_named_let(condition: str, callee_name: str) -> bool:
    pattern = r'\A[ \t]*\([ \t]*' + re.escape(callee_name) + r'[ \t]*:='
    return re.match(pattern, condition) is not None


def _is_tuple_item(branch: str) -> bool:
    return branch.startswith('*') or branch.endswith(',') or len(split_top_level(branch)) > 1


def expand_conditionals(block_text: str, callee_name: str) -> str:
    """
    Expand every ``return a if cond else b`` in *block_text* whose branches
    mention *callee_name*.

    Statements are left alone when the split is doubtful (unbalanced
    brackets, a ``lambda`` in the first branch, a branch that is really
    one item of a tuple) or when neither branch mentions the callee.
    Lines that continue a string literal are never touched.

    Raises:
        AmbiguousConditionalError: *callee_name* appears in a condition
            other than as a named-let binding ``(callee_name := ...)``.
    """
    result = block_text
    starts = logical_line_starts(result)
    cursor = 0
    while True:
        match = _CONDITIONAL_RETURN.search(result, cursor)
        if match is None:
            break
        indent = match.group('indent')
        first, condition, second = match.group('a', 'cond', 'b')

        if result.count('\n', 0, match.start()) + 1 not in starts:
            # Text inside a string literal.
            cursor = match.end()
            continue

        if mentions(condition, 'return'):
            cursor = match.start() + len(indent) + len('return')
            continue

        if not (is_balanced(first) and is_balanced(condition) and is_balanced(second)) \
                or mentions(first, 'lambda'):
            cursor = match.end()
            continue

        if _is_tuple_item(first) or _is_tuple_item(second):
            # ``return a, b if c else d`` only conditions the last item.
            cursor = match.end()
            continue

        if mentions(condition, callee_name):
            if _is_named_let(condition, callee_name):
                cursor = match.end()
                continue
            raise AmbiguousConditionalError(
                f"'{callee_name}' appears in the condition of "
                f"'return {first} if {condition} else {second}'; a tail call "
                f"must not be part of its own guard"
            )

        if not (mentions(first, callee_name) or mentions(second, callee_name)):
            cursor = match.end()
            continue

        unit = '\t' if '\t' in indent else '    '
        tail_line = f"{indent}return {second}"
        replacement = f"{indent}if {condition}:\n{indent}{unit}return {first}\n{tail_line}"
        result = result[:match.start()] + replacement + result[match.end():]
        starts = logical_line_starts(result)
        cursor = match.start() + len(replacement) - len(tail_line)
        logger.debug(f"Expanded conditional return around '{callee_name}'")

    return result
