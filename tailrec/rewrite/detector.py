"""
Tail-Call Detector
==================

Recognizes the three textual shapes in which a block is the body of a
function that is immediately tail-called by the statement after it.

Each shape is a pair of patterns. The *prefix* pattern must match the
``def`` header that ends exactly where the block starts; the *call*
pattern must match the statement that follows the block, at the same
indentation as the ``def``::

    direct         def go(i, acc):            return go(0, 1)
    parenthesized  def go(i, acc):            return (go(0, 1))
    named let      def _fact_body(n, acc):    return (fact := _fact_body)(n, acc)

The named-let shape is what ``TopLevelUnroller`` produces to give the
outermost function a local binding it can be seen calling.

Decorated definitions never match: their call goes through the decorator.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from tailrec.source.text import find_closing, logical_line_starts, parse_parameters, split_top_level
from tailrec.errors import UnrecognizedFunctionFormat

_DEF_HEADER = re.compile(
    r'(?m)^(?P<indent>[ \t]*)def[ \t]+(?P<name>\w+)[ \t]*'
    r'\((?P<params>[^()]*)\)[ \t]*(?:->[^:\n]*)?:[ \t]*\n(?:[ \t]*\n)*\Z'
)
_LEADING_BLANKS = r'(?P<blank>(?:[ \t]*\n)*)(?P<indent>[ \t]*)'


@dataclass(frozen=True)
class TailForm:
    """One prefix/suffix pattern pair."""
    name: str
    prefix: Pattern
    call_head: Pattern     # ends right after the argument list's '('
    call_tail: Pattern     # matched right after the closing ')'


TAIL_FORMS = (
    TailForm(
        name='direct',
        prefix=_DEF_HEADER,
        call_head=re.compile(_LEADING_BLANKS + r'return[ \t]+(?P<callee>\w+)[ \t]*\('),
        call_tail=re.compile(r'[ \t]*;?[ \t]*(?:\n|\Z)'),
    ),
    TailForm(
        name='parenthesized',
        prefix=_DEF_HEADER,
        call_head=re.compile(
            _LEADING_BLANKS + r'return[ \t]*\([ \t]*(?P<callee>\w+)[ \t]*\('
        ),
        call_tail=re.compile(r'[ \t]*\)[ \t]*;?[ \t]*(?:\n|\Z)'),
    ),
    TailForm(
        name='named_let',
        prefix=_DEF_HEADER,
        call_head=re.compile(
            _LEADING_BLANKS
            + r'return[ \t]*\([ \t]*(?P<callee>\w+)[ \t]*:=[ \t]*(?P<bound>\w+)[ \t]*\)[ \t]*\('
        ),
        call_tail=re.compile(r'[ \t]*;?[ \t]*(?:\n|\Z)'),
    ),
)


@dataclass
class TailCallMatch:
    """
    Result of matching one tail form around a block.

    ``formal_params`` come from the ``def`` header in the prefix,
    ``actual_args`` from the invocation in the suffix. Splicing the
    rewritten block over ``prefix_match + block + suffix_match`` replaces
    the whole definition-and-call.
    """
    callee_name: str
    formal_params: List[str]
    actual_args: List[str]
    prefix_match: str
    suffix_match: str
    form: str = 'direct'
    bound_name: str = ''
    indent: str = ''
    keeps_binding: bool = True


def _is_decorated(prefix_text: str, header_start: int) -> bool:
    above = prefix_text[:header_start]
    starts = logical_line_starts(above)
    for row, line in reversed(list(enumerate(above.splitlines(), start=1))):
        if row in starts:
            return line.lstrip(' \t').startswith('@')
    return False


def _match_form(form: TailForm, prefix_text: str, suffix_text: str) -> Optional[TailCallMatch]:
    header = form.prefix.search(prefix_text)
    if header is None:
        return None
    call = form.call_head.match(suffix_text)
    if call is None or call.group('indent') != header.group('indent'):
        return None

    def_name = header.group('name')
    if form.name == 'named_let':
        if call.group('bound') != def_name:
            return None
    elif call.group('callee') != def_name:
        return None

    close_index = find_closing(suffix_text, call.end() - 1)
    if close_index < 0:
        return None
    tail = form.call_tail.match(suffix_text, close_index + 1)
    if tail is None:
        return None

    try:
        formals = parse_parameters(header.group('params'))
    except UnrecognizedFunctionFormat:
        return None
    if any(param.startswith('*') for param in formals):
        return None
    if _is_decorated(prefix_text, header.start()):
        # The loop would drop the decorator.
        return None

    return TailCallMatch(
        callee_name=call.group('callee'),
        formal_params=formals,
        actual_args=split_top_level(suffix_text[call.end():close_index]),
        prefix_match=header.group(0),
        suffix_match=suffix_text[:tail.end()],
        form=form.name,
        bound_name=def_name,
        indent=header.group('indent'),
        keeps_binding=form.name != 'named_let',
    )


def match_tail_form(prefix_text: str, suffix_text: str) -> Optional[TailCallMatch]:
    """
    Try every tail form against the text around a block.

    Forms are tried in ``TAIL_FORMS`` order and the first one whose prefix
    and suffix both match wins. Returns ``None`` when no form matches.
    """
    for form in TAIL_FORMS:
        match = _match_form(form, prefix_text, suffix_text)
        if match is not None:
            return match
    return None
