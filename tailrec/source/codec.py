"""
Function Codec
==============

The only component that touches live function objects: it turns a
function into its textual declaration and turns rewritten text back into
a function.

Decompilation reads ``inspect.getsource`` and splits it into a ``def``
head and a dedented body. Recompilation has two strategies:

  code object  compile the text, pull the function's code object out of
               the module constants and build ``types.FunctionType`` around
               the original globals, defaults and closure cells. Nothing
               executes at module level and later changes to the module's
               globals stay visible.
  exec         execute the text in a copy of the original globals (closure
               values copied in) and read the function back by name.

``prefer_code_object`` decides which strategy is tried first; the other
one is the fallback.
"""

import functools
import inspect
import logging
import re
import types
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from tailrec.errors import CompilationError, DecompilationUnsupported, UnrecognizedFunctionFormat
from tailrec.source.text import dedent_lines, find_closing, indent_lines, indent_unit, parse_parameters

logger = logging.getLogger(__name__)

_ENCLOSING_PARENS = re.compile(r'\A\s*\((?P<inner>.*)\)\s*\Z', re.DOTALL)
_DECORATOR = re.compile(r'\A[ \t]*@')
_DEF_START = re.compile(r'\A[ \t]*def[ \t]+(?P<name>[A-Za-z_]\w*)[ \t]*\(')
_HEAD_END = re.compile(
    r'[ \t]*(?P<returns>->[^:\n]*)?:[ \t]*(?P<inline>[^\n]*)(?:\n|\Z)'
)
_PRIVATE_NAME = re.compile(r'(?<![\w])__[A-Za-z]\w*')
FACTORY_NAME = '__tailrec_factory__'


@dataclass
class FunctionText:
    """
    Textual declaration of a function.

    ``body_text`` is the suite dedented to column 0 and ending in a newline;
    ``parameter_names`` follow declaration order, so they line up with the
    arguments of a call to the function.
    """
    name: Optional[str]
    head_text: str
    parameter_names: List[str] = field(default_factory=list)
    body_text: str = ''

    @property
    def source(self) -> str:
        """The complete ``def`` statement."""
        return self.head_text + '\n' + indent_lines(self.body_text, indent_unit(self.body_text))


def _find_code(code: types.CodeType, name: str) -> types.CodeType:
    for const in code.co_consts:
        if isinstance(const, types.CodeType) and const.co_name == name:
            return const
    raise LookupError(f"No code object named {name!r}")


def _strip_decorators(text: str) -> str:
    while True:
        decorator = _DECORATOR.match(text)
        if decorator is None:
            return text
        end = decorator.end()
        open_index = text.find('(', end)
        line_end = text.find('\n', end)
        if open_index >= 0 and (line_end < 0 or open_index < line_end):
            # Arguments may span several lines.
            close_index = find_closing(text, open_index)
            if close_index >= 0:
                line_end = text.find('\n', close_index)
        if line_end < 0:
            return ''
        text = text[line_end + 1:]


def _is_class_member(fn: Callable) -> bool:
    qualname = getattr(fn, '__qualname__', '')
    owner = qualname.rpartition('.')[0]
    return bool(owner) and not owner.endswith('<locals>')


class FunctionCodec:
    """
    Converts between functions and their textual declarations.

    Usage:
        >>> codec = FunctionCodec()
        >>> text = codec.decompile(fact)
        >>> same_fact = codec.recompile(text, fact)
    """

    def __init__(self, prefer_code_object: bool = True):
        self.prefer_code_object = prefer_code_object

    def decompile(self, fn: Callable) -> FunctionText:
        """
        Textual declaration of *fn*.

        Raises:
            DecompilationUnsupported: *fn* is not a Python function or its
                source cannot be read.
            UnrecognizedFunctionFormat: generators, coroutines, lambdas,
                ``async def`` and methods using private (mangled) names.
        """
        if not isinstance(fn, types.FunctionType):
            raise DecompilationUnsupported(
                f"{fn!r} is not a Python function; its source is not available"
            )
        if inspect.isgeneratorfunction(fn) or inspect.iscoroutinefunction(fn) \
                or inspect.isasyncgenfunction(fn):
            raise UnrecognizedFunctionFormat(
                f"{fn.__qualname__} is a generator or coroutine function"
            )
        try:
            source = inspect.getsource(fn)
        except (OSError, TypeError) as exc:
            raise DecompilationUnsupported(
                f"Source of {fn.__qualname__} is not available: {exc}"
            ) from exc

        text = self.parse_source(source)
        if _is_class_member(fn) and any(
                not name.endswith('__') for name in _PRIVATE_NAME.findall(text.body_text)):
            raise UnrecognizedFunctionFormat(
                f"{fn.__qualname__} uses private names that only mangle inside its class"
            )
        return text

    def parse_source(self, source: str) -> FunctionText:
        """
        Split ``def`` source text into head and body.

        Strips at most one layer of enclosing parentheses and any decorator
        lines first.

        Raises:
            UnrecognizedFunctionFormat: the text is not a plain ``def``.
        """
        text = dedent_lines(source)
        enclosed = _ENCLOSING_PARENS.match(text)
        if enclosed is not None:
            text = dedent_lines(enclosed.group('inner').strip('\n'))
        text = _strip_decorators(text)

        start = _DEF_START.match(text)
        if start is None:
            raise UnrecognizedFunctionFormat(
                f"Function source is in an unrecognized format:\n{source}"
            )
        close_index = find_closing(text, start.end() - 1)
        end = _HEAD_END.match(text, close_index + 1) if close_index >= 0 else None
        if end is None:
            raise UnrecognizedFunctionFormat(
                f"Function head is in an unrecognized format:\n{source}"
            )

        head = text[start.start():end.start()].strip() + ' ' + (end.group('returns') or '')
        head = head.rstrip() + ':'
        inline = end.group('inline').strip()
        if inline and not inline.startswith('#'):
            body = inline + '\n'
        else:
            body = dedent_lines(text[end.end():])
        if not body.strip():
            raise UnrecognizedFunctionFormat(f"Function has no body:\n{source}")
        if not body.endswith('\n'):
            body += '\n'

        return FunctionText(
            name=start.group('name'),
            head_text=head,
            parameter_names=parse_parameters(text[start.end():close_index]),
            body_text=body,
        )

    def recompile(self, text: FunctionText, original: Callable) -> Callable:
        """
        Build a function from *text* that can stand in for *original*.

        Raises:
            CompilationError: neither strategy produced a function.
        """
        strategies = [self._build_from_code, self._build_by_exec]
        if not self.prefer_code_object:
            strategies.reverse()

        source = text.source
        failure: Optional[Exception] = None
        for strategy in strategies:
            try:
                rebuilt = strategy(source, text.name, original)
            except (SyntaxError, ValueError, TypeError, LookupError, NameError) as exc:
                logger.debug(f"{strategy.__name__} failed for {text.name}: {exc}")
                failure = exc
                continue
            functools.update_wrapper(rebuilt, original)
            return rebuilt
        raise CompilationError(f"Could not compile rewritten {text.name}: {failure}") from failure

    @staticmethod
    def _filename(name: Optional[str]) -> str:
        return f'<tailrec:{name}>'

    def _build_from_code(self, source: str, name: str, original: Callable) -> Callable:
        freevars = original.__code__.co_freevars
        if freevars:
            wrapped = (
                f"def {FACTORY_NAME}({', '.join(freevars)}):\n"
                + indent_lines(source, '    ')
                + f"    return {name}\n"
            )
            module_code = compile(wrapped, self._filename(name), 'exec')
            code = _find_code(_find_code(module_code, FACTORY_NAME), name)
        else:
            module_code = compile(source, self._filename(name), 'exec')
            code = _find_code(module_code, name)

        cells = dict(zip(freevars, original.__closure__ or ()))
        closure = tuple(cells[var] for var in code.co_freevars) if code.co_freevars else None
        rebuilt = types.FunctionType(code, original.__globals__, name, original.__defaults__, closure)
        if original.__kwdefaults__:
            rebuilt.__kwdefaults__ = dict(original.__kwdefaults__)
        return rebuilt

    def _build_by_exec(self, source: str, name: str, original: Callable) -> Callable:
        namespace = dict(original.__globals__)
        for var, cell in zip(original.__code__.co_freevars, original.__closure__ or ()):
            try:
                namespace[var] = cell.cell_contents
            except ValueError:
                continue  # empty cell, e.g. the function's own name before assignment
        code = compile(source, self._filename(name), 'exec')
        exec(code, namespace)
        rebuilt = namespace[name]
        if not isinstance(rebuilt, types.FunctionType):
            raise TypeError(f"{name} did not compile to a function")
        return rebuilt
