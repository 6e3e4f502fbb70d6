"""
recur(): Self Tail Calls to Loops
=================================

Entry point of the package. ``recur`` reads a function's source, rewrites
every self tail call (in helper functions defined inside it and in the
function itself) into a ``while True`` loop, and compiles the result back
into a function that runs in constant stack depth.

Pipeline:
    FunctionCodec.decompile
      -> remove_comments
      -> LoopRewriter.optimize_body          (helpers defined in the body)
      -> TopLevelUnroller.wrap_for_self_call (the function itself)
      -> FunctionCodec.recompile

Anything that goes wrong along the way leaves the caller with the
original function; ``recur`` only raises for arguments that are not
callable.

Usage:
    @recur
    def fact(n, acc):
        if n <= 1:
            return acc
        return fact(n - 1, acc * n)

    @recur(prefer_code_object=False)
    def count(n, acc):
        return acc if n == 0 else count(n - 1, acc + 1)
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from tailrec.errors import TailRecError
from tailrec.rewrite.loop_rewriter import LoopRewriter
from tailrec.rewrite.unroller import TopLevelUnroller
from tailrec.source.codec import FunctionCodec, FunctionText
from tailrec.source.normalizer import remove_comments

logger = logging.getLogger(__name__)


@dataclass
class RecurReport:
    """Outcome of one ``optimize`` call."""
    name: str
    optimized: bool
    original_source: str = ''
    optimized_source: str = ''
    top_level_unrolled: bool = False
    error: Optional[str] = None
    wall_time_seconds: float = 0.0


class TailRecOptimizer:
    """
    Turns self-recursive tail calls into loops.

    Args:
        max_passes: upper bound on rewrite passes per body; exceeding it
            aborts the optimization of that function.
        unroll_top_level: also rewrite the function's own tail calls, not
            only those of helper functions defined inside it.
        prefer_code_object: try rebuilding from the compiled code object
            before falling back to ``exec``.
        enable_logging: configure root logging at DEBUG level.

    Usage:
        >>> optimizer = TailRecOptimizer()
        >>> fast_fact = optimizer.optimize(fact)
        >>> optimizer.last_report.optimized
        True

    Only the latest reports are kept (at most ``MAX_REPORTS``); the
    counters in ``get_statistics`` cover every call.
    """

    MAX_REPORTS = 256

    def __init__(
        self,
        max_passes: int = LoopRewriter.MAX_PASSES,
        unroll_top_level: bool = True,
        prefer_code_object: bool = True,
        enable_logging: bool = False,
    ):
        self.max_passes = max_passes
        self.unroll_top_level = unroll_top_level
        self.rewriter = LoopRewriter(max_passes=max_passes)
        self.unroller = TopLevelUnroller(self.rewriter)
        self.codec = FunctionCodec(prefer_code_object=prefer_code_object)

        self._reports: List[RecurReport] = []
        self._totals: Dict[str, Any] = {
            'total_functions': 0,
            'optimized': 0,
            'fallbacks': 0,
            'unchanged': 0,
            'top_level_unrolled': 0,
            'total_wall_time': 0.0,
        }

        if enable_logging:
            logging.basicConfig(level=logging.DEBUG)

    def optimize(self, fn: Callable) -> Callable:
        """
        Return a loop-based equivalent of *fn*, or *fn* itself.

        *fn* comes back unchanged when it has no self tail call or when
        any step of the rewrite fails; the reason is logged and kept in
        ``last_report``.

        Raises:
            TypeError: *fn* is not callable.
        """
        if not callable(fn):
            raise TypeError(f"recur() expects a callable, got {type(fn).__name__}")

        start_time = time.perf_counter()
        name = getattr(fn, '__qualname__', repr(fn))
        report = RecurReport(name=name, optimized=False)
        result = fn

        try:
            text = self.codec.decompile(fn)
            report.original_source = text.source
            rewritten, unrolled = self._rewrite(text)
            if rewritten is None:
                logger.debug(f"{name}: no self tail call found, keeping the original")
            else:
                result = self.codec.recompile(rewritten, fn)
                report.optimized = True
                report.optimized_source = rewritten.source
                report.top_level_unrolled = unrolled
                logger.debug(f"{name}: optimized\n{report.optimized_source}")
        except TailRecError as e:
            report.error = f"{type(e).__name__}: {e}"
            logger.warning(f"recur: keeping original {name} ({report.error})")
        except Exception as e:
            report.error = f"{type(e).__name__}: {e}"
            logger.warning(f"recur: unexpected failure on {name}, keeping original", exc_info=True)

        report.wall_time_seconds = time.perf_counter() - start_time
        self._record(report)
        if result is not fn:
            result._recur_report = report
        return result

    def optimize_text(self, text: FunctionText) -> Optional[FunctionText]:
        """
        Rewrite a textual declaration.

        Returns ``None`` when there is nothing to rewrite. Errors from the
        rewriting layers propagate.
        """
        rewritten, _ = self._rewrite(text)
        return rewritten

    def optimize_source(self, source: str) -> str:
        """
        Rewrite the source of one ``def`` statement.

        Returns *source* unchanged when there is nothing to rewrite.
        Errors propagate instead of falling back.
        """
        rewritten = self.optimize_text(self.codec.parse_source(source))
        if rewritten is None:
            return source
        return rewritten.source

    def _rewrite(self, text: FunctionText) -> Tuple[Optional[FunctionText], bool]:
        head = remove_comments(text.head_text)
        body = remove_comments(text.body_text)
        self.rewriter.check_temporaries(head, body)

        new_body = self.rewriter.optimize_body(head, body)
        unrolled = False
        if self.unroll_top_level and text.name:
            wrapped = self.unroller.wrap_for_self_call(head, new_body, text.name)
            if wrapped is not None:
                head, new_body = wrapped
                unrolled = True

        if new_body == body and not unrolled:
            return None, False
        return FunctionText(
            name=text.name,
            head_text=head,
            parameter_names=list(text.parameter_names),
            body_text=new_body,
        ), unrolled

    def _record(self, report: RecurReport) -> None:
        totals = self._totals
        totals['total_functions'] += 1
        if report.optimized:
            totals['optimized'] += 1
        elif report.error is None:
            totals['unchanged'] += 1
        if report.error is not None:
            totals['fallbacks'] += 1
        if report.top_level_unrolled:
            totals['top_level_unrolled'] += 1
        totals['total_wall_time'] += report.wall_time_seconds

        self._reports.append(report)
        if len(self._reports) > self.MAX_REPORTS:
            self._reports = self._reports[-(self.MAX_REPORTS // 2):]

    @property
    def last_report(self) -> Optional[RecurReport]:
        """Report of the most recent ``optimize`` call."""
        return self._reports[-1] if self._reports else None

    @property
    def reports(self) -> List[RecurReport]:
        """The most recent reports, oldest first."""
        return list(self._reports)

    def get_statistics(self) -> Dict[str, Any]:
        """Aggregate statistics across all ``optimize`` calls."""
        if not self._totals['total_functions']:
            return {}
        return {**self._totals, **self.rewriter.stats}


# ═══════════════════════════════════════════════════════════════════
#  Decorator API
# ═══════════════════════════════════════════════════════════════════

_default_optimizer = None


def _get_default_optimizer() -> TailRecOptimizer:
    global _default_optimizer
    if _default_optimizer is None:
        _default_optimizer = TailRecOptimizer()
    return _default_optimizer


def recur(fn: Optional[Callable] = None, **kwargs):
    """
    Rewrite the self tail calls of a function into a loop.

    Usage:
        @recur
        def fact(n, acc):
            ...

        @recur(max_passes=50)
        def walk(node, depth):
            ...

        fast = recur(slow)
    """
    if fn is not None:
        optimizer = TailRecOptimizer(**kwargs) if kwargs else _get_default_optimizer()
        return optimizer.optimize(fn)

    def decorator(f):
        optimizer = TailRecOptimizer(**kwargs)
        return optimizer.optimize(f)
    return decorator


def optimize_source(source: str, **kwargs) -> str:
    """
    Source-to-source form of ``recur`` for one ``def`` statement.

    Usage:
        loop_source = optimize_source(inspect.getsource(fact))
    """
    optimizer = TailRecOptimizer(**kwargs) if kwargs else _get_default_optimizer()
    return optimizer.optimize_source(source)
