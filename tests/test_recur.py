"""
Integration tests for recur() and TailRecOptimizer.

Covers semantics preservation, stack depth, the fallback paths, the
source-to-source entry point and the optimizer's reports.
"""

import functools
import logging
import math

import pytest


# ═══════════════════════════════════════════════════════════════════
#  Test Fixtures: Sample Functions
# ═══════════════════════════════════════════════════════════════════

def fact(n, acc):
    if n <= 1:
        return acc
    return fact(n - 1, acc * n)


def fact_expr(n, acc):
    return acc if n <= 1 else fact_expr(n - 1, acc * n)


def sum_to(n, acc):
    if n == 0:
        return acc
    return sum_to(n - 1, acc + n)


def countdown(n):
    # Base case first.
    if n == 0:
        return 'done'
    return countdown(n - 1)  # tail call


def kw_sum(n, acc=0):
    if n == 0:
        return acc
    return kw_sum(acc=acc + n, n=n - 1)


def power_of_two(n):
    def go(i, acc):
        if i == n:
            return acc
        return go(i + 1, acc * 2)
    return go(0, 1)


def gcd(a, b):
    if b == 0:
        return a
    return (gcd(b, a % b))


def non_tail(n):
    return 0 if n <= 0 else 1 + non_tail(n - 1)


def is_even(n):
    if n == 0:
        return True
    return is_odd(n - 1)


def is_odd(n):
    if n == 0:
        return False
    return is_even(n - 1)


def collatz_steps(n, steps):
    if n == 1:
        return steps
    elif n % 2 == 0:
        return collatz_steps(n // 2, steps + 1)
    else:
        return collatz_steps(3 * n + 1, steps + 1)


def collides(n):
    n_new = n
    if n_new == 0:
        return 0
    return collides(n_new - 1)


def guarded(n):
    return 0 if n == 0 or guarded(0) else guarded(n - 1)


def squares(n):
    while n:
        yield n * n
        n -= 1


def make_stepper(step):
    def walk(n, acc):
        if n <= 0:
            return acc
        return walk(n - step, acc + 1)
    return walk


def pairs(n, acc):
    return acc, n if n == 0 else pairs(n - 1, acc + 1)


def spread(n, acc):
    return *acc, n if n == 0 else spread(n - 1, acc + (n,))


def wander(n, acc):
    if n == 0:
        return acc
    if n % 2:
        for _ in range(1):
            note = """
    tick"""
            return wander(n - 1, acc + len(note))
    return wander(n - 1, acc + 1)


def climb(n, acc):
    if n == 0:
        return acc
    if n % 2:
        for _ in range(1):
            step = max(0,
    1)
            return climb(n - 1, acc + step)
    return climb(n - 1, acc + 1)


def docs(n):
    if n == 0:
        return """
    return docs(n - 1)
"""
    return docs(n - 1)


def triangle(n):
    @functools.lru_cache(maxsize=None)
    def go(i, acc):
        if i == 0:
            return acc
        return go(i - 1, acc + i)
    return go(n, 0)


FACT_SOURCE = '''\
def fact(n, acc):
    if n <= 1:
        return acc
    return fact(n - 1, acc * n)
'''

FACT_LOOP_SOURCE = '''\
def fact(n, acc):
    while True:
        if n <= 1:
            return acc
        n_new = n - 1
        acc_new = acc * n
        n = n_new
        acc = acc_new
        continue
        return None
'''


# ═══════════════════════════════════════════════════════════════════
#  Semantics and Stack Depth
# ═══════════════════════════════════════════════════════════════════

class TestRecurSemantics:
    """Optimized functions compute what the originals compute."""

    def test_factorial(self):
        from tailrec import recur
        fast = recur(fact)
        assert fast is not fact
        assert fast(5, 1) == 120
        assert fast(1, 1) == 1
        assert fast(20000, 1) == math.factorial(20000)

    def test_factorial_conditional_expression(self):
        from tailrec import recur
        fast = recur(fact_expr)
        assert fast is not fact_expr
        assert fast(5, 1) == 120

    def test_deep_sum(self):
        from tailrec import recur
        with pytest.raises(RecursionError):
            sum_to(170000, 0)
        assert recur(sum_to)(170000, 0) == 170000 * 170001 // 2

    def test_deep_countdown_with_comments(self):
        from tailrec import recur
        assert recur(countdown)(100000) == 'done'

    def test_keyword_arguments_and_defaults(self):
        from tailrec import recur
        fast = recur(kw_sum)
        assert fast is not kw_sum
        assert fast(10) == 55
        assert fast(100000) == 100000 * 100001 // 2
        assert fast(3, acc=100) == 106

    def test_inner_helper(self):
        from tailrec import recur
        fast = recur(power_of_two)
        assert fast is not power_of_two
        assert fast(10) == 1024
        assert fast(20000) == 2 ** 20000

    def test_parenthesized_tail_call(self):
        from tailrec import recur
        fast = recur(gcd)
        assert fast is not gcd
        assert fast(1071, 462) == 21

    def test_elif_branches(self):
        from tailrec import recur
        fast = recur(collatz_steps)
        assert fast is not collatz_steps
        assert fast(27, 0) == collatz_steps(27, 0) == 111

    def test_closure(self):
        from tailrec import recur
        walk = make_stepper(2)
        fast = recur(walk)
        assert fast is not walk
        assert fast(200000, 0) == 100000

    def test_exec_strategy(self):
        from tailrec import recur
        fast = recur(sum_to, prefer_code_object=False)
        assert fast is not sum_to
        assert fast(170000, 0) == 170000 * 170001 // 2

    def test_metadata_preserved(self):
        from tailrec import recur
        fast = recur(fact)
        assert fast.__name__ == 'fact'
        assert fast.__qualname__ == fact.__qualname__
        assert fast.__wrapped__ is fact

    def test_decorator_forms(self):
        from tailrec import recur

        @recur
        def count_up(n, limit):
            if n >= limit:
                return n
            return count_up(n + 1, limit)

        @recur(max_passes=10)
        def count_down(n):
            return n if n <= 0 else count_down(n - 1)

        assert count_up(0, 50000) == 50000
        assert count_down(50000) == 0

    def test_string_continuation_above_loop_call(self):
        from tailrec import recur
        fast = recur(wander)
        assert fast is not wander
        assert fast(3, 0) == wander(3, 0) == 19

    def test_bracket_continuation_above_loop_call(self):
        from tailrec import recur
        fast = recur(climb)
        assert fast is not climb
        assert fast(3, 0) == climb(3, 0) == 3

    def test_call_text_inside_string(self):
        from tailrec import recur
        fast = recur(docs)
        assert fast is not docs
        assert fast(2) == docs(2) == "\n    return docs(n - 1)\n"
        assert fast(50000) == docs(0)


# ═══════════════════════════════════════════════════════════════════
#  Fallback
# ═══════════════════════════════════════════════════════════════════

class TestRecurFallback:
    """recur hands back the original whenever it cannot help."""

    def test_non_tail_recursion_untouched(self):
        from tailrec import recur
        assert recur(non_tail) is non_tail

    def test_mutual_recursion_untouched(self):
        from tailrec import recur
        assert recur(is_even) is is_even
        assert recur(is_odd) is is_odd

    def test_conditional_inside_tuple_untouched(self):
        from tailrec import recur
        assert recur(pairs)(2, 0) == pairs(2, 0) == (0, (1, (2, 0)))
        assert recur(spread)(2, ()) == spread(2, ())

    def test_decorated_helper_untouched(self):
        from tailrec import recur
        assert recur(triangle) is triangle
        assert triangle(10) == 55

    def test_builtin(self):
        from tailrec import recur
        assert recur(len) is len

    def test_lambda(self):
        from tailrec import recur
        square = lambda x: x * x  # noqa: E731
        assert recur(square) is square

    def test_generator(self):
        from tailrec import recur
        assert recur(squares) is squares

    def test_not_callable(self):
        from tailrec import recur
        with pytest.raises(TypeError):
            recur(42)

    def test_temporary_name_collision(self):
        from tailrec import TailRecOptimizer
        optimizer = TailRecOptimizer()
        assert optimizer.optimize(collides) is collides
        assert optimizer.last_report.error.startswith('NameCollisionError')

    def test_callee_in_condition(self):
        from tailrec import TailRecOptimizer
        optimizer = TailRecOptimizer()
        assert optimizer.optimize(guarded) is guarded
        assert optimizer.last_report.error.startswith('AmbiguousConditionalError')

    def test_fallback_is_logged(self, caplog):
        from tailrec import recur
        with caplog.at_level(logging.WARNING, logger='tailrec'):
            recur(len)
        assert 'keeping original' in caplog.text

    def test_top_level_disabled(self):
        from tailrec import TailRecOptimizer
        optimizer = TailRecOptimizer(unroll_top_level=False)
        assert optimizer.optimize(fact) is fact
        assert optimizer.optimize(power_of_two) is not power_of_two


# ═══════════════════════════════════════════════════════════════════
#  Source-to-Source
# ═══════════════════════════════════════════════════════════════════

class TestOptimizeSource:
    """Test the text entry point."""

    def test_factorial_loop(self):
        from tailrec import optimize_source
        assert optimize_source(FACT_SOURCE) == FACT_LOOP_SOURCE

    def test_idempotent(self):
        from tailrec import optimize_source
        once = optimize_source(FACT_SOURCE)
        assert optimize_source(once) == once

    def test_non_tail_unchanged(self):
        from tailrec import optimize_source
        source = "def f(n):\n    return 0 if n <= 0 else 1 + f(n - 1)\n"
        assert optimize_source(source) == source

    def test_decorated_helper_keeps_compiling(self):
        from tailrec import optimize_source
        source = (
            "def triangle(n):\n"
            "    @functools.lru_cache(maxsize=None)\n"
            "    def go(i, acc):\n"
            "        if i == 0:\n"
            "            return acc\n"
            "        return go(i - 1, acc + i)\n"
            "    return go(n, 0)\n"
        )
        result = optimize_source(source)
        assert result == source
        compile(result, '<triangle>', 'exec')

    def test_errors_propagate(self):
        from tailrec import optimize_source
        from tailrec.errors import UnrecognizedFunctionFormat
        with pytest.raises(UnrecognizedFunctionFormat):
            optimize_source("f = lambda n: n\n")


# ═══════════════════════════════════════════════════════════════════
#  Reports and Statistics
# ═══════════════════════════════════════════════════════════════════

class TestTailRecOptimizer:
    """Test the optimizer's bookkeeping."""

    def test_create_default_optimizer(self):
        from tailrec import TailRecOptimizer
        optimizer = TailRecOptimizer()
        assert optimizer.max_passes > 0
        assert optimizer.unroll_top_level
        assert optimizer.last_report is None
        assert optimizer.get_statistics() == {}

    def test_report_attached(self):
        from tailrec import TailRecOptimizer
        optimizer = TailRecOptimizer()
        fast = optimizer.optimize(fact)
        report = fast._recur_report
        assert report is optimizer.last_report
        assert report.optimized
        assert report.top_level_unrolled
        assert report.error is None
        assert report.optimized_source == FACT_LOOP_SOURCE
        assert report.wall_time_seconds >= 0

    def test_expanded_intermediate(self):
        from tailrec import TailRecOptimizer
        optimizer = TailRecOptimizer()
        optimizer.optimize(fact_expr)
        source = optimizer.last_report.optimized_source
        assert "if n <= 1:\n            return acc\n" in source
        assert "while True:" in source
        assert "fact_expr(n - 1" not in source

    def test_statistics(self):
        from tailrec import TailRecOptimizer
        optimizer = TailRecOptimizer()
        optimizer.optimize(fact)
        optimizer.optimize(non_tail)
        optimizer.optimize(len)
        stats = optimizer.get_statistics()
        assert stats['total_functions'] == 3
        assert stats['optimized'] == 1
        assert stats['unchanged'] == 1
        assert stats['fallbacks'] == 1
        assert stats['top_level_unrolled'] == 1
        assert stats['tail_calls_rewritten'] == 1

    def test_report_history_is_capped(self):
        from tailrec import TailRecOptimizer
        optimizer = TailRecOptimizer()
        optimizer.MAX_REPORTS = 4
        for _ in range(10):
            optimizer.optimize(len)
        assert 0 < len(optimizer.reports) <= 4
        assert optimizer.last_report.name == 'len'
        stats = optimizer.get_statistics()
        assert stats['total_functions'] == 10
        assert stats['fallbacks'] == 10
