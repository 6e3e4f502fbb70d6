"""
╔════════════════════════════════════════════════════════════════════════════╗
║  tailrec Benchmark Suite                                                   ║
║  Self Tail-Call Elimination: Performance Evaluation                        ║
║                                                                            ║
║  Benchmarks:                                                               ║
║   1. Rewrite overhead (decompile + rewrite + recompile time)               ║
║   2. Runtime: recursive original vs rewritten loop                         ║
║   3. Depth: largest input each version completes                           ║
╚════════════════════════════════════════════════════════════════════════════╝
"""

import statistics
import sys
import os
import time

# Ensure tailrec is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tailrec import TailRecOptimizer


# ═══════════════════════════════════════════════════════════════════
#  Benchmark Targets: Tail-Recursive Function Families
# ═══════════════════════════════════════════════════════════════════

def bench_factorial(n, acc):
    """Accumulator factorial."""
    if n <= 1:
        return acc
    return bench_factorial(n - 1, acc * n)


def bench_sum(n, acc):
    """Conditional-expression accumulator."""
    return acc if n == 0 else bench_sum(n - 1, acc + n)


def bench_gcd(a, b):
    """Euclid."""
    if b == 0:
        return a
    return bench_gcd(b, a % b)


def bench_fib(n):
    """Iterative Fibonacci through an inner tail-recursive helper."""
    def go(i, a, b):
        if i == n:
            return a
        return go(i + 1, b, a + b)
    return go(0, 0, 1)


def bench_collatz(n, steps):
    """Branch-heavy tail recursion."""
    if n == 1:
        return steps
    elif n % 2 == 0:
        return bench_collatz(n // 2, steps + 1)
    else:
        return bench_collatz(3 * n + 1, steps + 1)


def bench_digits(n, count):
    """Keyword-argument tail call."""
    if n < 10:
        return count + 1
    return bench_digits(count=count + 1, n=n // 10)


# ═══════════════════════════════════════════════════════════════════
#  Timing Utilities
# ═══════════════════════════════════════════════════════════════════

def time_function(func, args, iterations=2000):
    """Time a function call over many iterations and return median time in µs."""
    times = []
    for _ in range(5):  # 5 rounds
        start = time.perf_counter_ns()
        for _ in range(iterations):
            func(*args)
        end = time.perf_counter_ns()
        times.append((end - start) / iterations / 1000)  # ns → µs
    return statistics.median(times)


def max_depth(func, make_args, limit=1_000_000):
    """Largest power-of-two input (up to *limit*) that completes without RecursionError."""
    depth = 1
    best = 0
    while depth <= limit:
        try:
            func(*make_args(depth))
        except RecursionError:
            break
        best = depth
        depth *= 2
    return best


def run_benchmarks():
    """Run the complete tailrec benchmark suite."""

    print("=" * 80)
    print("  TAILREC BENCHMARK SUITE")
    print("=" * 80)
    print()

    # ─────────────────────────────────────────────────────────
    #  Benchmark 1: Rewrite Overhead
    # ─────────────────────────────────────────────────────────
    print("┌──────────────────────────────────────────────────────────────┐")
    print("│  BENCHMARK 1: Rewrite Overhead                              │")
    print("└──────────────────────────────────────────────────────────────┘")

    targets = [
        ("factorial", bench_factorial, (200, 1)),
        ("sum", bench_sum, (500, 0)),
        ("gcd", bench_gcd, (832040, 514229)),
        ("fib", bench_fib, (300,)),
        ("collatz", bench_collatz, (871, 0)),
        ("digits", bench_digits, (10 ** 200, 0)),
    ]

    optimizer = TailRecOptimizer()
    rewrite_times = {}
    optimized_funcs = {}

    print(f"  {'Function':<20} {'Rewrite Time (ms)':>18} {'Optimized':>12}")
    print(f"  {'─' * 20} {'─' * 18} {'─' * 12}")

    for name, func, _ in targets:
        optimized = optimizer.optimize(func)
        report = optimizer.last_report
        rewrite_times[name] = report.wall_time_seconds * 1000
        optimized_funcs[name] = optimized
        print(f"  {name:<20} {rewrite_times[name]:>18.2f} {str(report.optimized):>12}")

    avg_rewrite = statistics.mean(rewrite_times.values())
    print(f"\n  Average rewrite time: {avg_rewrite:.2f} ms")
    print()

    # ─────────────────────────────────────────────────────────
    #  Benchmark 2: Runtime (Loop vs Recursion)
    # ─────────────────────────────────────────────────────────
    print("┌──────────────────────────────────────────────────────────────┐")
    print("│  BENCHMARK 2: Runtime (Rewritten Loop vs Recursion)         │")
    print("└──────────────────────────────────────────────────────────────┘")

    print(f"  {'Function':<20} {'Original (µs)':>14} {'Loop (µs)':>12} {'Speedup':>10}")
    print(f"  {'─' * 20} {'─' * 14} {'─' * 12} {'─' * 10}")

    speedups = []
    for name, func, args in targets:
        optimized = optimized_funcs[name]
        assert optimized(*args) == func(*args), f"{name}: results differ"
        t_orig = time_function(func, args)
        t_loop = time_function(optimized, args)
        speedup = t_orig / t_loop if t_loop > 0 else 0.0
        speedups.append(speedup)
        print(f"  {name:<20} {t_orig:>14.2f} {t_loop:>12.2f} {speedup:>9.2f}x")

    geo_mean = statistics.geometric_mean(speedups) if speedups else 0.0
    print(f"\n  Geometric mean speedup: {geo_mean:.3f}x")
    print()

    # ─────────────────────────────────────────────────────────
    #  Benchmark 3: Reachable Depth
    # ─────────────────────────────────────────────────────────
    print("┌──────────────────────────────────────────────────────────────┐")
    print("│  BENCHMARK 3: Reachable Depth                               │")
    print("└──────────────────────────────────────────────────────────────┘")

    depth_targets = [
        ("sum", lambda n: (n, 0)),
        ("fib", lambda n: (n,)),
    ]
    print(f"  {'Function':<20} {'Original':>12} {'Loop':>12}")
    print(f"  {'─' * 20} {'─' * 12} {'─' * 12}")

    originals = {name: func for name, func, _ in targets}
    for name, make_args in depth_targets:
        d_orig = max_depth(originals[name], make_args)
        d_loop = max_depth(optimized_funcs[name], make_args, limit=1 << 16)
        print(f"  {name:<20} {d_orig:>12} {d_loop:>12}")
    print()

    stats = optimizer.get_statistics()
    print("┌──────────────────────────────────────────────────────────────┐")
    print("│  SUMMARY                                                    │")
    print("└──────────────────────────────────────────────────────────────┘")
    print(f"  Total functions benchmarked:   {len(targets)}")
    print(f"  Functions optimized:           {stats.get('optimized', 0)}")
    print(f"  Tail calls rewritten:          {stats.get('tail_calls_rewritten', 0)}")
    print(f"  Geometric mean speedup:        {geo_mean:.3f}x")
    print(f"  Avg rewrite time:              {avg_rewrite:.2f} ms")
    print()
    print("=" * 80)
    print("  TAILREC BENCHMARK SUITE COMPLETE")
    print("=" * 80)

    return {
        "geo_mean_speedup": geo_mean,
        "avg_rewrite_ms": avg_rewrite,
        "optimized": stats.get('optimized', 0),
    }


if __name__ == "__main__":
    run_benchmarks()
