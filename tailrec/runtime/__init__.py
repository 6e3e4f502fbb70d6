from tailrec.runtime.recur import RecurReport, TailRecOptimizer, optimize_source, recur

__all__ = ['RecurReport', 'TailRecOptimizer', 'optimize_source', 'recur']
