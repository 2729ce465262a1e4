from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

"""
Per-context query statistics.

Useful when tuning the grid resolution: coarse cells keep the index small but
hand more candidates to the distance model. `candidates_scanned` vs.
`results_returned` shows that trade-off for a real workload.
"""


@dataclass
class QueryStats:
    """Query engine usage stats (best-effort)."""

    queries: int = 0
    candidates_scanned: int = 0
    results_returned: int = 0
    full_scans: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "queries": int(self.queries),
            "candidates_scanned": int(self.candidates_scanned),
            "results_returned": int(self.results_returned),
            "full_scans": int(self.full_scans),
        }


_query_stats_var: contextvars.ContextVar[QueryStats | None] = contextvars.ContextVar(
    "geonear_query_stats", default=None
)


def record_query(*, candidates: int, results: int, full_scan: bool = False) -> None:
    st = _query_stats_var.get()
    if not st:
        return
    st.queries += 1
    st.candidates_scanned += candidates
    st.results_returned += results
    if full_scan:
        st.full_scans += 1


@contextmanager
def record_query_stats() -> Iterator[QueryStats]:
    """Capture query stats within the current context (thread/task-safe)."""

    stats = QueryStats()
    token = _query_stats_var.set(stats)
    try:
        yield stats
    finally:
        _query_stats_var.reset(token)
