from .schema import DTYPES, ProgressRow, SessionSummaryRow
from .progress import (
    AwardOutcome,
    InMemoryProgressStore,
    ProgressStore,
    SqliteProgressStore,
    UpsertResult,
)
from .store import (
    init_store,
    validate_records,
    append_session_summaries,
    load_all,
    query_user_history,
)

__all__ = [
    "DTYPES",
    "ProgressRow",
    "SessionSummaryRow",
    "AwardOutcome",
    "InMemoryProgressStore",
    "ProgressStore",
    "SqliteProgressStore",
    "UpsertResult",
    "init_store",
    "validate_records",
    "append_session_summaries",
    "load_all",
    "query_user_history",
]
