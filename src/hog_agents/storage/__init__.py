"""Storage abstractions for hog agents."""

from .ledger import JsonSessionLedger, SessionLedger, UpsertResult, upsert_session
from .models import AgentSession, LedgerData, SessionMode

__all__ = [
    "AgentSession",
    "JsonSessionLedger",
    "LedgerData",
    "SessionLedger",
    "SessionMode",
    "UpsertResult",
    "upsert_session",
]
