from hint_engine.ledger.base import LedgerService, LocalLedger
from hint_engine.ledger.paused_store import PausedSessionStore
from hint_engine.ledger.supabase import SupabaseLedger

__all__ = ["LedgerService", "LocalLedger", "PausedSessionStore", "SupabaseLedger"]
