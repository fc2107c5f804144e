"""
Shared route dependencies.
"""
from fastapi import Depends
from sqlalchemy.orm import Session
from evenly.db.session import get_db
from evenly.services.ledger_store import BalanceCache, SqlLedgerStore

# Process-wide cache of derived group balances; every ledger write invalidates its group
balance_cache = BalanceCache()


def get_ledger_store(db: Session = Depends(get_db)) -> SqlLedgerStore:
    """Dependency for a ledger store bound to the request's session."""
    return SqlLedgerStore(db, balance_cache=balance_cache)
