# backend/fintrack/services/__init__.py
"""
Service layer.

- store / protocols: record store access (SQLAlchemy-backed)
- finance_data: in-memory collections for every table
- ledger: balance changes with compensating rollback, reconciliation
- finance_state: loading plus every write command
- portfolio: pure aggregation, valuation and lifetime earnings
- catalog, export, rate_limiter, scheduler: supporting services
"""
