# backend/fintrack/__init__.py
"""Fintrack: personal portfolio aggregation, valuation and account ledger API."""
