"""Event log replay into ledger projections."""
