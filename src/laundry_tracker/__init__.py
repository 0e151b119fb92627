"""
Laundry Tracker – order ledger for a commercial laundry intake desk.

Two photos per batch (scale + shipping label) become a draft order through a
vision model; the operator reviews it and the confirmed order lands in a
persisted ledger that can be grouped by month/service and exported as CSV.
"""

__all__ = [
    "cli",
    "config",
    "domain",
    "extraction",
    "ledger",
    "logging",
    "paths",
    "workflow",
]
