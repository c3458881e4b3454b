"""
Case Ledger Kernel

The financial core of a legal case-management system:
- Immutable case aggregate (pricing, participants, installments, costs)
- Derived totals cache, recomputed wholesale on every mutation
- Typed validation and conflict errors
- Optimistic versioning for concurrent writers
"""

__version__ = "0.1.0"
