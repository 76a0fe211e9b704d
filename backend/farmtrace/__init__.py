"""
FarmTrace Backend — Package Initializer
========================================

What: Produce provenance service. Tracks farm produce records on a key/value
      ledger and who currently holds each one.

Layers:
    ┌─────────────────────────────────────┐
    │     Routes (produce shim, health)   │  ← HTTP wiring only
    ├─────────────────────────────────────┤
    │     Invoker (HTTP-facing service)   │  ← path params → ledger calls
    ├─────────────────────────────────────┤
    │     ProduceContract (ledger funcs)  │  ← record/query/transfer rules
    ├─────────────────────────────────────┤
    │     WorldState (SQLAlchemy k/v)     │  ← persistence
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
