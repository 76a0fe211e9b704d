"""
FarmTrace Backend — Services Layer
====================================

Service Inventory:
    - ProduceInvoker:  HTTP-facing operations; unit of work and retries
    - ProduceContract: ledger functions (record, query, transfer, seed)
    - WorldState:      key/value access to the produce_state table
"""
