"""
FarmTrace Backend — API Routes Package
========================================

Route Inventory:
    - produce.py: GET /get_produce/{id}, /add_produce/{produce},
                  /get_all_produce, /change_holder/{holder}
    - health.py:  GET /health

Routes are thin: they pass the request and response through to the invoker,
which owns parsing, ledger calls and result shaping.
"""
