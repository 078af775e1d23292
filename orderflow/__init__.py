"""
                Orderflow

Multi-tenant restaurant order-processing backend: catalog-priced order
creation, per-business order numbering, a fulfillment state machine and a
payment ledger, all behind async SQLAlchemy transactions.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
