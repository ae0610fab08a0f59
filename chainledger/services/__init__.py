"""
Services.

Indexing pipeline and ledger handlers.
"""
