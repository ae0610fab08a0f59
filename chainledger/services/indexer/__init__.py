"""
Log ingestion: decoding, routing, idempotent dispatch, backfill, live
listening and reconciliation, wired together by IndexerRuntime.
"""
