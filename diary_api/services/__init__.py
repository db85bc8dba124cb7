# Services package init
"""
Diary Backend — Services Layer
===============================

What:  Business logic layer sitting between routes (HTTP) and the key-value store.
How:   Services take the store as an argument, apply the record and summary
       rules, and return response models. Routes receive the store through
       FastAPI's dependency injection (get_kv_store).

Service Inventory:
    - KVStore (abstract): put / get / delete / list contract for the store
    - SQLKVStore: KVStore over an async SQLAlchemy table (kv_entries)
    - RecordService: create / list / update / delete of diary records
    - SummaryService: trailing-window histogram aggregation

Neither RecordService nor SummaryService knows which KVStore it talks to,
so tests run them against an in-memory store.
"""
