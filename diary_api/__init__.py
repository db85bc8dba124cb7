"""
Diary Backend — Application Package Initializer
================================================

What: Marks the `diary_api` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Records, Summary)       │  ← Business rules, aggregation
    ├─────────────────────────────────────┤
    │        Schemas (Wire contract)      │  ← Pydantic models
    ├─────────────────────────────────────┤
    │      KV Store (Persistence)         │  ← Abstract store + SQL backend
    └─────────────────────────────────────┘

    Routes parse requests and format responses; services only see a KVStore.
"""

__version__ = "1.0.0"
