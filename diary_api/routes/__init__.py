"""
Diary Backend — API Routes Package
===================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - records.py:  POST/GET/PUT/DELETE /api   (diary record CRUD)
    - summary.py:  GET /summary-data          (window aggregation)
    - health.py:   GET /health                (service health check)
    - params.py:   query/body parsing helpers shared by the handlers

Routes stay thin: decode the request, call a service, return its model.
"""
