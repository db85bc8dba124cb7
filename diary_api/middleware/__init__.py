"""
Diary Backend — Middleware Package
===================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: reject abusive requests before any processing
    2. Request ID: correlation ID for logs and error bodies
    3. Logging: one access line per request, tagged with the request ID
"""
