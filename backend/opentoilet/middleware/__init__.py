"""
OpenToilet Backend — Middleware Package
=========================================

Middleware Chain (request direction):
    [Rate Limit (writes)] → [Request ID] → [Logging] → [GZip] → [CORS] → route

Responses pass back through the same chain in reverse, which is where the
request ID header is attached and the access log line is written.
"""
