"""
OpenToilet Backend — API Routes Package
=========================================

Route Inventory:
    - restrooms.py: GET/POST /api/restrooms, PUT /api/restrooms/{id},
                    POST /api/restrooms/{id}/codes,
                    POST /api/restrooms/codes/{id}/vote
    - health.py:    GET /health and GET /api/health

Routes stay thin: parse the request, call a service, return its model.
"""
