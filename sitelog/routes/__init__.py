"""
SiteLog Backend: API Routes Package
======================================

Route Inventory:
    - auth.py:     POST /api/auth/register, POST /api/auth/login
    - reports.py:  POST /api/reports          (create, multipart or JSON)
                   GET  /api/reports          (filter + paginate)
                   GET  /api/reports/{id}     (report with attachments)
    - health.py:   GET  /health

Routes stay thin: extract input, call a service, return its result.
Every /api/reports route depends on the bearer token guard.
"""
