"""
SiteLog Backend: Services Layer
==================================

Service Inventory:
    - AuthService:   registration, login, token verification
    - ReportService: report submission, listing and lookup
    - FileService:   upload validation, storage and cleanup

Services take an AsyncSession and plain values (including the caller
identity) as parameters, so they can be tested without HTTP.
"""
