"""catalog/ -- Tenant-owned business resources (brands).

Layer rule: catalog/ imports from auth/ (Principal, Role, AccessGuard, errors)
and core/; it never imports from api/ or audit/.
"""
