"""auth/ -- Authentication, authorization, and account lifecycle for TenantGate.

Layer rule: auth/ imports stdlib, third-party libraries, core/, and audit/
(auth/sessions.py writes the login trail). It does NOT import from api/ or
catalog/. api/ and catalog/ import from auth/, not the other way around.
"""
