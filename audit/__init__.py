"""audit/ -- Append-only login/logout history.

Layer rule: audit/ imports only core/ and third-party libraries. auth/ and
api/ use it; it never imports them.
"""
