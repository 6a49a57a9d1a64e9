"""auth/ -- Accounts, JWT sessions, and refresh token rotation for citygarage.

Layer rule: auth/ imports stdlib, third-party libraries, and core/ only.
It does NOT import from api/, cities/, or cache/.
api/ imports from auth/, not the other way around.
"""
