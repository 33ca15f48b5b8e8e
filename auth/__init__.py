"""auth/ -- Credential hashing, bearer tokens, and account flows for authgate.

Layer rule: auth/ imports only stdlib + third-party libraries + core/.
It does NOT import from api/.
api/ imports from auth/, not the other way around.
"""
