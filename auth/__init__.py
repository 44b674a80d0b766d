"""auth/ -- Token issuance, verification, and refresh lifecycle for the HotDeal API.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
