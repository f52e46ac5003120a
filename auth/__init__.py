"""auth/ -- Authentication and session package for Products CMS.

Layer rule: auth/ imports only stdlib + third-party libraries + core/.
It does NOT import from api/, web/, catalog/, or client/.
api/ and web/ import from auth/, not the other way around.
"""
