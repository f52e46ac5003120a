"""
client -- Python client for the Products CMS auth API.

SessionContext caches the signed-in user on the client side and RouteGuard
turns that cache into a render/redirect decision for protected views.
"""
