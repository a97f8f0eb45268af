"""
API routers grouped by resource.
"""
