"""
Admin interface server.
Only the router wiring lives here; the admin UI itself is served as static
assets from `admin/public`.
"""
