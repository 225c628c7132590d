"""Zeus user administration API package.

To use the Flask app:
    from zeus.flask_app import create_app

To use the user handler without Flask:
    from zeus.core.users import UserResourceHandler
    from zeus.core.store import MemoryUserStore, MemoryPermissionResolver
"""
# Note: flask_app is not imported here so that zeus.core stays usable
# from scripts without pulling in Flask
