"""API routes module - registers all route blueprints.

Route Organization:
- users.py: Registration, login, profile, user management (6 routes)
- apps.py: Application registry (6 routes)
- kv_store.py: Caller-scoped key-value storage (4 routes)
- admin.py: Cross-owner key-value reports (2 routes)
- system.py: Health and readiness probes (2 routes)
"""

from apiflask import APIFlask

from tinycore.api.routes import admin, apps, kv_store, system, users


def register_blueprints(app: APIFlask) -> None:
    """Register all route blueprints with the Flask app.

    Args:
        app: APIFlask application instance
    """
    app.register_blueprint(system.api)
    app.register_blueprint(users.api)
    app.register_blueprint(apps.api)
    app.register_blueprint(kv_store.api)
    app.register_blueprint(admin.api)


__all__ = ["register_blueprints"]
