"""
Dependency providers for the API routers.

The ``ModelManager`` is built once in the application lifespan and shared by
every request. Tests replace it through ``app.dependency_overrides``.
"""

from saltcore.models.manager import ModelManager


def get_model_manager() -> ModelManager:
    """Dependency to get the shared model manager."""
    from ..main import app_state
    return app_state["model_manager"]
