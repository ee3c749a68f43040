"""ASGI entry point.

Run locally with ``uvicorn scrapegate.main:app --reload``. Settings are read
from the environment (and ``.env.{APP_ENV}``) when this module is imported.
"""

from scrapegate.core.app_factory import create_app

# One admission controller per process; it lives on app.state.
app = create_app()
