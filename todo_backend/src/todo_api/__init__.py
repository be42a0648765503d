"""
FastAPI Todo API package.

The application is built by ``todo_api.main.create_app``; ``todo_api.main.app``
is the instance configured from environment variables (``uvicorn todo_api.main:app``).
"""

__version__ = "1.0.0"
