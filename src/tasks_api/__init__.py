"""
Tasks backend package.

A small FastAPI service exposing CRUD endpoints for to-do tasks under
``/api/tasks``. Build an application with :func:`tasks_api.main.create_app`
or serve the module-level one with ``python -m tasks_api``.
"""

__version__ = "1.0.0"
