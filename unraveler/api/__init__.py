"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from unraveler.api import app

    uvicorn unraveler.api:app --reload
"""

from unraveler.api.app import app

__all__ = ["app"]
