"""Static file serving with long-lived caching."""

from __future__ import annotations

from starlette.staticfiles import StaticFiles


class CachedStaticFiles(StaticFiles):
    """StaticFiles that marks every file response cacheable for `max_age` seconds."""

    def __init__(self, *args, max_age: int = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self.max_age = max_age

    def file_response(self, *args, **kwargs):
        response = super().file_response(*args, **kwargs)
        response.headers["Cache-Control"] = f"public, max-age={self.max_age}"
        return response
