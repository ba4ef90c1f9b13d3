"""Route handlers.

Handlers answer with JSON page documents (see `views.render`) or redirects.
They are wired to paths, methods, and gates in `hackathon_starter.api.routes`.
"""
