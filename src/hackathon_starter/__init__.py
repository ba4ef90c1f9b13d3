"""Hackathon Starter: a web application boilerplate with local and OAuth sign-in."""

__version__ = "0.1.0"
