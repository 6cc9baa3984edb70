"""Backstroke HTTP API layer.

Usage
-----
Create the application::

    from backstroke.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # with /links routes
"""

from backstroke.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
