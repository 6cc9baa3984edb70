"""Health probe resources.

Usage
-----
Import health resources for route registration::

    from backstroke.api.health.resources import HealthResource, ReadyResource
"""
