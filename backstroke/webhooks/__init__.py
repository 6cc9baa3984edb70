"""Webhook gateway: manage upstream event subscriptions on GitHub.

The link reconciler only depends on the :class:`WebhookGateway` protocol.
Production wiring uses :class:`GitHubWebhookGateway`; tests and local runs
inject :class:`InMemoryWebhookGateway`.
"""

from __future__ import annotations

from .errors import GatewayError, WebhookConfigError
from .gateway import WebhookGateway, WebhookSubscriber
from .github import GitHubWebhookConfig, GitHubWebhookGateway
from .memory import DeregisterCall, InMemoryWebhookGateway, RegisterCall

__all__ = [
    "DeregisterCall",
    "GatewayError",
    "GitHubWebhookConfig",
    "GitHubWebhookGateway",
    "InMemoryWebhookGateway",
    "RegisterCall",
    "WebhookConfigError",
    "WebhookGateway",
    "WebhookSubscriber",
]
