"""Webhook gateway errors."""

from __future__ import annotations

from backstroke.errors import BackstrokeError, ErrorKind


class GatewayError(BackstrokeError):
    """Raised when the hosting platform rejects or fails a webhook call."""

    kind = ErrorKind.GATEWAY_ERROR
    title = "Webhook gateway failure"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, operation: str, status_code: int) -> GatewayError:
        """Return an error for a non-2xx response to ``operation``."""
        return cls(
            f"GitHub {operation} failed with HTTP {status_code}",
            status_code=status_code,
        )

    @classmethod
    def transport(cls, operation: str, exc: BaseException) -> GatewayError:
        """Return an error for a request that never produced a response."""
        return cls(f"GitHub {operation} failed: {exc}")

    @classmethod
    def malformed(cls, operation: str, field: str) -> GatewayError:
        """Return an error for a response missing an expected field."""
        return cls(f"GitHub {operation} response missing expected field: {field}")

    @classmethod
    def partial_cleanup(cls, hook_ids: list[str]) -> GatewayError:
        """Return an error naming the hooks that could not be removed."""
        return cls(f"Could not remove webhook(s): {', '.join(hook_ids)}")


class WebhookConfigError(RuntimeError):
    """Raised when webhook gateway configuration is invalid."""

    @classmethod
    def missing_token(cls) -> WebhookConfigError:
        """Return an error when no GitHub token is configured."""
        return cls("BACKSTROKE_GITHUB_TOKEN is required for the webhook gateway")

    @classmethod
    def missing_webhook_url(cls) -> WebhookConfigError:
        """Return an error when no public callback URL is configured."""
        return cls("BACKSTROKE_WEBHOOK_URL is required for the webhook gateway")

    @classmethod
    def empty_token(cls) -> WebhookConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")
