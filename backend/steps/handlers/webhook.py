"""Webhook step — call an external HTTP endpoint and keep its JSON reply.

Config:
    url: Target URL (required)
    method: HTTP method (default: POST)
    headers: Extra headers, merged over ``Content-Type: application/json``
    body: JSON-serializable request body (omitted when null)

The parsed response is stored under ``<step_id>_response``.
"""

import ipaddress
import json
from typing import Callable
from urllib.parse import urlparse

import httpx
import structlog

from core.constants import StepKind
from core.exceptions import UnsafeWebhookUrlError, WebhookFailedError
from steps.base import StepHandler, StepScope
from workflow.context import ExecutionContext
from workflow.definitions import Step, WebhookConfig

logger = structlog.get_logger(__name__)

ClientFactory = Callable[..., httpx.AsyncClient]


def _is_private_ip(host: str) -> bool:
    """True for private, loopback, link-local or reserved IP literals."""
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved


def validate_url_safety(url: str) -> None:
    """Reject URLs that are not plain http(s) to a public host.

    Raises:
        UnsafeWebhookUrlError: If the URL is unsafe
    """
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https"):
        raise UnsafeWebhookUrlError(
            f"Unsupported scheme: {parsed.scheme or '(none)'}. Only HTTP and HTTPS allowed."
        )

    hostname = parsed.hostname
    if not hostname:
        raise UnsafeWebhookUrlError("URL must have a valid hostname")
    if hostname.lower() == "localhost" or _is_private_ip(hostname):
        raise UnsafeWebhookUrlError(f"Connections to {hostname} are not allowed")


class WebhookHandler(StepHandler):
    kind = StepKind.WEBHOOK
    display_name = "Webhook"
    description = "Send an HTTP request and store the JSON response"

    def __init__(
        self,
        timeout: float = 30.0,
        block_private_networks: bool = True,
        client_factory: ClientFactory = httpx.AsyncClient,
    ):
        self.timeout = timeout
        self.block_private_networks = block_private_networks
        self.client_factory = client_factory

    async def execute(self, step: Step, context: ExecutionContext, scope: StepScope) -> None:
        config: WebhookConfig = step.config
        if self.block_private_networks:
            validate_url_safety(config.url)

        headers = {"Content-Type": "application/json", **config.headers}
        content = json.dumps(config.body) if config.body is not None else None

        timeout = self.timeout
        remaining = context.token.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)

        async with self.client_factory(timeout=timeout) as client:
            response = await context.token.guard(
                client.request(config.method, config.url, headers=headers, content=content)
            )

        logger.info(
            "Webhook responded",
            step=step.id,
            method=config.method,
            url=config.url,
            status_code=response.status_code,
        )
        if not response.is_success:
            raise WebhookFailedError(response.status_code, response.reason_phrase)

        # An empty success body (e.g. 204) is stored as None
        result = response.json() if response.content else None
        context.set_variable(f"{step.id}_response", result)
