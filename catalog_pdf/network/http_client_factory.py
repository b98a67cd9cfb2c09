from __future__ import annotations

from typing import Any, Literal

import httpx

from catalog_pdf.config.models import NetworkConfig

ClientPurpose = Literal["shopify", "images"]


class HttpClientFactory:
    """Кеширует httpx.Client по назначению: Admin API магазина или CDN картинок."""

    def __init__(
        self,
        network: NetworkConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.network = network
        self._transport = transport
        self._clients: dict[str, httpx.Client] = {}

    def get(self, purpose: ClientPurpose) -> httpx.Client:
        client = self._clients.get(purpose)
        if client is None:
            client = httpx.Client(**self._client_kwargs(purpose))
            self._clients[purpose] = client
        return client

    def close(self) -> None:
        for client in self._clients.values():
            client.close()
        self._clients.clear()

    def _client_kwargs(self, purpose: ClientPurpose) -> dict[str, Any]:
        if purpose == "images":
            timeout = self.network.image_timeout_sec
        else:
            timeout = self.network.request_timeout_sec
        kwargs: dict[str, Any] = {
            "timeout": httpx.Timeout(timeout),
            "follow_redirects": purpose == "images",
            "headers": {"User-Agent": self.network.user_agent},
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        elif self.network.proxy:
            kwargs["proxy"] = self.network.proxy
        return kwargs
