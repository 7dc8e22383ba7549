"""
Mirror node REST client.

A thin `requests.Session` wrapper that resolves mirror addresses to base
URLs and retries transient failures (5xx, 429, connection errors) with
exponential backoff.
"""

from __future__ import annotations
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Type

import requests

from ..runtime.backoff import ExponentialBackoff
from ..runtime.errors import MirrorNodeError

logger = logging.getLogger(__name__)

LOCAL_HOSTS = ("localhost", "127.0.0.1")
LOCAL_REST_PORT = 5551
LOCAL_FEE_PORT = 8084


def is_local(address: str) -> bool:
    host = address.rsplit(":", 1)[0] if ":" in address else address
    return host in LOCAL_HOSTS


def base_url(address: str, local_port: Optional[int] = None) -> str:
    """
    Build the REST base URL for a mirror address.

    Remote mirrors are reached over https on their given port (443 omitted);
    localhost mirrors use plain http, optionally on a service-specific port.
    """
    if address.startswith(("http://", "https://")):
        return address.rstrip("/")
    host, sep, port = address.rpartition(":")
    if not sep:
        host, port = address, ""
    if host in LOCAL_HOSTS:
        return f"http://{host}:{local_port or port or LOCAL_REST_PORT}"
    if port and port != "443":
        return f"https://{host}:{port}"
    return f"https://{host}"


class MirrorRestClient:
    """
    REST client bound to the first address of a mirror network.
    """

    def __init__(
        self,
        mirror_network: List[str],
        session: Optional[requests.Session] = None,
        max_attempts: int = 10,
        min_backoff: float = 0.25,
        max_backoff: float = 8.0,
        timeout: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the REST client.

        Args:
            mirror_network: Mirror addresses (`host:port`); only the first is used
            session: requests session, injectable for tests
            max_attempts: Attempts per request including the first
            min_backoff: Delay before the first retry
            max_backoff: Delay ceiling
            timeout: Per-request HTTP timeout in seconds
            sleep: Sleep function, injectable for tests
        """
        if not mirror_network:
            raise MirrorNodeError("No mirror node is configured")
        self.address = mirror_network[0]
        self.session = session or requests.Session()
        self.max_attempts = max_attempts
        self.backoff = ExponentialBackoff(min_backoff, max_backoff)
        self.timeout = timeout
        self._sleep = sleep

    def url(self, path: str, local_port: Optional[int] = None) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return base_url(self.address, local_port) + path

    def request(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None,
                data: Optional[bytes] = None, headers: Optional[Dict[str, str]] = None,
                local_port: Optional[int] = None,
                error_cls: Type[MirrorNodeError] = MirrorNodeError) -> Any:
        """
        Send a request and decode its JSON answer.

        Raises:
            MirrorNodeError (or error_cls): On a non-retryable HTTP status, an
                undecodable body, or when every attempt failed
        """
        url = self.url(path, local_port)
        last_error: Optional[BaseException] = None
        last_status: Optional[int] = None

        for attempt in range(self.max_attempts):
            if attempt > 0:
                delay = self.backoff.calculate_delay(attempt)
                logger.warning(f"Mirror request {method} {url} failed, retrying in {delay:.2f}s "
                               f"(attempt {attempt + 1}/{self.max_attempts})")
                self._sleep(delay)
            try:
                response = self.session.request(method, url, params=params, data=data,
                                                headers=headers, timeout=self.timeout)
            except (requests.ConnectionError, requests.Timeout) as e:
                last_error = e
                last_status = None
                continue
            except requests.RequestException as e:
                raise error_cls(f"Mirror request {method} {url} failed: {e}", details={"url": url}, cause=e)

            last_status = response.status_code
            if response.status_code >= 500 or response.status_code == 429:
                last_error = None
                continue
            if response.status_code >= 400:
                raise error_cls(f"Mirror node returned HTTP {response.status_code}",
                                details={"url": url, "status": response.status_code, "body": response.text})
            try:
                return response.json()
            except ValueError as e:
                raise error_cls("Mirror node returned invalid JSON", details={"url": url}, cause=e)

        raise error_cls(f"Mirror request failed after {self.max_attempts} attempts",
                        details={"url": url, "status": last_status}, cause=last_error)

    def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", path, params=params)

    def get_paginated(self, path: str, key: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """
        Collect `key` items across every page, following `links.next`.

        Raises:
            MirrorNodeError: If a page is not an object with a `key` list
        """
        items: List[Any] = []
        next_path: Optional[str] = path
        while next_path:
            page = self.get_json(next_path, params)
            params = None
            if not isinstance(page, dict):
                raise MirrorNodeError("Mirror page is not a JSON object", details={"path": next_path})
            page_items = page.get(key, [])
            links = page.get("links") or {}
            if not isinstance(page_items, list) or not isinstance(links, dict):
                raise MirrorNodeError(f"Mirror page has a malformed {key!r} or 'links' field",
                                      details={"path": next_path})
            items.extend(page_items)
            next_path = links.get("next")
        return items

    def close(self) -> None:
        self.session.close()


__all__ = ["MirrorRestClient", "base_url", "is_local", "LOCAL_FEE_PORT", "LOCAL_REST_PORT"]
