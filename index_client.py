from __future__ import annotations
import logging
import time

import requests

import config
from errors import (
    IndexForbiddenError,
    IndexNotConfiguredError,
    IndexNotFoundError,
    IndexUnauthorizedError,
    IndexUnavailableError,
    SearchBackendError,
)
from query_builder import episode_lookup_request

log = logging.getLogger(__name__)

_UNAVAILABLE = {502, 503, 504}


def hits(response: dict | None) -> list[dict]:
    return ((response or {}).get("hits") or {}).get("hits") or []


def classify(status: int, body: str = "") -> SearchBackendError:
    """Upstream HTTP status -> typed failure the web layer can map to a response code."""
    detail = (body or "")[:300]
    if status == 401:
        return IndexUnauthorizedError(upstream_status=status)
    if status == 403:
        return IndexForbiddenError(upstream_status=status)
    if status == 404 or "index_not_found" in detail:
        return IndexNotFoundError(upstream_status=status)
    if status in _UNAVAILABLE:
        return IndexUnavailableError(upstream_status=status)
    return SearchBackendError(f"Search index returned {status}: {detail}", upstream_status=status)


class EpisodeIndex:
    def __init__(self, endpoint: str, index_name: str = "episodes", api_key: str | None = None,
                 username: str | None = None, password: str | None = None,
                 timeout: float | None = None, session: requests.Session | None = None):
        self.endpoint = (endpoint or "").strip().rstrip("/")
        self.index_name = index_name
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers["Authorization"] = f"ApiKey {api_key}"
        elif username and password:
            self.session.auth = (username, password)

    @classmethod
    def from_config(cls) -> "EpisodeIndex":
        return cls(
            endpoint=config.INDEX_ENDPOINT,
            index_name=config.INDEX_NAME,
            api_key=config.INDEX_API_KEY,
            username=config.INDEX_USERNAME,
            password=config.INDEX_PASSWORD,
            timeout=config.INDEX_TIMEOUT,
        )

    def _request(self, method: str, path: str, **kwargs) -> dict:
        if not self.endpoint:
            raise IndexNotConfiguredError()
        url = f"{self.endpoint}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            log.error("Search index unreachable at %s: %s", url, e)
            raise IndexUnavailableError() from e
        except requests.RequestException as e:
            raise SearchBackendError(f"Search request failed: {e}") from e

        if resp.status_code >= 400:
            err = classify(resp.status_code, resp.text)
            log.error("Search index %s %s -> %s", method, url, resp.status_code)
            raise err
        try:
            return resp.json()
        except ValueError as e:
            raise SearchBackendError("Search index returned a non-JSON body") from e

    def search(self, body: dict) -> dict:
        t0 = time.perf_counter()
        data = self._request("POST", f"/{self.index_name}/_search", json=body)
        log.debug("Index search took %.1fms, %d hits", (time.perf_counter() - t0) * 1000, len(hits(data)))
        return data

    def get_episode(self, episode_id: str) -> dict | None:
        found = hits(self.search(episode_lookup_request(episode_id)))
        if not found:
            return None
        return found[0].get("_source") or None

    def ping(self) -> dict:
        return self._request("GET", "/")
