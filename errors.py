"""Typed failures raised by the index client and the search service.

Each class carries the HTTP status the web layer answers with.
"""


class SearchBackendError(Exception):
    status_code = 500
    message = "Search failed."

    def __init__(self, message: str | None = None, upstream_status: int | None = None):
        super().__init__(message or self.message)
        self.upstream_status = upstream_status


class IndexNotConfiguredError(SearchBackendError):
    status_code = 503
    message = "Search index is not configured. Set INDEX_ENDPOINT."


class IndexUnavailableError(SearchBackendError):
    status_code = 503
    message = "Cannot reach the search index."


class IndexUnauthorizedError(SearchBackendError):
    status_code = 401
    message = "Search index rejected the credentials (401 Unauthorized)."


class IndexForbiddenError(SearchBackendError):
    status_code = 403
    message = "Access to the search index was denied (403 Forbidden)."


class IndexNotFoundError(SearchBackendError):
    status_code = 404
    message = "Search index does not exist. Run a data sync first."


class EpisodeNotFoundError(IndexNotFoundError):
    message = "Episode not found."
