from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException

import config
from errors import SearchBackendError
from index_client import EpisodeIndex
from search_cache import SearchCache
from search_ops import SearchService, sort_results

config.setup_logging()
app = Flask(__name__)


def build_service() -> SearchService:
    cache = SearchCache(ttl=config.CACHE_TTL, sweep_interval=config.CACHE_SWEEP_INTERVAL)
    cache.start_sweeper()
    return SearchService(EpisodeIndex.from_config(), cache, config.SearchSettings())


def _service() -> SearchService:
    return app.extensions["search"]


@app.before_request
def _ensure_service():
    # built once per process; tests put their own service in place first
    if "search" not in app.extensions:
        app.extensions["search"] = build_service()


def _flag(name: str) -> bool:
    return request.args.get(name) == "1"


@app.errorhandler(SearchBackendError)
def _backend_error(e: SearchBackendError):
    return jsonify(error=str(e)), e.status_code


@app.get("/api/search")
def api_search():
    q = (request.args.get("q") or "").strip()
    if not q:
        return jsonify(error="Search query is required (q)."), 400

    payload = _service().search(q, exact=_flag("exact"))

    sort_by = request.args.get("sort")
    if sort_by and sort_by != "relevance":
        payload = {**payload, "results": sort_results(payload["results"], sort_by)}
    return jsonify(payload)


@app.get("/api/episode/<episode_id>")
def api_episode(episode_id):
    episode_id = episode_id.strip()
    if not episode_id:
        return jsonify(error="Episode id is required."), 400
    q = (request.args.get("q") or "").strip() or None
    return jsonify(_service().episode_detail(episode_id, q, exact=_flag("exact")))


# Call after a data re-sync: cached entries carry no content version.
@app.post("/admin/cache/clear")
def admin_cache_clear():
    q = (request.args.get("q") or "").strip() or None
    _service().invalidate_cache(q)
    return jsonify(ok=True, cleared=q or "all")


@app.get("/admin/cache")
def admin_cache_stats():
    return jsonify(_service().cache_stats())


@app.errorhandler(Exception)
def _unexpected(e):
    if isinstance(e, HTTPException):
        return e
    app.logger.exception("Request failed")
    return jsonify(error=f"Unexpected error: {e}"), 500


if __name__ == '__main__':
    app.run(debug=config.APP_ENV == "development")
