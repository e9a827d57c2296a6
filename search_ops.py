# search_ops.py: ties query building, the index, highlight partitioning,
# caption correlation and the result cache together
from __future__ import annotations
import logging
import time
from datetime import datetime
from typing import Any, Callable

from config import SearchSettings
from errors import EpisodeNotFoundError
from highlights import (
    build_preview,
    fragments_from_highlight,
    partition,
    single_term_preview,
    strip_markers,
    to_display_markup,
)
from index_client import hits
from models import CaptionSegment, EpisodeMatch, Field, KeywordPreview, OrdinalHint
from query_builder import build_query, to_episode_request, to_request
from search_cache import SearchCache
from timestamps import correlate, format_timestamp
from vtt import fetch_captions as _fetch_captions

log = logging.getLogger(__name__)


def _result_card(hit: dict, query) -> dict:
    source = hit.get("_source") or {}
    highlight = hit.get("highlight") or {}
    transcript = source.get("transcript_text") or ""
    description = source.get("description") or ""
    fragments = fragments_from_highlight(highlight)
    terms = query.terms

    previews = []
    if len(terms) > 1:
        previews = partition(fragments, terms, transcript or description)
        preview = build_preview(previews, terms, fragments, transcript, description)
    else:
        preview = single_term_preview(fragments, transcript, description)

    title = (highlight.get("title") or [None])[0] or source.get("title") or ""
    card = {
        "episodeId": source.get("episode_id"),
        "title": to_display_markup(title),
        "description": source.get("description"),
        "publishedAt": source.get("published_at"),
        "listenUrl": source.get("listen_url"),
        "preview": to_display_markup(preview),
        "rank": hit.get("_score"),
    }
    if previews:
        card["keywordPreviews"] = [
            {"keyword": p.keyword, "fragment": to_display_markup(p.fragment)} for p in previews
        ]
    return card


def _timestamp_dict(match: EpisodeMatch) -> dict:
    out = match.to_dict()
    if match.timestamp is not None:
        out["timestamp"]["label"] = format_timestamp(match.timestamp.start_time)
    return out


def _preview_dict(p: KeywordPreview) -> dict:
    out: dict[str, Any] = {"keyword": p.keyword, "fragment": p.fragment}
    if p.timestamp is not None:
        out["timestamp"] = {**p.timestamp.to_dict(), "label": format_timestamp(p.timestamp.start_time)}
    return out


def _published(r: dict) -> float:
    raw = r.get("publishedAt")
    if not raw:
        return 0.0
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def sort_results(results: list[dict], sort_by: str = "relevance") -> list[dict]:
    """New list ordered for display; the input is left alone."""
    out = list(results)
    if sort_by == "relevance":
        out.sort(key=lambda r: r.get("rank") or 0, reverse=True)
    elif sort_by == "date-desc":
        out.sort(key=_published, reverse=True)
    elif sort_by == "date-asc":
        out.sort(key=_published)
    return out


class SearchService:
    def __init__(self, index, cache: SearchCache, settings: SearchSettings | None = None,
                 fetch_captions: Callable[..., list[CaptionSegment]] = _fetch_captions):
        self.index = index
        self.cache = cache
        self.settings = settings or SearchSettings()
        self.fetch_captions = fetch_captions

    # ---------- listing ----------
    def search(self, raw_query: str, exact: bool = False) -> dict[str, Any]:
        q = raw_query.strip()
        key = f"{q}:exact" if exact else q

        cached = self.cache.get(key)
        if cached is not None:
            log.debug("[CACHE HIT] %s", key)
            return cached

        t0 = time.perf_counter()
        query = build_query(q, exact=exact)
        response = self.index.search(to_request(query, self.settings))
        results = [_result_card(h, query) for h in hits(response)]
        payload = {"results": results, "count": len(results)}

        self.cache.set(key, payload)
        log.info("Search %r: %d results in %.1fms", key, len(results), (time.perf_counter() - t0) * 1000)
        return payload

    # ---------- episode detail ----------
    def episode_detail(self, episode_id: str, raw_query: str | None = None, exact: bool = False) -> dict[str, Any]:
        source = self.index.get_episode(episode_id)
        if not source:
            raise EpisodeNotFoundError()

        q = (raw_query or "").strip()
        highlight: dict = {}
        matches: list[EpisodeMatch] = []
        previews: list[KeywordPreview] = []

        if q:
            segments = self.fetch_captions(source.get("listen_url"), timeout=self.settings.caption_timeout)
            query = build_query(q, exact=exact)
            found = hits(self.index.search(to_episode_request(query, episode_id, self.settings)))
            if found:
                highlight = found[0].get("highlight") or {}
                matches = self._locate_matches(highlight, segments)
                previews = self._keyword_previews(query, highlight, source, segments)
            log.info("Episode %s %r: %d matches, %d caption segments", episode_id, q, len(matches), len(segments))

        return {
            "episode": {
                "episodeId": source.get("episode_id"),
                "title": source.get("title"),
                "description": source.get("description"),
                "publishedAt": source.get("published_at"),
                "listenUrl": source.get("listen_url"),
                "transcriptText": source.get("transcript_text"),
            },
            "highlights": highlight,
            "allMatchPositions": [_timestamp_dict(m) for m in matches],
            "keywordPreviews": [_preview_dict(p) for p in previews],
            "searchQuery": q or None,
        }

    def _keyword_previews(self, query, highlight: dict, source: dict,
                          segments: list[CaptionSegment]) -> list[KeywordPreview]:
        """Per-term previews, each placed on the timeline when captions are available."""
        fallback = source.get("transcript_text") or source.get("description") or ""
        previews = partition(fragments_from_highlight(highlight), query.terms, fallback)
        if segments:
            for p in previews:
                p.timestamp = correlate(p.fragment, segments, min_word_overlap=self.settings.min_word_overlap)
        return previews

    def _locate_matches(self, highlight: dict, segments: list[CaptionSegment]) -> list[EpisodeMatch]:
        out: list[EpisodeMatch] = []

        transcript = highlight.get(Field.TRANSCRIPT.value) or []
        seen = set()
        for i, frag in enumerate(transcript):
            ts = None
            if segments:
                ts = correlate(frag, segments, OrdinalHint(i, len(transcript)),
                               min_word_overlap=self.settings.min_word_overlap)
            plain = strip_markers(frag).strip()
            key = (plain, ts.start_time if ts else None)
            if key in seen:
                continue
            seen.add(key)
            if segments and ts is None:
                log.debug("No timestamp for fragment %d: %.50s", i, plain)
            out.append(EpisodeMatch(text=frag, field=Field.TRANSCRIPT, position=i, timestamp=ts))

        seen_desc = set()
        for i, frag in enumerate(highlight.get(Field.DESCRIPTION.value) or []):
            plain = strip_markers(frag).strip()
            if plain in seen_desc:
                continue
            seen_desc.add(plain)
            out.append(EpisodeMatch(text=frag, field=Field.DESCRIPTION, position=i))
        return out

    # ---------- cache admin ----------
    def invalidate_cache(self, query: str | None = None) -> None:
        self.cache.invalidate(query)

    def cache_stats(self) -> dict:
        return self.cache.stats()
