# query_builder.py: raw query string -> SearchQuery -> index request body
from __future__ import annotations
import re

from config import SearchSettings
from models import SearchQuery

_QUOTED = re.compile(r'"([^"]+)"')

PHRASE_FIELDS = ["title^10", "description^6", "transcript_text^4"]
KEYWORD_PHRASE_FIELDS = ["title^5", "description^2", "transcript_text^3"]
KEYWORD_FIELDS = ["title^3", "description^2", "transcript_text"]

SOURCE_FIELDS = ["episode_id", "title", "description", "published_at", "listen_url", "transcript_text"]
PRE_TAG, POST_TAG = "<em>", "</em>"


def _normalize_ws(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


def build_query(raw: str, exact: bool = False) -> SearchQuery:
    """
    Split a user query into exact phrases and keywords.

    '"hello world" test' -> phrases ['hello world'], keywords ['test'].
    In exact mode every whitespace-separated token is its own phrase.
    Callers reject empty queries before getting here.
    """
    raw = raw.strip()
    if exact:
        return SearchQuery(raw_query=raw, exact_phrases=raw.split(), keywords=[])

    phrases, rest, pos = [], [], 0
    for m in _QUOTED.finditer(raw):
        phrases.append(m.group(1))
        rest.append(raw[pos:m.start()])
        pos = m.end()
    rest.append(raw[pos:])

    remaining = _normalize_ws(" ".join(rest))
    keywords = [k for k in remaining.split(" ") if k]
    return SearchQuery(raw_query=raw, exact_phrases=phrases, keywords=keywords)


# ---------- clauses ----------
def phrase_clause(phrase: str, fields=PHRASE_FIELDS) -> dict:
    return {"multi_match": {"query": phrase, "fields": list(fields), "type": "phrase", "slop": 0}}


def keyword_clause(keyword: str) -> dict:
    return {"multi_match": {"query": keyword, "fields": list(KEYWORD_FIELDS),
                            "type": "best_fields", "operator": "or"}}


def single_keyword_clauses(keyword: str, min_should_match: str) -> list[dict]:
    return [
        phrase_clause(keyword, KEYWORD_PHRASE_FIELDS),
        {"multi_match": {"query": keyword, "fields": list(KEYWORD_FIELDS), "type": "best_fields",
                         "operator": "and", "minimum_should_match": min_should_match}},
    ]


def build_bool(query: SearchQuery, settings: SearchSettings) -> dict:
    phrase_clauses = [phrase_clause(p) for p in query.exact_phrases]
    kws = query.keywords
    body: dict = {}

    if len(kws) >= 2:
        # every keyword somewhere, not necessarily in the same field
        body["must"] = phrase_clauses + [keyword_clause(k) for k in kws]
    elif len(kws) == 1:
        should = single_keyword_clauses(kws[0], settings.min_should_match)
        if phrase_clauses:
            body["must"] = phrase_clauses
        body["should"] = should
        body["minimum_should_match"] = min(max(len(query.exact_phrases), 1), len(should))
    else:
        body["must"] = phrase_clauses
    return {"bool": body}


def fragment_counts(query: SearchQuery) -> tuple[int, int]:
    """(transcript, description) fragment counts: more terms -> more raw material to partition."""
    n = query.distinct_term_count
    if n > 1:
        return max(n, 3), max(n, 2)
    return 1, 1


def _highlight(fragment_size: int, transcript_n: int, description_n: int, title: bool = True) -> dict:
    fields: dict = {}
    if title:
        fields["title"] = {"number_of_fragments": 0}
    fields["description"] = {"fragment_size": fragment_size, "number_of_fragments": description_n}
    fields["transcript_text"] = {"fragment_size": fragment_size, "number_of_fragments": transcript_n}
    return {"fields": fields, "pre_tags": [PRE_TAG], "post_tags": [POST_TAG]}


def to_request(query: SearchQuery, settings: SearchSettings | None = None) -> dict:
    """Listing request: ranked episodes with highlight fragments."""
    settings = settings or SearchSettings()
    transcript_n, description_n = fragment_counts(query)
    return {
        "query": build_bool(query, settings),
        "_source": {"includes": list(SOURCE_FIELDS)},
        "highlight": _highlight(settings.fragment_size, transcript_n, description_n),
        "sort": [{"_score": {"order": "desc"}}, {"published_at": {"order": "desc"}}],
        "size": settings.result_size,
        "timeout": settings.server_timeout,
    }


def episode_lookup_request(episode_id: str) -> dict:
    return {"query": {"term": {"episode_id": episode_id}}, "size": 1}


def to_episode_request(query: SearchQuery, episode_id: str, settings: SearchSettings | None = None) -> dict:
    """Same query scoped to one episode, with enough fragments to place every match."""
    settings = settings or SearchSettings()
    return {
        "query": {"bool": {
            "filter": [{"term": {"episode_id": episode_id}}],
            "must": [build_bool(query, settings)],
        }},
        "_source": {"includes": list(SOURCE_FIELDS)},
        "highlight": _highlight(settings.fragment_size,
                                settings.detail_transcript_fragments,
                                settings.detail_description_fragments,
                                title=False),
        "size": 1,
        "timeout": settings.server_timeout,
    }
