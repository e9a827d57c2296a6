import argparse
import json

import config
from errors import SearchBackendError
from highlights import strip_markers
from index_client import EpisodeIndex
from search_cache import SearchCache
from search_ops import SearchService
from timestamps import format_timestamp_long


def _plain(html_text):
    return strip_markers(html_text or "").replace("<mark>", "").replace("</mark>", "")


def main():
    ap = argparse.ArgumentParser(description="Search episodes, or list timed matches inside one episode")
    ap.add_argument("query", nargs="?", default="", help='Keywords; wrap phrases in quotes: \'"hello world" test\'')
    ap.add_argument("--exact", action="store_true", help="Treat every word as an exact phrase")
    ap.add_argument("--episode", help="Episode id: show where the query occurs inside this episode")
    ap.add_argument("--ping", action="store_true", help="Check the index connection and exit")
    args = ap.parse_args()

    config.setup_logging()
    index = EpisodeIndex.from_config()

    try:
        if args.ping:
            info = index.ping()
            print(f"Connected to {index.endpoint} (index '{index.index_name}')")
            print(json.dumps(info.get("version", info), ensure_ascii=False, indent=2))
            return 0

        service = SearchService(index, SearchCache(ttl=config.CACHE_TTL), config.SearchSettings())

        if args.episode:
            detail = service.episode_detail(args.episode, args.query or None, exact=args.exact)
            ep = detail["episode"]
            print(f"{ep['title']} [{ep['episodeId']}]")
            for m in detail["allMatchPositions"]:
                ts = m.get("timestamp")
                at = format_timestamp_long(ts["startTime"]) if ts else "-:--"
                print(f"  {at}  ({m['field']}) {strip_markers(m['text'])[:120]}")
            return 0

        if not args.query.strip():
            ap.error("a query is required unless --ping is given")

        payload = service.search(args.query, exact=args.exact)
        print(f"{payload['count']} result(s) for {args.query!r}")
        for r in payload["results"]:
            print(f"\n[{r['rank'] or 0:.2f}] {_plain(r['title'])}  ({r['episodeId']})")
            for kp in r.get("keywordPreviews") or []:
                print(f"   {kp['keyword']}: {kp['fragment'][:160]}")
            if not r.get("keywordPreviews"):
                print(f"   {r['preview'][:200]}")
        return 0

    except SearchBackendError as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
