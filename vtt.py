# vtt.py: WebVTT caption parsing and download
# - parse_vtt:      document text -> [CaptionSegment] (never raises)
# - fetch_captions: <listen_url>/transcript.vtt -> [CaptionSegment], [] on any failure
from __future__ import annotations
import logging
import re
from enum import Enum

import requests

from config import CAPTION_TIMEOUT
from models import CaptionSegment

log = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

_TIME = r"\d+:\d{2}(?::\d{2})?(?:[.,]\d{3})?"
_CUE_RANGE = re.compile(rf"({_TIME})\s*-->\s*({_TIME})")
_DIGITS = re.compile(r"^\d+$")

# tried in this order; first full match wins
_TIME_FORMATS = (
    re.compile(r"(\d+):(\d{2}):(\d{2})[.,](\d{3})"),   # HH:MM:SS.mmm
    re.compile(r"(\d+):(\d{2}):(\d{2})"),              # HH:MM:SS
    re.compile(r"(\d+):(\d{2})[.,](\d{3})"),           # MM:SS.mmm
    re.compile(r"(\d+):(\d{2})"),                      # MM:SS
)


def parse_timestamp(value: str) -> float:
    """'00:01:23.456' / '00:01:23' / '01:23.456' / '01:23' -> seconds. 0.0 if unrecognized."""
    value = value.strip()
    for i, rx in enumerate(_TIME_FORMATS):
        m = rx.fullmatch(value)
        if not m:
            continue
        parts = [int(g) for g in m.groups()]
        if i == 0:
            h, mi, s, ms = parts
        elif i == 1:
            h, mi, s = parts; ms = 0
        elif i == 2:
            h = 0; mi, s, ms = parts
        else:
            h = 0; mi, s = parts; ms = 0
        return h * 3600 + mi * 60 + s + ms / 1000
    return 0.0


class ParserState(Enum):
    SEEKING_CUE = "seeking_cue"
    ACCUMULATING_TEXT = "accumulating_text"


class _Cue:
    __slots__ = ("start", "end", "lines")

    def __init__(self, start: float, end: float):
        self.start, self.end, self.lines = start, end, []

    def flush(self, out: list[CaptionSegment]) -> None:
        text = " ".join(self.lines).strip()
        if text:  # empty blocks are dropped
            out.append(CaptionSegment(self.start, self.end, text))


def _is_marker(line: str) -> bool:
    return (not line
            or line.startswith("WEBVTT")
            or line.startswith("NOTE")
            or bool(_DIGITS.match(line)))


def _step(state: ParserState, line: str, cue: _Cue | None, out: list[CaptionSegment]):
    """One transition: (state, line) -> (next state, open cue)."""
    if _is_marker(line):
        return state, cue

    m = _CUE_RANGE.search(line)
    if m:
        if cue is not None:
            cue.flush(out)
        return ParserState.ACCUMULATING_TEXT, _Cue(parse_timestamp(m.group(1)), parse_timestamp(m.group(2)))

    if state is ParserState.ACCUMULATING_TEXT:
        cue.lines.append(line)
    # SEEKING_CUE: text outside any cue is ignored
    return state, cue


def parse_vtt(document: str | None) -> list[CaptionSegment]:
    """Parse a WebVTT-like document into segments, in document order."""
    out: list[CaptionSegment] = []
    if not document:
        return out

    state, cue = ParserState.SEEKING_CUE, None
    for raw in document.splitlines():
        state, cue = _step(state, raw.strip(), cue, out)

    if cue is not None:
        cue.flush(out)
    return out


def caption_url(listen_url: str) -> str:
    return f"{listen_url.rstrip('/')}/transcript.vtt"


def fetch_captions(listen_url: str | None, timeout: float | None = CAPTION_TIMEOUT) -> list[CaptionSegment]:
    """
    Download and parse an episode's captions.
    Any network problem degrades to [] so callers fall back to text-only matches.
    """
    if not listen_url:
        return []
    url = caption_url(listen_url)
    try:
        resp = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    except requests.Timeout:
        log.warning("Caption fetch timed out after %ss: %s", timeout, url)
        return []
    except requests.RequestException as e:
        log.warning("Caption fetch failed: %s (%s)", url, e)
        return []

    if not resp.ok:
        log.warning("Caption fetch returned %s: %s", resp.status_code, url)
        return []

    segments = parse_vtt(resp.text)
    log.debug("Parsed %d caption segments from %s", len(segments), url)
    return segments
