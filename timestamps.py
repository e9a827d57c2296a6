# timestamps.py: place a highlight fragment on the caption timeline
from __future__ import annotations
import re
from bisect import bisect_right
from typing import Callable

from config import MIN_WORD_OVERLAP
from highlights import strip_markers
from models import CaptionSegment, OrdinalHint, TimeRange

DELIMITER = " "  # same joiner as the indexed transcript text
MIN_NEEDLE = 5
SHORT_FORM = 50
TINY_FORM = 20
PREFIX_FORM = 10
OVERLAP_WORDS = 3


def _normalize_ws(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


class Timeline:
    """
    All segment texts joined with single spaces, as in the indexed transcript,
    plus the char offset where each segment starts, so a match position maps
    back to its segment with one bisect.
    """

    def __init__(self, segments: list[CaptionSegment]):
        self.segments = segments
        self.clean = [strip_markers(s.text) for s in segments]
        parts, offsets, acc = [], [], 0
        for t in self.clean:
            offsets.append(acc)
            parts.append(t)
            acc += len(t) + len(DELIMITER)
        self.offsets = offsets
        self.text = DELIMITER.join(parts)

    def segment_at(self, pos: int) -> CaptionSegment:
        idx = bisect_right(self.offsets, pos) - 1
        idx = min(max(idx, 0), len(self.segments) - 1)
        return self.segments[idx]

    def find_all(self, needle: str) -> list[int]:
        hits, pos = [], 0
        while True:
            i = self.text.find(needle, pos)
            if i < 0:
                return hits
            hits.append(i)
            pos = i + 1


# ---------- strategies: (clean fragment, timeline, settings) -> candidate segments ----------
def positional(clean: str, tl: Timeline, min_word_overlap: float) -> list[CaptionSegment]:
    for needle in (clean, _normalize_ws(clean), clean[:SHORT_FORM], clean[:TINY_FORM]):
        if len(needle) < MIN_NEEDLE:
            continue
        hits = tl.find_all(needle)
        if hits:
            return [tl.segment_at(p) for p in hits]
    return []


def containment(clean: str, tl: Timeline, min_word_overlap: float) -> list[CaptionSegment]:
    short = clean[:SHORT_FORM]
    out = []
    for seg, text in zip(tl.segments, tl.clean):
        if not text:
            continue
        if clean in text or text in clean or short in text or text in short:
            out.append(seg)
    return out


def word_overlap(clean: str, tl: Timeline, min_word_overlap: float) -> list[CaptionSegment]:
    words = clean.split()[:OVERLAP_WORDS]
    if not words:
        return []
    return [seg for seg, text in zip(tl.segments, tl.clean)
            if sum(1 for w in words if w in text) / len(words) >= min_word_overlap]


def prefix(clean: str, tl: Timeline, min_word_overlap: float) -> list[CaptionSegment]:
    head = clean[:PREFIX_FORM]
    return [seg for seg, text in zip(tl.segments, tl.clean) if head in text]


Strategy = Callable[[str, Timeline, float], list[CaptionSegment]]
STRATEGIES: list[Strategy] = [positional, containment, word_overlap, prefix]


def select(candidates: list[CaptionSegment], hint: OrdinalHint | None = None) -> TimeRange | None:
    """Unique by (start, end), earliest first; the hint picks among repeats."""
    uniq = {}
    for seg in candidates:
        uniq.setdefault((seg.start_time, seg.end_time), seg)
    ordered = sorted(uniq.values(), key=lambda s: s.start_time)
    if not ordered:
        return None
    chosen = ordered[min(hint.index, len(ordered) - 1)] if hint is not None else ordered[0]
    return TimeRange(chosen.start_time, chosen.end_time)


def correlate(fragment_text: str, segments: list[CaptionSegment], hint: OrdinalHint | None = None,
              min_word_overlap: float = MIN_WORD_OVERLAP,
              strategies: list[Strategy] = STRATEGIES) -> TimeRange | None:
    """
    Find when a highlighted fragment was said.

    A match that starts in one segment and runs into the next is credited to
    the segment where it starts.
    """
    clean = strip_markers(fragment_text or "").strip()
    if not clean or not segments:
        return None
    tl = Timeline(segments)
    for strategy in strategies:
        found = strategy(clean, tl, min_word_overlap)
        if found:
            return select(found, hint)
    return None


# ---------- display ----------
def format_timestamp(seconds: float) -> str:
    """83.4 -> '01:23'; minutes keep counting past 59 ('75:02')."""
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def format_timestamp_long(seconds: float) -> str:
    """'1:02:03' with hours, '2:03' without."""
    s = int(seconds)
    h, m, sec = s // 3600, (s % 3600) // 60, s % 60
    if h > 0:
        return f"{h}:{m:02d}:{sec:02d}"
    return f"{m}:{sec:02d}"
