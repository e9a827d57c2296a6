# highlights.py: one isolated preview per queried term
#
# The index highlights every term in every fragment. For a multi-term query we
# want one preview per term that marks only that term, so each term runs
# through STRATEGIES in order and the first hit wins:
#   isolated    -> a fragment with this term and no other queried term
#   co-occurring -> the first fragment with this term at all
#   source      -> a window cut from the raw transcript/description
# A term none of them can place is left out.
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from models import Field, HighlightFragment, KeywordPreview, Term

log = logging.getLogger(__name__)

_MARKED = re.compile(r"<em[^>]*>(.*?)</em>", re.IGNORECASE | re.DOTALL)
_ASCII_WORD = "[0-9A-Za-z_]"

SOURCE_WINDOW = 100
PREVIEW_SEPARATOR = " ... "
MAX_PREVIEW_PARTS = 3
PREVIEW_FALLBACK_CHARS = 200


def strip_markers(text: str) -> str:
    return _MARKED.sub(r"\1", text)


def to_display_markup(text: str) -> str:
    return text.replace("<em>", "<mark>").replace("</em>", "</mark>")


def mark_term(text: str, term: str) -> str:
    """Wrap every case-insensitive occurrence of term in <em>…</em>."""
    if not term:
        return text
    rx = re.compile(re.escape(term), re.IGNORECASE)
    return rx.sub(lambda m: f"<em>{m.group(0)}</em>", text)


def _term_regex(term: Term) -> re.Pattern:
    core = re.escape(term.value)
    if term.is_exact_phrase:
        return re.compile(core, re.IGNORECASE)
    # whole-word on ASCII edges; CJK text has no spaces to anchor on
    return re.compile(rf"(?<!{_ASCII_WORD}){core}(?!{_ASCII_WORD})", re.IGNORECASE)


def contains_term(text: str, term: Term) -> bool:
    return bool(_term_regex(term).search(strip_markers(text)))


def order_fragments(fragments: list[HighlightFragment]) -> list[HighlightFragment]:
    """Transcript fragments first, then description; each in index order."""
    rank = {Field.TRANSCRIPT: 0, Field.DESCRIPTION: 1}
    return sorted(fragments, key=lambda f: (rank.get(f.field, 2), f.source_index))


def fragments_from_highlight(highlight: dict | None) -> list[HighlightFragment]:
    """Index `highlight` object -> ordered HighlightFragment list."""
    highlight = highlight or {}
    out = []
    for fld in (Field.TRANSCRIPT, Field.DESCRIPTION):
        for i, text in enumerate(highlight.get(fld.value) or []):
            out.append(HighlightFragment(text=text, field=fld, source_index=i))
    return out


@dataclass
class PartitionContext:
    fragments: list[HighlightFragment]  # already ordered
    terms: list[Term]
    source_text: str = ""

    def others(self, term: Term) -> list[Term]:
        low = term.value.lower()
        return [t for t in self.terms if t.value.lower() != low]


Strategy = Callable[[Term, PartitionContext], Optional[str]]


def isolated_match(term: Term, ctx: PartitionContext) -> str | None:
    others = ctx.others(term)
    for frag in ctx.fragments:
        if not contains_term(frag.text, term):
            continue
        if any(contains_term(frag.text, o) for o in others):
            continue
        return mark_term(strip_markers(frag.text), term.value)
    return None


def co_occurring_match(term: Term, ctx: PartitionContext) -> str | None:
    for frag in ctx.fragments:
        if contains_term(frag.text, term):
            return mark_term(strip_markers(frag.text), term.value)
    return None


def source_window(term: Term, ctx: PartitionContext) -> str | None:
    text = ctx.source_text or ""
    idx = text.lower().find(term.value.lower())
    if idx < 0:
        return None
    start = max(0, idx - SOURCE_WINDOW)
    end = min(len(text), idx + len(term.value) + SOURCE_WINDOW)
    return mark_term(text[start:end], term.value)


STRATEGIES: list[Strategy] = [isolated_match, co_occurring_match, source_window]


def partition(fragments: list[HighlightFragment], terms: list[Term], source_text: str = "",
              strategies: list[Strategy] = STRATEGIES) -> list[KeywordPreview]:
    """One preview per term, in term order; terms with no evidence are omitted."""
    ctx = PartitionContext(order_fragments(fragments), terms, source_text)
    previews, done = [], set()
    for term in terms:
        if term.value.lower() in done:
            continue
        done.add(term.value.lower())
        for strategy in strategies:
            found = strategy(term, ctx)
            if found:
                previews.append(KeywordPreview(keyword=term.value, fragment=found))
                break
        else:
            log.debug("No evidence for term %r in %d fragments or source text", term.value, len(fragments))
    return previews


def build_preview(previews: list[KeywordPreview], terms: list[Term],
                  fragments: list[HighlightFragment], transcript: str = "", description: str = "") -> str:
    """Result-card preview text (still carrying <em> markers)."""
    if previews and len(previews) == len({t.value.lower() for t in terms}):
        return PREVIEW_SEPARATOR.join(p.fragment for p in previews[:MAX_PREVIEW_PARTS])
    raw = [f.text for f in order_fragments(fragments)][:MAX_PREVIEW_PARTS]
    if raw:
        return PREVIEW_SEPARATOR.join(raw)
    return (transcript or "")[:PREVIEW_FALLBACK_CHARS] or (description or "")[:PREVIEW_FALLBACK_CHARS]


def single_term_preview(fragments: list[HighlightFragment], transcript: str = "", description: str = "") -> str:
    ordered = order_fragments(fragments)
    if ordered:
        return ordered[0].text
    return (transcript or "")[:PREVIEW_FALLBACK_CHARS] or (description or "")[:PREVIEW_FALLBACK_CHARS]
