import re

from highlights import (
    STRATEGIES,
    PartitionContext,
    build_preview,
    co_occurring_match,
    contains_term,
    fragments_from_highlight,
    isolated_match,
    mark_term,
    partition,
    single_term_preview,
    source_window,
    strip_markers,
    to_display_markup,
)
from models import Field, HighlightFragment, KeywordPreview, Term


def frag(text, field=Field.TRANSCRIPT, i=0):
    return HighlightFragment(text=text, field=field, source_index=i)


def marked(text):
    return re.findall(r"<em>(.*?)</em>", text)


def test_strip_and_mark():
    assert strip_markers('a <em class="hl">B</em> c <em>d</em>') == "a B c d"
    assert mark_term("Apple pie and apple", "apple") == "<em>Apple</em> pie and <em>apple</em>"
    assert to_display_markup("x <em>y</em>") == "x <mark>y</mark>"


def test_keyword_word_boundary_on_ascii_only():
    cat = Term("cat")
    assert contains_term("the <em>cat</em> sat", cat)
    assert not contains_term("concatenate", cat)
    # no spaces in Japanese: the keyword still matches inside running text
    assert contains_term("今日は社会の話", Term("社会"))
    # exact phrases are plain substrings
    assert contains_term("concatenate", Term("cat", True))


def test_keyword_isolation_prefers_fragments_with_a_single_term():
    terms = [Term("社会"), Term("資本")]
    fragments = [
        frag("<em>社会</em>と<em>資本</em>の関係", i=0),
        frag("<em>社会</em>について", i=1),
        frag("<em>資本</em>主義の歴史", i=2),
    ]

    previews = partition(fragments, terms)

    assert [p.keyword for p in previews] == ["社会", "資本"]
    assert previews[0].fragment == "<em>社会</em>について"
    assert previews[1].fragment == "<em>資本</em>主義の歴史"
    for p, other in zip(previews, ["資本", "社会"]):
        assert p.keyword in marked(p.fragment)
        assert other not in marked(p.fragment)


def test_transcript_fragments_are_scanned_before_description():
    terms = [Term("alpha"), Term("beta")]
    fragments = [
        frag("<em>alpha</em> in the description", Field.DESCRIPTION, 0),
        frag("<em>alpha</em> in the transcript", Field.TRANSCRIPT, 0),
        frag("only <em>beta</em> here", Field.DESCRIPTION, 1),
    ]

    previews = partition(fragments, terms)

    assert previews[0].fragment == "<em>alpha</em> in the transcript"
    assert previews[1].fragment == "only <em>beta</em> here"


def test_co_occurring_fragment_marks_only_its_own_term():
    terms = [Term("alpha"), Term("beta")]
    fragments = [frag("<em>alpha</em> and <em>beta</em> together")]

    previews = partition(fragments, terms)

    assert previews[0].fragment == "<em>alpha</em> and beta together"
    assert previews[1].fragment == "alpha and <em>beta</em> together"


def test_source_window_when_no_fragment_has_the_term():
    source = "x" * 150 + "Needle" + "y" * 150

    (preview,) = partition([], [Term("needle")], source)

    assert preview.fragment == "x" * 100 + "<em>Needle</em>" + "y" * 100


def test_term_without_evidence_is_omitted():
    terms = [Term("alpha"), Term("missing")]
    previews = partition([frag("<em>alpha</em>")], terms, "alpha only")

    assert [p.keyword for p in previews] == ["alpha"]


def test_strategies_are_independent_and_ordered():
    assert STRATEGIES == [isolated_match, co_occurring_match, source_window]
    ctx = PartitionContext([frag("a <em>b</em>")], [Term("a"), Term("b")], "")
    assert isolated_match(Term("a"), ctx) is None
    assert co_occurring_match(Term("a"), ctx) == "<em>a</em> b"
    assert source_window(Term("a"), ctx) is None


def test_exact_phrase_term_is_matched_as_substring():
    terms = [Term("hello world", True), Term("test")]
    fragments = [frag("say <em>Hello World</em> loudly"), frag("a <em>test</em> run")]

    previews = partition(fragments, terms)

    assert previews[0].fragment == "say <em>Hello World</em> loudly"
    assert previews[1].fragment == "a <em>test</em> run"


def test_build_preview_joins_term_previews_when_all_found():
    terms = [Term(t) for t in "abcd"]
    previews = [KeywordPreview(t.value, f"<em>{t.value}</em>") for t in terms]

    out = build_preview(previews, terms, [])

    assert out == "<em>a</em> ... <em>b</em> ... <em>c</em>"


def test_build_preview_falls_back_to_raw_fragments_then_source():
    terms = [Term("a"), Term("b")]
    previews = [KeywordPreview("a", "<em>a</em>")]
    fragments = [frag("one", i=0), frag("two", i=1), frag("three", i=2), frag("four", i=3)]

    assert build_preview(previews, terms, fragments) == "one ... two ... three"
    assert build_preview([], terms, [], transcript="t" * 300) == "t" * 200
    assert build_preview([], terms, [], transcript="", description="desc") == "desc"


def test_single_term_preview_and_fragment_conversion():
    hl = {"description": ["<em>d</em>"], "transcript_text": ["<em>t0</em>", "<em>t1</em>"]}
    fragments = fragments_from_highlight(hl)

    assert [(f.field, f.source_index) for f in fragments] == [
        (Field.TRANSCRIPT, 0), (Field.TRANSCRIPT, 1), (Field.DESCRIPTION, 0),
    ]
    assert single_term_preview(fragments) == "<em>t0</em>"
    assert single_term_preview([], "", "fallback") == "fallback"
    assert fragments_from_highlight(None) == []


def test_same_term_in_another_case_gets_one_preview():
    fragments = fragments_from_highlight({"transcript_text": ["a <em>foo</em> b"]})

    previews = partition(fragments, [Term("foo"), Term("Foo")])

    assert [p.keyword for p in previews] == ["foo"]
    assert build_preview(previews, [Term("foo"), Term("Foo")], fragments) == "a <em>foo</em> b"
