import pytest
from hypothesis import given
from hypothesis import strategies as st

from skiff.skiff_codemap import CodeMap, LineCol, Span
from skiff.skiff_dialect import Dialect, Feature
from skiff.skiff_errors import (
    DialectError,
    LexError,
    ParseError,
    StructuralError,
    ValidationError,
)
from skiff.skiff_parser import parse_source

SOURCE = "x = 1\nif y:\n    z = [\n"


def test_span_validation() -> None:
    with pytest.raises(ValueError):
        Span(-1, 2)
    with pytest.raises(ValueError):
        Span(3, 2)
    assert len(Span(2, 7)) == 5
    assert len(Span(4, 4)) == 0


def test_subspan_must_stay_inside() -> None:
    outer = Span(0, 10, "f")
    assert outer.subspan(2, 5) == Span(2, 5, "f")
    assert outer.subspan(10, 10) == Span(10, 10, "f")
    with pytest.raises(ValueError, match="outside"):
        outer.subspan(5, 11)


def test_contains() -> None:
    a, b = Span(2, 4, "f"), Span(6, 9, "f")
    assert Span(2, 9, "f").contains(a) and Span(2, 9, "f").contains(b)
    assert not a.contains(b)
    assert not Span(0, 10, "g").contains(a)


def test_add_file_and_whole_file_span(codemap: CodeMap) -> None:
    source_file = codemap.add_file("a.sky", SOURCE)
    assert source_file.span == Span(0, len(SOURCE), "a.sky")
    assert codemap.get_file("a.sky") is source_file
    with pytest.raises(KeyError, match="not registered"):
        codemap.get_file("missing.sky")


def test_look_up_span(codemap: CodeMap) -> None:
    codemap.add_file("a.sky", SOURCE)
    loc = codemap.look_up_span(Span(12, 16, "a.sky"))
    assert loc.begin == LineCol(3, 1)
    assert loc.end == LineCol(3, 5)
    assert str(loc) == "a.sky:3:1"
    assert codemap.source_line(Span(8, 9, "a.sky")) == "if y:"


def test_line_col_at_end_of_file(codemap: CodeMap) -> None:
    source_file = codemap.add_file("a.sky", SOURCE)
    assert source_file.line_col(len(SOURCE)) == LineCol(4, 1)
    assert source_file.line_text(4) == ""


@given(st.text(alphabet="ab \n", max_size=40), st.data())
def test_line_col_matches_prefix(source: str, data: st.DataObject) -> None:
    offset = data.draw(st.integers(min_value=0, max_value=len(source)))
    source_file = CodeMap().add_file("p", source)
    loc = source_file.line_col(offset)
    prefix = source[:offset]
    assert loc.line == prefix.count("\n") + 1
    assert loc.column == len(prefix) - (prefix.rfind("\n") + 1) + 1


# Errors


def test_error_hierarchy() -> None:
    for cls in (LexError, StructuralError, DialectError, ValidationError):
        assert issubclass(cls, ParseError)
    assert issubclass(ParseError, SyntaxError)


def test_str_without_codemap_is_message() -> None:
    err = StructuralError("Expected expression", Span(3, 4, "f"))
    assert str(err) == "Expected expression"
    assert err.render() == "f:[3, 4): error: Expected expression"


def test_structural_error_render() -> None:
    with pytest.raises(StructuralError) as e:
        parse_source("x = 1 +\n", "a.sky")
    err = e.value
    assert str(err) == "a.sky:1:8: Expected expression, got newline"
    lines = err.render().splitlines()
    assert lines[0] == "a.sky:1:8: error: Expected expression, got newline"
    assert lines[1] == "    x = 1 +"
    assert lines[2] == "    " + " " * 7 + "^"


def test_render_underlines_whole_span() -> None:
    with pytest.raises(DialectError) as e:
        parse_source("f = lambda: 1\n", "d.sky", Dialect(enable_lambda=False))
    lines = e.value.render().splitlines()
    assert lines[0] == "d.sky:1:5: error: Lambda expressions are not allowed in this dialect"
    assert lines[2] == "    " + " " * 4 + "^" * len("lambda: 1")


@pytest.mark.parametrize(
    "start,end,underline",
    [(10, 13, "    ^^^"), (8, 8, "  ^"), (6, 14, "^^^^^^^^")],
)
def test_render_underline_width_follows_span(
    codemap: CodeMap, start: int, end: int, underline: str
) -> None:
    codemap.add_file("w.sky", "x = 1\ny = abc + 2\n")
    err = StructuralError("bad", Span(start, end, "w.sky")).attach(codemap)
    lines = err.render().splitlines()
    assert lines[1] == "    y = abc + 2"
    assert lines[2] == "    " + underline


def test_lex_error_carries_location() -> None:
    with pytest.raises(LexError) as e:
        parse_source("a = 1\nb = $\n", "l.sky")
    assert e.value.codemap is not None
    assert str(e.value) == "l.sky:2:5: Unexpected character '$'"


def test_to_diagnostic() -> None:
    with pytest.raises(DialectError) as e:
        parse_source("def f(x: int): pass\n", "t.sky")
    diagnostic = e.value.to_diagnostic()
    assert diagnostic == {
        "severity": "error",
        "code": "dialect",
        "message": "Type annotations are not allowed in this dialect",
        "file": "t.sky",
        "offsets": [7, 12],
        "range": {
            "start": {"line": 0, "character": 7},
            "end": {"line": 0, "character": 12},
        },
    }
    assert e.value.feature is Feature.TYPES


def test_to_diagnostic_without_codemap() -> None:
    err = ValidationError("Duplicate parameter name: a", Span(1, 2, "v"))
    diagnostic = err.to_diagnostic()
    assert diagnostic["code"] == "validation"
    assert "range" not in diagnostic


def test_attach_returns_self(codemap: CodeMap) -> None:
    codemap.add_file("f", "abc")
    err = LexError("bad", Span(1, 2, "f"))
    assert err.attach(codemap) is err
    assert str(err) == "f:1:2: bad"
