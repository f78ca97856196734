import pytest

from combinator import FAILURE, Input, digit, item, literal, satisfy


def test_input_view():
    inp = Input("abc")
    assert inp.rest == "abc"
    assert inp.peek() == "a"
    assert len(inp) == 3

    nxt = inp.advance(2)
    assert nxt.rest == "c"
    assert inp.rest == "abc"  # unchanged
    assert not nxt.at_end()
    assert nxt.advance(5).at_end()
    assert nxt.advance(5).peek() is None
    assert str(nxt) == "c"


def test_item_consumes_one_character():
    out = item("abc")
    assert out
    assert out.value == "a"
    assert out.rest == "bc"


def test_item_fails_on_empty_input():
    out = item("")
    assert not out
    assert out is FAILURE
    assert not out.fatal


def test_parsers_accept_input_views():
    out = item(Input("abc", 1))
    assert out.value == "b"
    assert out.remaining == Input("abc", 2)


def test_satisfy():
    vowel = satisfy(lambda c: c in "aeiou")
    assert vowel("apple").value == "a"
    assert not vowel("pear")
    assert not vowel("")


def test_digit():
    out = digit("123")
    assert (out.value, out.rest) == ("1", "23")
    assert not digit("abc")


def test_digit_is_ascii_only():
    # Arabic-Indic three
    assert not digit("٣")


def test_literal():
    a = literal("a")
    out = a("abc")
    assert (out.value, out.rest) == ("a", "bc")
    assert not a("123")


@pytest.mark.parametrize("bad", ["", "ab"])
def test_literal_rejects_non_characters(bad):
    with pytest.raises(ValueError):
        literal(bad)


def test_repr_uses_names():
    assert repr(digit) == "digit"
    assert repr(literal("+")) == "'+'"
    assert repr(item) == "item"


def test_named_leaves_the_original_alone():
    renamed = digit.named("numeral")
    assert repr(renamed) == "numeral"
    assert repr(digit) == "digit"
    assert renamed("7x").value == "7"
    assert renamed("7x") == digit("7x")
