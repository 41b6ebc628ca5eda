from datetime import datetime

from stheno.context import is_truthy, merge_loop_context, resolve_path, stringify
from stheno.html_utils import inline_markdown, strip_html
from stheno.utils import slugify, split_list, titleize, truncate, word_excerpt


def test_slugify():
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("--Already--slugged--") == "already-slugged"
    assert slugify("!!!") == ""


def test_titleize():
    assert titleize("2024-01-15-hello-world.md") == "Hello World"
    assert titleize("getting_started.md") == "Getting Started"
    assert titleize("___.md") == "Untitled"


def test_truncate():
    assert truncate("HELLO", 3) == "HEL..."
    assert truncate("abc", 3) == "abc"
    assert truncate("ab cd", 3) == "ab..."


def test_word_excerpt_never_exceeds_length():
    text = "a" * 40
    assert word_excerpt(text, 10) == "aaaaaaa..."
    assert word_excerpt("short", 10) == "short"


def test_split_list():
    assert split_list("a, b,,c ") == ["a", "b", "c"]
    assert split_list(["a", 1, "b"]) == ["a", "b"]
    assert split_list(None) == []


def test_strip_html_and_inline_markdown():
    assert strip_html("<p>Hello <b>world</b></p>") == "Hello world"
    assert inline_markdown("**bold** and *italic*") == "<strong>bold</strong> and <em>italic</em>"
    assert inline_markdown("2 * 3 * 4") == "2 * 3 * 4"


def test_resolve_path():
    context = {"a": {"b": [{"c": 1}]}, "zero": 0}
    assert resolve_path("a.b.0.c", context) == 1
    assert resolve_path("a.b.5.c", context) is None
    assert resolve_path("a.x.y", context) is None
    assert resolve_path("zero.x", context) is None
    assert resolve_path("zero", context) == 0


def test_is_truthy_and_stringify():
    assert not is_truthy(0)
    assert is_truthy("false")
    assert stringify(None) == ""
    assert stringify(False) == "false"
    assert stringify(datetime(2024, 1, 2, 3, 4)) == "2024-01-02T03:04:00"


def test_merge_loop_context_does_not_mutate_outer():
    outer = {"name": "outer", "site": "S"}
    scope = merge_loop_context(outer, {"name": "inner"})
    assert scope == {"name": "inner", "site": "S", "this": {"name": "inner"}}
    assert outer == {"name": "outer", "site": "S"}
    assert merge_loop_context(outer, 5)["this"] == 5
