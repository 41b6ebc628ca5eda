import pytest

from stheno.errors import TemplateError
from stheno.protocols import TemplateResolver
from stheno.templates import Template, TemplateStore, find_partials


def test_find_partials():
    source = "{{> header}}{{>footer}}{{> 'partials/nav'}}{{> header}}{{name}}"
    assert find_partials(source) == {"header", "footer", "partials/nav"}
    assert find_partials("no partials here") == frozenset()


def test_template_dependencies_follow_source():
    assert Template("page", "{{> a}} and {{ > b }}").dependencies == {"a", "b"}


def test_template_requires_name():
    with pytest.raises(ValueError):
        Template("", "x")


def test_store_register_get_remove():
    store = TemplateStore([Template("a", "A")])
    store.register(Template("b", "{{> a}}"))
    assert isinstance(store, TemplateResolver)
    assert store.get_template("a").source == "A"
    assert store.names() == ["a", "b"]
    assert store.dependencies("b") == {"a"}
    assert "a" in store and len(store) == 2
    store.remove("a")
    assert store.get_template("a") is None
    assert store.dependencies("missing") == frozenset()
    assert [t.name for t in store] == ["b"]


def test_store_rejects_oversized_source():
    store = TemplateStore(max_template_size=5)
    with pytest.raises(TemplateError, match="exceeds limit of 5") as excinfo:
        store.register(Template("big", "123456"))
    assert excinfo.value.template_name == "big"
    store.register(Template("ok", "12345"))


def test_template_error_message():
    assert str(TemplateError("boom")) == "boom"
    error = TemplateError("boom", "page")
    assert str(error) == "page: boom"
    assert error.reason == "boom"
