import pytest

from rescache._utils import filter_mapping, request_signature, resolve_url, strip_fragment, unique, url_path


def test_request_signature():
    key = request_signature("GET", "https://example.com/index.html")

    assert key == "c8b3e87c825d820dc20d89aecf07631017f10a8a62c680ff22c020af0671a973"


def test_request_signature_for_path():
    assert request_signature("GET", "/") == "c767025d0edc7a064cf0003cc4d5a2f5f9e013c608f7a6909554afcdb1126fb2"


def test_request_signature_ignores_fragment_and_method_case():
    assert request_signature("get", "https://example.com/index.html#top") == request_signature(
        "GET", "https://example.com/index.html"
    )


def test_request_signature_depends_on_query():
    assert request_signature("GET", "https://example.com/?v=1") != request_signature("GET", "https://example.com/?v=2")


def test_strip_fragment():
    assert strip_fragment("https://example.com/a?b=1#c") == "https://example.com/a?b=1"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com/static/app.js?v=3", "/static/app.js"),
        ("/logo.PNG", "/logo.PNG"),
        ("https://example.com", ""),
    ],
)
def test_url_path(url: str, expected: str):
    assert url_path(url) == expected


def test_resolve_url():
    assert resolve_url("https://example.com/app/", "/manifest.json") == "https://example.com/manifest.json"
    assert resolve_url("https://example.com/app/", "icons/icon.png") == "https://example.com/app/icons/icon.png"


def test_unique_keeps_order():
    assert unique(["/", "/index.html", "/", "/manifest.json", "/index.html"]) == ["/", "/index.html", "/manifest.json"]


def test_filter_mapping():
    assert filter_mapping({"a": 1, "B": 2, "c": 3}, ["b"]) == {"a": 1, "c": 3}
