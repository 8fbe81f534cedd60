import pytest

from mythbuster.services.sources import classify_source, is_credible_source, is_undesired_source


@pytest.mark.parametrize(
    "url",
    [
        "https://www.nature.com/articles/x",
        "https://pubmed.ncbi.nlm.nih.gov/123",
        "http://earthobservatory.nasa.gov/images",
        "WWW.CDC.GOV/flu",
    ],
)
def test_credible_sources(url):
    assert is_credible_source(url)
    assert classify_source(url) == "credible"


@pytest.mark.parametrize(
    "url",
    ["https://en.wikipedia.org/wiki/Great_Wall", "https://www.reddit.com/r/x", "https://x.com/post/1"],
)
def test_undesired_sources(url):
    assert is_undesired_source(url)
    assert classify_source(url) == "undesired"


def test_lookalike_domains_do_not_match():
    assert not is_credible_source("https://notnasa.gov/page")
    assert not is_undesired_source("https://box.com")
    assert classify_source("https://example.org/blog") == "unknown"


def test_garbage_urls_are_unknown():
    assert classify_source("") == "unknown"
    assert classify_source("http://[::1") == "unknown"
