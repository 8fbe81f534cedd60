from __future__ import annotations

from urllib.parse import urlparse

# Academic, governmental, fact-checking and established news outlets.
CREDIBLE_DOMAINS = (
    "pubmed.ncbi.nlm.nih.gov",
    "jstor.org",
    "scholar.google.com",
    "sciencedirect.com",
    "springer.com",
    "nature.com",
    "sciencemag.org",
    "plos.org",
    "cell.com",
    "elsevier.com",
    "wiley.com",
    "tandfonline.com",
    "ieee.org",
    "acm.org",
    "medrxiv.org",
    "biorxiv.org",
    "nejm.org",
    "thelancet.com",
    "jamanetwork.com",
    "bmj.com",
    "academic.oup.com",
    "annualreviews.org",
    "frontiersin.org",
    "sagepub.com",
    "usa.gov",
    "cdc.gov",
    "nih.gov",
    "fda.gov",
    "nasa.gov",
    "who.int",
    "un.org",
    "data.gov",
    "science.gov",
    "rand.org",
    "factcheck.org",
    "politifact.com",
    "snopes.com",
    "truthorfiction.com",
    "aaas.org",
    "reuters.com",
    "apnews.com",
    "bbc.com",
    "pbs.org",
    "nytimes.com",
    "washingtonpost.com",
    "wsj.com",
    "economist.com",
    "ft.com",
    "npr.org",
)

# Known disinformation outlets plus user-editable and social platforms.
UNDESIRED_DOMAINS = (
    "rt.com",
    "sputniknews.com",
    "breitbart.com",
    "thegatewaypundit.com",
    "infowars.com",
    "worldnetdaily.com",
    "zerohedge.com",
    "activistpost.com",
    "westernjournal.com",
    "worldtruth.tv",
    "wikipedia.org",
    "reddit.com",
    "facebook.com",
    "twitter.com",
    "x.com",
    "tiktok.com",
    "youtube.com",
)


def _hostname(url: str) -> str:
    if not url:
        return ""
    try:
        parsed = urlparse(url if "://" in url else f"https://{url}")
        return (parsed.hostname or "").lower()
    except ValueError:
        return ""


def _matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def is_credible_source(url: str) -> bool:
    host = _hostname(url)
    return bool(host) and any(_matches(host, d) for d in CREDIBLE_DOMAINS)


def is_undesired_source(url: str) -> bool:
    host = _hostname(url)
    return bool(host) and any(_matches(host, d) for d in UNDESIRED_DOMAINS)


def classify_source(url: str) -> str:
    """``credible``, ``undesired`` or ``unknown`` for a URL, subdomains included."""
    if is_undesired_source(url):
        return "undesired"
    if is_credible_source(url):
        return "credible"
    return "unknown"
