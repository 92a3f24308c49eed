"""
Wellfound adapter — scrapes startup job listings from wellfound.com search pages.
"""

import re
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from models.posting import Posting, Source
from sources.base import AdapterKind, SourceAdapter, make_posting
from tools.http_client import HttpClient


BASE_URL = "https://wellfound.com"
JOBS_URL = f"{BASE_URL}/jobs"


def _text(element) -> str:
    return element.get_text(" ", strip=True) if element else ""


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def job_slug(url: str) -> str:
    """Last path segment of a job URL, which Wellfound keeps stable per listing."""
    path = urlparse(url).path.rstrip("/")
    return path.rsplit("/", 1)[-1] if path else ""


def _build(title: str, href: str, company: str, **extras):
    if not href:
        return None
    url = urljoin(BASE_URL, href)
    slug = job_slug(url) or slugify(f"{company}-{title}")
    return make_posting(
        id=f"wellfound-{slug}",
        title=title,
        url=url,
        source=Source.WELLFOUND,
        company=company or "Startup",
        **extras,
    )


def parse_wellfound_html(html: str) -> list[Posting]:
    """
    Extract postings from a Wellfound search results page.

    Startup result cards are tried first; if the page has none, generic
    job-card blocks are used instead.
    """
    soup = BeautifulSoup(html, "html.parser")
    postings = []

    for card in soup.select('[data-test="StartupResult"]'):
        company = _text(card.select_one('[data-test="StartupResult-name"]'))

        for listing in card.select('[data-test="JobListing"]'):
            link = listing.find("a", href=True)
            posting = _build(
                title=_text(listing.select_one('[data-test="JobListing-title"]')),
                href=link["href"] if link else "",
                company=company,
                location=_text(listing.select_one('[data-test="JobListing-location"]')),
                salary=_text(listing.select_one('[data-test="JobListing-salary"]')),
                equity=_text(listing.select_one('[data-test="JobListing-equity"]')),
            )
            if posting:
                postings.append(posting)

    if postings:
        return postings

    # Alternative selector for different page structure
    for block in soup.select('div[class*="job-listing"], div[class*="JobCard"]'):
        title_el = block.select_one('h2, h3, [class*="title"]')
        link = block.select_one('a[href*="/jobs/"], a[href*="/role/"]')
        posting = _build(
            title=_text(title_el),
            href=link["href"] if link else "",
            company=_text(block.select_one('[class*="company"]')),
            location=_text(block.select_one('[class*="location"]')),
        )
        if posting:
            postings.append(posting)

    return postings


class WellfoundAdapter(SourceAdapter):
    source = Source.WELLFOUND
    kind = AdapterKind.MARKUP

    def __init__(self, queries, http: HttpClient, remote: bool = False):
        super().__init__(queries)
        self.http = http
        self.remote = remote

    def fetch_target(self, query: str) -> list[Posting]:
        params = {"q": query}
        if self.remote:
            params["remote"] = "true"
        html = self.http.get_text(JOBS_URL, self.name, params=params)
        return parse_wellfound_html(html)
