"""
Y Combinator adapter — scrapes Work at a Startup (YC's job board).
"""

import json
import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from models.posting import Posting, Source
from sources.base import AdapterKind, SourceAdapter, dedupe_by_id, make_posting
from sources.wellfound import job_slug, slugify
from tools.http_client import HttpClient


logger = logging.getLogger(__name__)

BASE_URL = "https://www.workatastartup.com"
JOBS_URL = f"{BASE_URL}/jobs"

LISTING_SELECTOR = 'div[data-job-id], [class*="JobListing"], [class*="job-listing"]'
COMPANY_CARD_SELECTOR = '[class*="CompanyCard"], [class*="company-card"]'


def _text(element) -> str:
    return element.get_text(" ", strip=True) if element else ""


def _from_listings(soup: BeautifulSoup) -> list[Posting]:
    postings = []

    for listing in soup.select(LISTING_SELECTOR):
        link = listing.select_one('a[href*="/jobs/"], a[href*="/company/"]')
        if not link or not link.get("href"):
            continue

        url = urljoin(BASE_URL, link["href"])
        job_id = listing.get("data-job-id") or job_slug(url)
        if not job_id:
            continue

        posting = make_posting(
            id=f"yc-{job_id}",
            title=_text(listing.select_one('h2, h3, [class*="title"]')),
            url=url,
            source=Source.YCOMBINATOR,
            company=_text(listing.select_one('[class*="company"], [class*="Company"]')) or "YC Startup",
            location=_text(listing.select_one('[class*="location"], [class*="Location"]')),
            batch=_text(listing.select_one('[class*="batch"], [class*="Batch"]')),
            funding=_text(listing.select_one('[class*="funding"], [class*="stage"]')),
        )
        if posting:
            postings.append(posting)

    return postings


def _from_next_data(soup: BeautifulSoup) -> list[Posting]:
    script = soup.select_one("script#__NEXT_DATA__")
    if not script or not script.string:
        return []

    try:
        data = json.loads(script.string)
    except ValueError:
        logger.debug("Y Combinator: Could not parse embedded JSON")
        return []

    jobs = (((data or {}).get("props") or {}).get("pageProps") or {}).get("jobs") or []
    postings = []

    for job in jobs:
        job_id = job.get("id") or job.get("slug")
        if not job_id:
            continue

        company = job.get("company") or {}
        location = job.get("location") or ", ".join(job.get("locations") or [])

        posting = make_posting(
            id=f"yc-{job_id}",
            title=job.get("title") or job.get("name"),
            url=job.get("url") or f"{JOBS_URL}/{job.get('slug') or job_id}",
            source=Source.YCOMBINATOR,
            company=company.get("name") or job.get("companyName") or "YC Startup",
            location=location,
            batch=company.get("batch") or job.get("batch"),
            funding=company.get("stage") or job.get("stage"),
        )
        if posting:
            postings.append(posting)

    return postings


def _from_company_cards(soup: BeautifulSoup) -> list[Posting]:
    postings = []

    for card in soup.select(COMPANY_CARD_SELECTOR):
        company = _text(card.select_one('h2, h3, [class*="name"]'))
        batch = _text(card.select_one('[class*="batch"]'))
        first_link = card.select_one("a[href]")

        for role in card.select('[class*="job"], [class*="role"], a[href*="/jobs/"]'):
            title = _text(role)
            # Skips badges like "New" that share the class names
            if len(title) <= 3:
                continue

            href = role.get("href") or (first_link.get("href") if first_link else "")
            posting = make_posting(
                id=f"yc-{slugify(company or 'YC Startup')}-{slugify(title)}",
                title=title,
                url=urljoin(BASE_URL, href or ""),
                source=Source.YCOMBINATOR,
                company=company or "YC Startup",
                batch=batch,
            )
            if posting:
                postings.append(posting)

    return dedupe_by_id(postings)


def parse_ycombinator_html(html: str) -> list[Posting]:
    """
    Extract postings from a Work at a Startup page.

    Tries job listing markup first, then the embedded Next.js payload, then
    company cards with their open roles.
    """
    soup = BeautifulSoup(html, "html.parser")
    return _from_listings(soup) or _from_next_data(soup) or _from_company_cards(soup)


class YCombinatorAdapter(SourceAdapter):
    source = Source.YCOMBINATOR
    kind = AdapterKind.MARKUP

    def __init__(self, queries, http: HttpClient, remote: bool = False):
        super().__init__(queries)
        self.http = http
        self.remote = remote

    def fetch_target(self, query: str) -> list[Posting]:
        params = {"query": query}
        if self.remote:
            params["hasRemote"] = "true"
        html = self.http.get_text(JOBS_URL, self.name, params=params)
        return parse_ycombinator_html(html)
