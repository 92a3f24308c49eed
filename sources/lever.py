"""
Lever adapter — fetches postings from Lever's public postings API.
"""

from models.errors import FetchError
from models.posting import Posting, Source
from sources.base import AdapterKind, SourceAdapter, format_company_name, make_posting
from tools.http_client import HttpClient


API_URL = "https://api.lever.co/v0/postings"


def parse_lever_postings(data: list, company: str) -> list[Posting]:
    """
    Parse a Lever postings response (a flat JSON list) into Postings.

    Args:
        data: Raw JSON response from the API.
        company: Company slug the postings belong to.
    """
    postings = []

    for raw_job in data:
        if not isinstance(raw_job, dict) or not raw_job.get("id"):
            continue

        job_id = raw_job["id"]
        categories = raw_job.get("categories") or {}
        url = (
            raw_job.get("hostedUrl")
            or raw_job.get("applyUrl")
            or f"https://jobs.lever.co/{company}/{job_id}"
        )

        posting = make_posting(
            id=f"lever-{company}-{job_id}",
            title=raw_job.get("text"),
            url=url,
            source=Source.LEVER,
            company=format_company_name(company),
            location=categories.get("location"),
            team=categories.get("team"),
            commitment=categories.get("commitment"),
        )
        if posting:
            postings.append(posting)

    return postings


class LeverAdapter(SourceAdapter):
    source = Source.LEVER
    kind = AdapterKind.API

    def __init__(self, companies, http: HttpClient):
        super().__init__(companies)
        self.http = http

    def fetch_target(self, company: str) -> list[Posting]:
        data = self.http.get_json(f"{API_URL}/{company}", self.name, params={"mode": "json"})
        if not isinstance(data, list):
            raise FetchError(self.name, f"Unexpected response shape for {company}")
        return parse_lever_postings(data, company)
