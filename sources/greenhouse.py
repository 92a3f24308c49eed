"""
Greenhouse adapter — fetches postings from the Greenhouse job board API.
"""

from models.errors import FetchError
from models.posting import Posting, Source
from sources.base import AdapterKind, SourceAdapter, format_company_name, make_posting
from tools.http_client import HttpClient


API_URL = "https://boards-api.greenhouse.io/v1/boards"


def parse_greenhouse_postings(data: dict, company: str) -> list[Posting]:
    """Parse a Greenhouse /jobs response into Postings."""
    postings = []

    for raw_job in data.get("jobs", []):
        job_id = raw_job.get("id")
        if not job_id:
            continue

        departments = raw_job.get("departments") or []
        department = departments[0].get("name") if departments else None
        location = (raw_job.get("location") or {}).get("name")

        posting = make_posting(
            id=f"greenhouse-{company}-{job_id}",
            title=raw_job.get("title"),
            url=raw_job.get("absolute_url") or f"https://boards.greenhouse.io/{company}/jobs/{job_id}",
            source=Source.GREENHOUSE,
            company=format_company_name(company),
            location=location,
            department=department,
        )
        if posting:
            postings.append(posting)

    return postings


class GreenhouseAdapter(SourceAdapter):
    source = Source.GREENHOUSE
    kind = AdapterKind.API

    def __init__(self, companies, http: HttpClient):
        super().__init__(companies)
        self.http = http

    def fetch_target(self, company: str) -> list[Posting]:
        data = self.http.get_json(f"{API_URL}/{company}/jobs", self.name)
        if not isinstance(data, dict):
            raise FetchError(self.name, f"Unexpected response shape for {company}")
        return parse_greenhouse_postings(data, company)
