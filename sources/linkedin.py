"""
LinkedIn adapter — parses LinkedIn job alert emails from an IMAP mailbox.
Uses stdlib imaplib and email (no extra dependencies), BeautifulSoup for the HTML body.
"""

import email
import imaplib
import logging
import re
from datetime import datetime, timedelta, timezone
from email import policy
from typing import Callable, Optional

from bs4 import BeautifulSoup

from models.errors import FetchError
from models.posting import Posting, Source
from sources.base import AdapterKind, SourceAdapter, make_posting


logger = logging.getLogger(__name__)

ALERT_SENDER = "jobalerts-noreply@linkedin.com"
JOB_LINK_RE = re.compile(r"https?://(?:www\.)?linkedin\.com/(?:comm/)?jobs/view/(\d+)", re.IGNORECASE)
SUBJECT_PREFIX_RE = re.compile(r"^(?:(?:fw|fwd|re):\s*)+", re.IGNORECASE)
SUBJECT_RE = re.compile(r'^["“”]([^"“”]+)["“”]:\s*(.*)$')


def job_url(job_id: str) -> str:
    return f"https://www.linkedin.com/jobs/view/{job_id}/"


def parse_subject(subject: str) -> dict:
    """
    Split an alert subject like '"sales engineer": Acme - Solutions Engineer'
    into its search term and role info. Forward/reply prefixes are dropped.
    """
    cleaned = SUBJECT_PREFIX_RE.sub("", subject or "").strip()
    match = SUBJECT_RE.match(cleaned)
    if match:
        return {"search_term": match.group(1).strip(), "role_info": match.group(2).strip()}
    return {"search_term": None, "role_info": cleaned}


def extract_jobs_from_html(html: str) -> list[dict]:
    """
    Find LinkedIn job links in an alert email body.

    Returns dicts with 'job_id' and 'title' in document order, one per job id.
    Anchor text supplies the title; ids only found in raw markup get an empty title.
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "html.parser")
    jobs: dict[str, dict] = {}

    for link in soup.find_all("a", href=True):
        match = JOB_LINK_RE.search(link["href"])
        if not match:
            continue
        job_id = match.group(1)
        title = link.get_text(" ", strip=True)
        # Alerts often link the logo first, then the title
        if job_id not in jobs:
            jobs[job_id] = {"job_id": job_id, "title": title}
        elif not jobs[job_id]["title"] and title:
            jobs[job_id]["title"] = title

    # Also check raw HTML for job links
    for match in JOB_LINK_RE.finditer(html):
        job_id = match.group(1)
        if job_id not in jobs:
            jobs[job_id] = {"job_id": job_id, "title": ""}

    return list(jobs.values())


def _message_html(message) -> str:
    body = message.get_body(preferencelist=("html", "plain"))
    # Plain-text bodies still go through the raw link scan
    return body.get_content() if body is not None else ""


def parse_alert_email(raw: bytes) -> list[Posting]:
    """Turn one raw RFC822 alert email into Postings."""
    message = email.message_from_bytes(raw, policy=policy.default)
    subject = str(message.get("subject", ""))
    subject_info = parse_subject(subject)

    postings = []
    for job in extract_jobs_from_html(_message_html(message)):
        posting = make_posting(
            id=f"linkedin-{job['job_id']}",
            title=job["title"] or subject_info["role_info"],
            url=job_url(job["job_id"]),
            source=Source.LINKEDIN,
            search_term=subject_info["search_term"],
            email_subject=subject,
        )
        if posting:
            postings.append(posting)

    return postings


class LinkedInAlertAdapter(SourceAdapter):
    """
    Reads alert emails received since yesterday from each configured folder.
    Messages are opened read-only, so they stay unread in the mailbox.
    """

    source = Source.LINKEDIN
    kind = AdapterKind.MAILBOX

    def __init__(
        self,
        folders,
        host: str,
        port: int,
        user: Optional[str],
        password: Optional[str],
        connect: Optional[Callable[[], imaplib.IMAP4]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        # No credentials means nothing to read
        super().__init__(folders if user and password else [])
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self._connect = connect or (lambda: imaplib.IMAP4_SSL(self.host, self.port))
        self._clock = clock

    def fetch_target(self, folder: str) -> list[Posting]:
        since = (self._clock() - timedelta(days=1)).strftime("%d-%b-%Y")

        try:
            conn = self._connect()
        except (imaplib.IMAP4.error, OSError) as e:
            raise FetchError(self.name, f"IMAP connect to {self.host}:{self.port} failed: {e}") from e

        try:
            conn.login(self.user, self.password)
            status, _ = conn.select(folder, readonly=True)
            if status != "OK":
                raise FetchError(self.name, f"Could not open folder {folder}")

            status, data = conn.search(None, "FROM", f'"{ALERT_SENDER}"', "SINCE", since)
            if status != "OK":
                raise FetchError(self.name, f"Search failed in {folder}")

            message_ids = data[0].split() if data and data[0] else []
            if not message_ids:
                logger.debug("LinkedIn: No new job alert emails in %s", folder)
                return []

            logger.info("LinkedIn: Found %d job alert emails in %s", len(message_ids), folder)

            postings = []
            for message_id in message_ids:
                status, parts = conn.fetch(message_id, "(RFC822)")
                if status != "OK":
                    logger.warning("LinkedIn: Could not fetch message %s", message_id)
                    continue
                for part in parts:
                    if isinstance(part, tuple) and len(part) == 2:
                        postings.extend(parse_alert_email(part[1]))
            return postings

        except (imaplib.IMAP4.error, OSError) as e:
            raise FetchError(self.name, f"IMAP error in {folder}: {e}") from e
        finally:
            try:
                conn.logout()
            except (imaplib.IMAP4.error, OSError):
                pass
