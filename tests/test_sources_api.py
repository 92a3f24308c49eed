import unittest

import httpx

from models.errors import FetchError
from models.posting import UNSPECIFIED, Source
from sources.greenhouse import GreenhouseAdapter
from sources.lever import LeverAdapter
from tools.http_client import HttpClient


LEVER_RESPONSE = [
    {
        "id": "abc-123",
        "text": "Solutions Engineer",
        "categories": {"location": "Remote - US", "team": "Sales", "commitment": "Full-time"},
        "hostedUrl": "https://jobs.lever.co/spotify/abc-123",
    },
    {
        "id": "def-456",
        "text": "",  # no title, dropped
        "categories": {},
    },
    {
        "id": "ghi-789",
        "text": "Backend Engineer",
        "categories": {},
    },
]

GREENHOUSE_RESPONSE = {
    "jobs": [
        {
            "id": 4012345,
            "title": "Staff Platform Engineer",
            "location": {"name": "San Francisco, CA"},
            "departments": [{"name": "Engineering"}],
            "absolute_url": "https://boards.greenhouse.io/airbnb/jobs/4012345",
        },
        {"id": 4012346, "title": "   ", "location": {"name": "NYC"}},
    ]
}


def client_for(routes):
    """HttpClient whose transport serves {path: (status, json)}; unknown paths 404."""
    requests = []

    def handler(request):
        requests.append(request)
        status, body = routes.get(request.url.path, (404, {"error": "not found"}))
        return httpx.Response(status, json=body)

    return HttpClient(max_retries=2, transport=httpx.MockTransport(handler), sleep=lambda s: None), requests


class TestLeverAdapter(unittest.TestCase):
    def test_fetch_normalizes_postings(self):
        http, requests = client_for({"/v0/postings/spotify": (200, LEVER_RESPONSE)})
        postings = LeverAdapter(["spotify"], http).fetch()

        self.assertEqual([p.id for p in postings], ["lever-spotify-abc-123", "lever-spotify-ghi-789"])
        first = postings[0]
        self.assertEqual(first.title, "Solutions Engineer")
        self.assertEqual(first.company, "Spotify")
        self.assertEqual(first.location, "Remote - US")
        self.assertEqual(first.source, Source.LEVER)
        self.assertEqual(first.attributes, {"team": "Sales", "commitment": "Full-time"})
        self.assertEqual(requests[0].url.params["mode"], "json")

        second = postings[1]
        self.assertEqual(second.url, "https://jobs.lever.co/spotify/ghi-789")
        self.assertEqual(second.location, UNSPECIFIED)
        self.assertEqual(second.attributes, {})

    def test_ids_stable_across_fetches(self):
        http, _ = client_for({"/v0/postings/spotify": (200, LEVER_RESPONSE)})
        adapter = LeverAdapter(["spotify"], http)
        self.assertEqual([p.id for p in adapter.fetch()], [p.id for p in adapter.fetch()])

    def test_one_company_failing_keeps_the_others(self):
        http, _ = client_for({"/v0/postings/spotify": (200, LEVER_RESPONSE)})
        postings = LeverAdapter(["missing-co", "spotify"], http).fetch()
        self.assertEqual(len(postings), 2)

    def test_all_companies_failing_raises(self):
        http, _ = client_for({})
        with self.assertRaises(FetchError) as ctx:
            LeverAdapter(["a", "b"], http).fetch()
        self.assertEqual(ctx.exception.source, "Lever")

    def test_no_targets_returns_empty(self):
        http, requests = client_for({})
        self.assertEqual(LeverAdapter([], http).fetch(), [])
        self.assertEqual(requests, [])


class TestGreenhouseAdapter(unittest.TestCase):
    def test_fetch_normalizes_postings(self):
        http, _ = client_for({"/v1/boards/airbnb/jobs": (200, GREENHOUSE_RESPONSE)})
        postings = GreenhouseAdapter(["airbnb"], http).fetch()

        self.assertEqual(len(postings), 1)
        p = postings[0]
        self.assertEqual(p.id, "greenhouse-airbnb-4012345")
        self.assertEqual(p.company, "Airbnb")
        self.assertEqual(p.location, "San Francisco, CA")
        self.assertEqual(p.attributes, {"department": "Engineering"})
        self.assertEqual(p.url, "https://boards.greenhouse.io/airbnb/jobs/4012345")


class TestHttpClient(unittest.TestCase):
    def test_retries_server_errors_then_succeeds(self):
        statuses = iter([503, 200])

        def handler(request):
            return httpx.Response(next(statuses), json={"jobs": []})

        sleeps = []
        http = HttpClient(max_retries=3, transport=httpx.MockTransport(handler), sleep=sleeps.append)
        self.assertEqual(http.get_json("https://example.com/jobs", "Test"), {"jobs": []})
        self.assertEqual(sleeps, [1])

    def test_client_errors_fail_without_retry(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        http = HttpClient(max_retries=3, transport=httpx.MockTransport(handler), sleep=lambda s: None)
        with self.assertRaises(FetchError):
            http.get_json("https://example.com/jobs", "Test")
        self.assertEqual(len(calls), 1)

    def test_transport_error_becomes_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        http = HttpClient(max_retries=2, transport=httpx.MockTransport(handler), sleep=lambda s: None)
        with self.assertRaises(FetchError) as ctx:
            http.get_text("https://example.com", "Test")
        self.assertIn("2 attempts", str(ctx.exception))

    def test_invalid_json_is_fetch_error(self):
        http = HttpClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>")),
            sleep=lambda s: None,
        )
        with self.assertRaises(FetchError):
            http.get_json("https://example.com", "Test")


if __name__ == "__main__":
    unittest.main()
