import os
import shutil
import tempfile
import unittest
from unittest.mock import MagicMock

from models.config import FilterRules
from models.errors import FetchError, StoreUnavailable
from models.posting import Posting, Source
from pipeline.cycle import run_cycle
from pipeline.delivery import DeliveryController
from sources.base import AdapterKind, SourceAdapter
from tools.dedup_store import DedupStore


def posting(id, title="Sales Engineer", source=Source.LEVER):
    return Posting(id=id, title=title, url=f"https://example.com/{id}", source=source)


class StaticAdapter(SourceAdapter):
    kind = AdapterKind.API

    def __init__(self, source, postings=None, error=None):
        super().__init__(["target"])
        self.source = source
        self._postings = postings or []
        self._error = error
        self.calls = 0

    def fetch_target(self, target):
        self.calls += 1
        if self._error:
            raise self._error
        return list(self._postings)


class RecordingSink:
    def __init__(self, fail_ids=()):
        self.sent = []
        self.fail_ids = set(fail_ids)

    def send(self, posting):
        if posting.id in self.fail_ids:
            raise RuntimeError("sink down")
        self.sent.append(posting.id)
        return True


class TestRunCycle(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.store = DedupStore(os.path.join(self.tmpdir, "seen.db")).open()
        self.sink = RecordingSink()
        self.controller = DeliveryController(self.sink, max_batch_size=10, post_delay_seconds=0)
        self.rules = FilterRules(roles=["engineer"], exclude=["intern"])

    def tearDown(self):
        self.store.close()
        shutil.rmtree(self.tmpdir)

    def test_failed_adapter_is_isolated(self):
        a = StaticAdapter(Source.LEVER, [posting("lever-a-1")])
        b = StaticAdapter(Source.GREENHOUSE, error=FetchError("Greenhouse", "HTTP 503"))
        c = StaticAdapter(Source.WELLFOUND, [posting("wellfound-c-1", source=Source.WELLFOUND)])

        report = run_cycle([a, b, c], self.rules, self.store, self.controller)

        self.assertEqual(sorted(self.sink.sent), ["lever-a-1", "wellfound-c-1"])
        self.assertIn("Greenhouse", report.failed_sources)
        self.assertEqual(report.fetched, {"Lever": 1, "Wellfound": 1})

    def test_unexpected_adapter_exception_is_isolated(self):
        a = StaticAdapter(Source.LEVER, [posting("lever-a-1")])
        broken = StaticAdapter(Source.YCOMBINATOR)
        broken.fetch = MagicMock(side_effect=KeyError("jobs"))

        report = run_cycle([a, broken], self.rules, self.store, self.controller)

        self.assertEqual(self.sink.sent, ["lever-a-1"])
        self.assertIn("Y Combinator", report.failed_sources)

    def test_no_duplicate_delivery_across_cycles(self):
        adapter = StaticAdapter(Source.LEVER, [posting("lever-a-1"), posting("lever-a-2")])

        run_cycle([adapter], self.rules, self.store, self.controller)
        second = run_cycle([adapter], self.rules, self.store, self.controller)

        self.assertEqual(self.sink.sent, ["lever-a-1", "lever-a-2"])
        self.assertEqual(second.new, [])
        self.assertIsNone(second.delivery)

    def test_filtered_postings_are_not_marked(self):
        adapter = StaticAdapter(Source.LEVER, [
            posting("lever-a-1", title="Sales Engineer Intern"),
            posting("lever-a-2", title="Recruiter"),
            posting("lever-a-3", title="Sales Engineer II"),
        ])

        report = run_cycle([adapter], self.rules, self.store, self.controller)

        self.assertEqual(report.matched, 1)
        self.assertEqual(self.sink.sent, ["lever-a-3"])
        self.assertFalse(self.store.has_seen("lever-a-1"))
        self.assertFalse(self.store.has_seen("lever-a-2"))

    def test_duplicate_ids_in_one_batch_sent_once(self):
        a = StaticAdapter(Source.LINKEDIN, [posting("linkedin-1", source=Source.LINKEDIN)])
        b = StaticAdapter(Source.LINKEDIN, [posting("linkedin-1", source=Source.LINKEDIN)])

        run_cycle([a, b], self.rules, self.store, self.controller)

        self.assertEqual(self.sink.sent, ["linkedin-1"])

    def test_batch_cap_overflow_not_retried_next_cycle(self):
        controller = DeliveryController(self.sink, max_batch_size=2, post_delay_seconds=0)
        adapter = StaticAdapter(Source.LEVER, [posting(f"lever-a-{i}") for i in range(5)])

        first = run_cycle([adapter], self.rules, self.store, controller)
        run_cycle([adapter], self.rules, self.store, controller)

        self.assertEqual(len(self.sink.sent), 2)
        self.assertEqual(len(first.delivery.deferred), 3)
        for i in range(5):
            self.assertTrue(self.store.has_seen(f"lever-a-{i}"))

    def test_marked_before_send_so_failed_send_is_not_retried(self):
        self.sink.fail_ids = {"lever-a-1"}
        adapter = StaticAdapter(Source.LEVER, [posting("lever-a-1")])

        first = run_cycle([adapter], self.rules, self.store, self.controller)
        self.sink.fail_ids = set()
        run_cycle([adapter], self.rules, self.store, self.controller)

        self.assertEqual(first.delivery.failed, ["lever-a-1"])
        self.assertEqual(self.sink.sent, [])

    def test_store_failure_aborts_cycle(self):
        store = MagicMock()
        store.has_seen.side_effect = StoreUnavailable("disk gone")
        adapter = StaticAdapter(Source.LEVER, [posting("lever-a-1")])

        with self.assertRaises(StoreUnavailable):
            run_cycle([adapter], self.rules, store, self.controller)
        self.assertEqual(self.sink.sent, [])

    def test_store_failure_mid_marking_keeps_completed_marks(self):
        store = MagicMock()
        store.has_seen.return_value = False
        store.mark_seen.side_effect = [True, StoreUnavailable("disk full")]
        adapter = StaticAdapter(Source.LEVER, [posting("lever-a-1"), posting("lever-a-2")])

        with self.assertRaises(StoreUnavailable):
            run_cycle([adapter], self.rules, store, self.controller)
        self.assertEqual(store.mark_seen.call_count, 2)
        self.assertEqual(self.sink.sent, [])

    def test_no_adapters(self):
        report = run_cycle([], self.rules, self.store, self.controller)
        self.assertEqual(report.total_fetched, 0)
        self.assertEqual(report.new, [])


if __name__ == "__main__":
    unittest.main()
