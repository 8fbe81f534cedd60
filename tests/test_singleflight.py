import threading
import time
import unittest

from mythbuster.errors import ProviderTimeout
from mythbuster.infra.singleflight import SingleFlight


class SingleFlightTests(unittest.TestCase):
    def _race(self, flights, key, fn, n=4):
        results, errors = [], []

        def worker():
            try:
                results.append(flights.do(key, fn))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results, errors

    def test_followers_share_leader_result(self):
        calls = []

        def fn():
            calls.append(1)
            time.sleep(0.2)
            return "answer"

        flights = SingleFlight()
        results, errors = self._race(flights, "k", fn)
        self.assertEqual(errors, [])
        self.assertEqual(len(calls), 1)
        self.assertEqual({r for r, _ in results}, {"answer"})
        self.assertEqual(sum(1 for _, shared in results if not shared), 1)
        self.assertEqual(flights.in_flight(), 0)

    def test_followers_see_leader_error(self):
        def fn():
            time.sleep(0.2)
            raise RuntimeError("boom")

        results, errors = self._race(SingleFlight(), "k", fn)
        self.assertEqual(results, [])
        self.assertEqual(len(errors), 4)
        self.assertTrue(all(isinstance(e, RuntimeError) for e in errors))

    def test_follower_gives_up_after_wait_timeout(self):
        release = threading.Event()
        flights = SingleFlight(wait_timeout=0.05)
        leader = threading.Thread(target=flights.do, args=("k", release.wait))
        leader.start()
        time.sleep(0.05)
        with self.assertRaises(ProviderTimeout):
            flights.do("k", lambda: "never")
        release.set()
        leader.join()

    def test_distinct_keys_run_independently(self):
        flights = SingleFlight()
        self.assertEqual(flights.do("a", lambda: 1), (1, False))
        self.assertEqual(flights.do("b", lambda: 2), (2, False))


if __name__ == "__main__":
    unittest.main()
