import asyncio
import unittest

import compass
import mood_session
from tmdb_client import NetworkError, ProviderError

DELAY = 0.05


class FakeFetcher:
    def __init__(self, results=None, error=None, gate=None):
        self.results = [{"id": 1}] if results is None else results
        self.error = error
        self.gate = gate
        self.queries = []
        self.started = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, query):
        self.queries.append(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            return list(self.results)
        finally:
            self.in_flight -= 1


class MoodSessionTests(unittest.IsolatedAsyncioTestCase):
    async def test_pointer_move_returns_classification_immediately(self):
        session = mood_session.MoodSession(FakeFetcher(), delay=DELAY)
        classification = session.pointer_moved(90, 10)
        self.assertEqual(classification.sector["name"], "Energetic")
        self.assertEqual(session.position, (90, 10))
        self.assertEqual(session.state, mood_session.PENDING)
        session.close()

    async def test_burst_collapses_into_one_fetch_with_last_position(self):
        fetcher = FakeFetcher()
        session = mood_session.MoodSession(fetcher, delay=DELAY)
        for x, y in [(50, 0), (100, 50), (50, 100), (90, 10)]:
            session.pointer_moved(x, y)
            await asyncio.sleep(DELAY / 5)
        await session.wait_idle()

        self.assertEqual(session.fetch_count, 1)
        self.assertEqual(len(fetcher.queries), 1)
        self.assertEqual(fetcher.queries[0].genre_ids, frozenset({28, 12, 53}))
        self.assertEqual(fetcher.queries[0].sort_key, compass.VOTE_AVERAGE_DESC)
        self.assertEqual(session.contents, [{"id": 1}])
        self.assertEqual(session.state, mood_session.IDLE)

    async def test_query_uses_position_at_fire_time(self):
        fetcher = FakeFetcher()
        session = mood_session.MoodSession(fetcher, delay=DELAY)
        session.pointer_moved(50, 0)
        session.position = compass.Point(50.0, 50.0)
        await session.wait_idle()
        self.assertEqual(fetcher.queries[0].genre_ids, frozenset())

    async def test_move_during_fetch_triggers_exactly_one_follow_up(self):
        gate = asyncio.Event()
        fetcher = FakeFetcher(gate=gate)
        session = mood_session.MoodSession(fetcher, delay=DELAY)

        session.pointer_moved(50, 0)
        await fetcher.started.wait()
        self.assertEqual(session.state, mood_session.FETCHING)

        session.pointer_moved(50, 100)
        session.pointer_moved(0, 50)
        self.assertEqual(session.state, mood_session.FETCHING)
        gate.set()
        await session.wait_idle()

        self.assertEqual(session.fetch_count, 2)
        self.assertEqual(fetcher.max_in_flight, 1)
        self.assertEqual(fetcher.queries[1].genre_ids, frozenset({27, 53, 9648}))

    async def test_failure_returns_to_idle_and_keeps_previous_contents(self):
        fetcher = FakeFetcher(results=[{"id": 5}])
        session = mood_session.MoodSession(fetcher, delay=DELAY)
        session.pointer_moved(50, 0)
        await session.wait_idle()
        self.assertEqual(session.contents, [{"id": 5}])

        fetcher.error = NetworkError("down")
        session.pointer_moved(100, 50)
        await session.wait_idle()

        self.assertEqual(session.state, mood_session.IDLE)
        self.assertEqual(session.contents, [{"id": 5}])
        self.assertEqual(session.message, mood_session.ERROR_MESSAGE)
        self.assertIsInstance(session.last_error, NetworkError)

    async def test_first_failure_leaves_contents_empty(self):
        session = mood_session.MoodSession(
            FakeFetcher(error=NetworkError("down")), delay=DELAY
        )
        session.pointer_moved(50, 0)
        await session.wait_idle()
        self.assertEqual(session.contents, [])
        self.assertEqual(session.message, mood_session.ERROR_MESSAGE)

    async def test_empty_result_message(self):
        session = mood_session.MoodSession(FakeFetcher(results=[]), delay=DELAY)
        session.pointer_moved(0, 50)
        await session.wait_idle()
        self.assertEqual(session.message, mood_session.EMPTY_MESSAGE)
        self.assertEqual(session.contents, [])

    async def test_timeout_is_treated_as_failure(self):
        fetcher = FakeFetcher(gate=asyncio.Event())
        session = mood_session.MoodSession(fetcher, delay=DELAY, timeout=DELAY)
        session.pointer_moved(0, 50)
        await session.wait_idle()
        self.assertEqual(session.state, mood_session.IDLE)
        self.assertEqual(session.message, mood_session.ERROR_MESSAGE)
        self.assertIsInstance(session.last_error, asyncio.TimeoutError)

    async def test_unexpected_fetch_error_is_treated_as_failure(self):
        seen = []

        async def on_result(session):
            seen.append(session.message)

        session = mood_session.MoodSession(
            FakeFetcher(error=AttributeError("bad payload")),
            on_result=on_result,
            delay=DELAY,
        )
        session.pointer_moved(50, 0)
        with self.assertLogs("mood_session", level="ERROR"):
            await session.wait_idle()

        self.assertEqual(session.state, mood_session.IDLE)
        self.assertEqual(session.message, mood_session.ERROR_MESSAGE)
        self.assertIsInstance(session.last_error, ProviderError)
        self.assertEqual(seen, [mood_session.ERROR_MESSAGE])

    async def test_on_result_is_awaited(self):
        seen = []

        async def on_result(session):
            seen.append(list(session.contents))

        session = mood_session.MoodSession(FakeFetcher(), on_result=on_result, delay=DELAY)
        session.pointer_moved(50, 0)
        await session.wait_idle()
        self.assertEqual(seen, [[{"id": 1}]])

    async def test_close_cancels_pending_timer(self):
        fetcher = FakeFetcher()
        session = mood_session.MoodSession(fetcher, delay=DELAY)
        session.pointer_moved(50, 0)
        session.close()
        await asyncio.sleep(DELAY * 3)
        self.assertEqual(fetcher.queries, [])
        self.assertEqual(session.fetch_count, 0)

    async def test_close_discards_in_flight_result(self):
        gate = asyncio.Event()
        seen = []

        async def on_result(session):
            seen.append(session.contents)

        fetcher = FakeFetcher(gate=gate)
        session = mood_session.MoodSession(fetcher, on_result=on_result, delay=DELAY)
        session.pointer_moved(50, 0)
        await fetcher.started.wait()
        session.close()
        gate.set()
        await asyncio.sleep(DELAY)

        self.assertEqual(seen, [])
        self.assertEqual(session.contents, [])
        session.pointer_moved(0, 50)
        await asyncio.sleep(DELAY * 3)
        self.assertEqual(session.fetch_count, 1)

    async def test_reset_returns_to_center(self):
        fetcher = FakeFetcher()
        session = mood_session.MoodSession(fetcher, delay=DELAY)
        session.pointer_moved(90, 10)
        classification = session.reset()
        self.assertTrue(classification.neutral)
        await session.wait_idle()
        self.assertEqual(session.fetch_count, 1)
        self.assertEqual(fetcher.queries[0].genre_ids, frozenset())

    async def test_exclusions_apply_to_queries(self):
        fetcher = FakeFetcher()
        session = mood_session.MoodSession(
            fetcher, excluded_genre_ids={10751}, delay=DELAY
        )
        session.pointer_moved(50, 0)
        await session.wait_idle()
        self.assertEqual(fetcher.queries[0].genre_ids, frozenset({35, 16}))


if __name__ == "__main__":
    unittest.main()
