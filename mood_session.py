"""Debounced mood compass session.

A session owns the compass pointer for one viewer and turns a stream of
pointer moves into at most one content fetch at a time. Moves are committed
immediately and answered with a classification for rendering; the fetch runs
only after the pointer has been quiet for ``delay`` seconds and always uses
the position current at that moment.

All methods must be called from inside the running event loop.
"""

import asyncio
import logging

import compass
import recommender
from tmdb_client import EmptyResultError, ProviderError, TMDBError


IDLE = "idle"
PENDING = "pending"
FETCHING = "fetching"

DEBOUNCE_SECONDS = 0.5
FETCH_TIMEOUT_SECONDS = 10

EMPTY_MESSAGE = "No content found for this mood"
ERROR_MESSAGE = "Unable to load content, try again"

logger = logging.getLogger(__name__)


class MoodSession:
    """Pointer state plus the idle -> pending -> fetching pipeline.

    ``fetch`` is an async callable taking a ``recommender.QueryParameters``
    and returning a list of content items. ``on_result`` is an optional async
    callable awaited with the session after every fetch whose result was
    applied.
    """

    def __init__(
        self,
        fetch,
        on_result=None,
        excluded_genre_ids=(),
        delay=DEBOUNCE_SECONDS,
        timeout=FETCH_TIMEOUT_SECONDS,
    ):
        self._fetch = fetch
        self._on_result = on_result
        self.excluded_genre_ids = frozenset(excluded_genre_ids)
        self.delay = delay
        self.timeout = timeout

        self.position = compass.Point(*compass.CENTER)
        self.state = IDLE
        self.closed = False

        self.contents = []
        self.message = None
        self.last_error = None
        self.last_query = None
        self.fetch_count = 0

        self._timer = None
        self._task = None
        self._follow_up = False
        self._loaded = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def classification(self):
        return compass.classify(compass.to_polar(self.position.x, self.position.y))

    def pointer_moved(self, x, y):
        self.position = compass.clamp_position(x, y)
        if not self.closed:
            self._request_fetch()
        return self.classification

    def reset(self):
        return self.pointer_moved(*compass.CENTER)

    def close(self):
        """Tear down: drop the pending timer and ignore any in-flight result."""
        self.closed = True
        self._follow_up = False
        self._cancel_timer()
        self._set_state(IDLE)

    async def wait_idle(self):
        await self._idle.wait()

    def _request_fetch(self):
        if self.state == FETCHING:
            # Picked up once the in-flight request settles.
            self._follow_up = True
            return
        self._schedule()

    def _schedule(self):
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire)
        self._set_state(PENDING)

    def _fire(self):
        self._timer = None
        if self.closed:
            return
        query = recommender.derive_params(self.classification, self.excluded_genre_ids)
        self.last_query = query
        self.fetch_count += 1
        self._set_state(FETCHING)
        logger.debug("Fetching mood content for %s at %s", query, self.position)
        self._task = asyncio.get_running_loop().create_task(self._run(query))

    async def _run(self, query):
        try:
            try:
                items = await asyncio.wait_for(self._fetch(query), self.timeout)
                if not items:
                    raise EmptyResultError("Mood query returned no content")
            except (TMDBError, asyncio.TimeoutError) as exc:
                logger.warning("Mood fetch failed: %r", exc)
                if self.closed:
                    return
                self._apply_failure(exc)
            except Exception as exc:
                logger.exception("Mood fetch raised unexpectedly")
                if self.closed:
                    return
                self._apply_failure(ProviderError(f"Unexpected fetch failure: {exc!r}"))
            else:
                if self.closed:
                    return
                self._apply_success(items)

            if self._on_result is not None:
                await self._on_result(self)
        finally:
            self._task = None
            if not self.closed:
                self._after_fetch()

    def _apply_success(self, items):
        self.contents = list(items)
        self.message = None
        self.last_error = None
        self._loaded = True

    def _apply_failure(self, exc):
        self.last_error = exc
        if isinstance(exc, EmptyResultError):
            self.message = EMPTY_MESSAGE
        else:
            self.message = ERROR_MESSAGE
        if not self._loaded:
            self.contents = []

    def _after_fetch(self):
        if self._follow_up:
            self._follow_up = False
            self.state = IDLE
            self._schedule()
        else:
            self._set_state(IDLE)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _set_state(self, state):
        self.state = state
        if state == IDLE:
            self._idle.set()
        else:
            self._idle.clear()
