"""
Debounced editing session

Feeds a Compiler from a stream of text edits. Edits arriving within the
debounce window are coalesced into a single compile of the latest text:

    submit("a") submit("ab") submit("abc") ..0.3s..  -> one compile of "abc"

Only the pending timer is cancelled by a new edit. A compile already in
flight keeps running; if a newer compile has started by the time it
finishes, the compiler reports it stale and its result is dropped.
"""

import asyncio
import time
from typing import Any, Callable, Optional, Set

from ..config import appsettings
from ..models.slide import Deck
from .compiler import Compiler, DeckRenderError
from .log import LOG, LOG_error

DeckListener = Callable[[Deck], Any]
ErrorListener = Callable[[str], Any]


class DeckSession:
    """
    Editing session around one document

    Attributes:
        latest: Most recent published Deck
        error: Message of the last failed compile, None after a success
        cacheBust: Current asset version token (0 until assets change)

    Example:
        >>> session = DeckSession(onDeck=lambda deck: print(len(deck.slides)))
        >>> session.text_submit(text)
        >>> await session.idle()
        3
    """

    def __init__(
        self,
        compiler: Optional[Compiler] = None,
        baseUrl: str = "",
        debounce: Optional[float] = None,
        onDeck: Optional[DeckListener] = None,
        onError: Optional[ErrorListener] = None,
    ) -> None:
        self.compiler = compiler or Compiler()
        self.baseUrl = baseUrl
        self.debounce = appsettings.debounce_seconds if debounce is None else debounce
        self.onDeck = onDeck
        self.onError = onError

        self.text: Optional[str] = None
        self.cacheBust = 0
        self.latest: Optional[Deck] = None
        self.error: Optional[str] = None

        self._timer: Optional[asyncio.Task] = None
        self._runs: Set[asyncio.Task] = set()

    def text_submit(self, text: str) -> None:
        """
        Record new document text and (re)start the debounce timer.

        Must be called from within a running event loop.
        """
        self.text = text
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.create_task(self._debounced())

    def assets_touch(self) -> int:
        """
        Signal that an asset (image, stylesheet) changed on disk.

        Bumps the cache-bust token, which invalidates every cached slide so
        image URLs pick up the new token, and schedules a recompile.

        Returns:
            The new token; strictly greater than the previous one
        """
        now = time.time_ns() // 1_000_000
        self.cacheBust = max(now, self.cacheBust + 1)
        LOG(f"Assets changed, cache-bust token {self.cacheBust}", level=2)
        if self.text is not None:
            self.text_submit(self.text)
        return self.cacheBust

    async def _debounced(self) -> None:
        await asyncio.sleep(self.debounce)
        run = asyncio.create_task(self.run())
        self._runs.add(run)
        run.add_done_callback(self._runs.discard)

    async def run(self) -> Optional[Deck]:
        """
        Compile the current text immediately.

        Returns:
            The published Deck, or None when stale or failed
        """
        if self.text is None:
            return None
        try:
            deck = await self.compiler.deck_compile(self.text, self.baseUrl, self.cacheBust)
        except DeckRenderError as e:
            LOG_error(str(e))
            self.error = str(e)
            if self.onError is not None:
                self.onError(self.error)
            return None

        if deck is None:
            return None
        self.latest = deck
        self.error = None
        if self.onDeck is not None:
            self.onDeck(deck)
        return deck

    async def idle(self) -> None:
        """Wait until no timer is pending and no compile is running"""
        while True:
            pending = [task for task in (self._timer, *self._runs) if task is not None and not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        await self.idle()
        await self.compiler.close()
