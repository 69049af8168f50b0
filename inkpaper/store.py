"""
Recognition Store
=================
In-memory, observable collection of recognized text entries.

The store is an ordinary object: create one and pass it to every consumer.
Entries are kept newest-first. Each mutation swaps in a new immutable
snapshot and publishes it to subscribers before the mutating call returns,
so no observer ever sees a half-applied insert or clear.

Legacy tag convention:
    Text imported from older exports may carry the literal prefix
    `Q<n>: ` (1-based index, colon, single space). `add_tagged()` turns that
    prefix into the structured `question_index` field.
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .models import RecognizedEntry

logger = logging.getLogger(__name__)

StoreSnapshot = tuple[RecognizedEntry, ...]
Subscriber = Callable[[StoreSnapshot], None]

# Matches the literal "Q<n>: " question tag at the start of a text
QUESTION_TAG_PATTERN = re.compile(r"^Q(\d+): ")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_tag(question_index: int, text: str) -> str:
    """Render text with the literal `Q<n>: ` prefix."""
    return f"Q{question_index}: {text}"


def split_tag(text: str) -> tuple[Optional[int], str]:
    """
    Split a legacy tagged text into (question_index, text).
    Untagged text returns (None, text) unchanged.
    """
    match = QUESTION_TAG_PATTERN.match(text)
    if not match:
        return None, text
    index = int(match.group(1))
    if index < 1:
        return None, text
    return index, text[match.end():]


class Subscription:
    """Handle returned by `RecognitionStore.subscribe()`."""

    def __init__(self, store: "RecognitionStore", callback: Subscriber):
        self._store = store
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._store.is_subscribed(self)

    def unsubscribe(self):
        self._store.unsubscribe(self)


class RecognitionStore:
    """
    Reactive store of recognized entries.

    Usage:
        store = RecognitionStore()
        sub = store.subscribe(lambda snapshot: print(len(snapshot)))
        store.add("अ", question_index=1)
        store.by_question(1)
        sub.unsubscribe()
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or _utc_now
        self._entries: StoreSnapshot = ()
        self._subscriptions: list[Subscription] = []
        self._sequence = 0
        self._last_time: Optional[datetime] = None
        self._lock = threading.RLock()

    # ─── Reads ────────────────────────────────────────────────────────────

    def snapshot(self) -> StoreSnapshot:
        """Current entries, newest first."""
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def by_question(self, question_index: int) -> list[RecognizedEntry]:
        """Entries tagged with `question_index`, oldest first."""
        entries = self._entries
        filtered = [e for e in entries if e.question_index == question_index]
        filtered.sort(key=lambda e: (e.time, e.sequence))
        return filtered

    def question_text(self, question_index: int) -> str:
        """Chronological texts for one question joined by single spaces."""
        return " ".join(e.text for e in self.by_question(question_index))

    def combined_text(self) -> str:
        """Every entry in store order, in display form, joined by spaces."""
        return " ".join(e.display_text for e in self._entries)

    # ─── Mutations ────────────────────────────────────────────────────────

    def add(
        self,
        text: str,
        question_index: Optional[int] = None,
    ) -> RecognizedEntry:
        """
        Insert a new entry at the front and notify subscribers.

        Args:
            text: Recognized text (without any tag prefix).
            question_index: Question the text belongs to, if any.

        Returns:
            The stored entry.
        """
        with self._lock:
            self._sequence += 1
            entry = RecognizedEntry(
                text=text,
                time=self._next_time(),
                question_index=question_index,
                sequence=self._sequence,
            )
            self._entries = (entry,) + self._entries
            logger.debug(f"Stored entry #{entry.sequence}: {entry.display_text}")
            self._publish(self._entries)
        return entry

    def add_tagged(self, text: str) -> RecognizedEntry:
        """Add text that may carry a legacy `Q<n>: ` prefix."""
        question_index, body = split_tag(text)
        return self.add(body, question_index=question_index)

    def clear(self):
        """Remove every entry and notify subscribers."""
        with self._lock:
            self._entries = ()
            logger.debug("Store cleared")
            self._publish(self._entries)

    # ─── Subscriptions ────────────────────────────────────────────────────

    def subscribe(self, callback: Subscriber) -> Subscription:
        """Register a callback that receives every new snapshot."""
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def is_subscribed(self, subscription: Subscription) -> bool:
        with self._lock:
            return subscription in self._subscriptions

    def _publish(self, snapshot: StoreSnapshot):
        for subscription in list(self._subscriptions):
            try:
                subscription.callback(snapshot)
            except Exception as e:
                logger.error(f"Store subscriber failed: {e}", exc_info=True)

    def _next_time(self) -> datetime:
        now = self._clock()
        if self._last_time is not None and now <= self._last_time:
            now = self._last_time + timedelta(microseconds=1)
        self._last_time = now
        return now
