"""Poll the external simulation service for snapshot frames.

A failed fetch is a batch-level failure: it raises FeedError and leaves the
tracker exactly as it was.
"""
import logging
import time
from typing import Callable, Dict, Optional

import requests

from .config import FEED_URL, FEED_TIMEOUT, POLL_INTERVAL

logger = logging.getLogger(__name__)


class FeedError(RuntimeError):
    """The simulation service could not be reached or returned an unusable frame."""


class SnapshotFeed:
    def __init__(self, url: str = FEED_URL, timeout: float = FEED_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.last_seq = None

    def fetch(self, params: Optional[Dict] = None) -> Dict:
        """Fetch one frame. Raises FeedError on transport, HTTP or JSON failure."""
        try:
            response = self.session.get(self.url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedError(f"Failed to fetch frame from {self.url}: {e}") from e
        try:
            frame = response.json()
        except ValueError as e:
            raise FeedError(f"Frame from {self.url} is not valid JSON") from e
        if not isinstance(frame, dict):
            raise FeedError(f"Frame from {self.url} is not an object")
        return frame

    def next_frame(self) -> Optional[Dict]:
        """Fetch the latest frame, or None when its sequence number was already seen."""
        frame = self.fetch({"after": self.last_seq} if self.last_seq is not None else None)
        seq = frame.get("seq")
        if seq is not None and seq == self.last_seq:
            return None
        self.last_seq = seq
        return frame


def poll_into(tracker, feed: SnapshotFeed, frames: int, interval: float = POLL_INTERVAL,
              on_frame: Optional[Callable[[Dict, int], None]] = None,
              sleep: Callable[[float], None] = time.sleep) -> int:
    """Poll `frames` times, applying each new frame to `tracker`. Returns the number of counties applied."""
    applied = 0
    for i in range(frames):
        frame = feed.next_frame()
        if frame is not None:
            n = tracker.apply_frame(frame)
            applied += n
            logger.info(f"Applied frame {frame.get('seq')}: {n} counties")
            if on_frame is not None:
                on_frame(frame, n)
        if i < frames - 1:
            sleep(interval)
    return applied
