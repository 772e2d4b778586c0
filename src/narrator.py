"""
Spoken feedback for a push-up session.

Subscribe a Narrator to a SessionAggregator; it says "Down" when the arm
bends, "Up" and the new count when a rep completes. Speech runs on its own
thread so the sample loop never waits for the TTS engine.
"""

import logging
import queue
import threading
from typing import List, Optional

import pyttsx3

import beeper
from rep_engine import RepEvent, RepPhase, SessionSnapshot

logger = logging.getLogger(__name__)


def phrases_for(snapshot: SessionSnapshot) -> List[str]:
    event = snapshot.event
    if event is RepEvent.ENTERED_DOWN:
        return ["Down"]
    if event is RepEvent.SEEDED and snapshot.phase is RepPhase.DOWN:
        return ["Down"]
    if event is RepEvent.REP_COMPLETED:
        return ["Up", str(snapshot.rep_count)]
    return []


class Narrator:
    def __init__(self, speak=True, beep_on_rep=True, engine=None):
        self.speak = speak
        self.beep_on_rep = beep_on_rep
        self._engine = engine
        self._queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if self._thread is not None or not self.speak:
            return self
        if self._engine is None:
            self._engine = pyttsx3.init()
        self._thread = threading.Thread(target=self._worker, name="narrator", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout=2.0):
        if self._thread is None:
            return
        self._queue.put(None)
        self._thread.join(timeout)
        self._thread = None

    def __call__(self, snapshot: SessionSnapshot):
        if self.beep_on_rep and snapshot.event is RepEvent.REP_COMPLETED:
            beeper.beep_for(snapshot.event)
        if not self.speak:
            return
        for text in phrases_for(snapshot):
            self._queue.put(text)

    def pending(self) -> List[str]:
        """Phrases queued but not spoken yet."""
        return [t for t in list(self._queue.queue) if t is not None]

    def _worker(self):
        while True:
            text = self._queue.get()
            if text is None:
                break
            try:
                self._engine.say(text)
                self._engine.runAndWait()
            except Exception:
                logger.exception("TTS failed for %r", text)
