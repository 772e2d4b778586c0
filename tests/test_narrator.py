import pytest

import beeper
import narrator
from narrator import Narrator, phrases_for
from rep_engine import RepEvent, RepPhase, SessionAggregator, SessionSnapshot


class FakeEngine:
    def __init__(self, fail_on=()):
        self.said = []
        self.fail_on = set(fail_on)

    def say(self, text):
        if text in self.fail_on:
            raise RuntimeError("no voice")
        self.said.append(text)

    def runAndWait(self):
        pass


@pytest.mark.parametrize("snapshot,expected", [
    (SessionSnapshot(RepPhase.DOWN, 0, event=RepEvent.ENTERED_DOWN), ["Down"]),
    (SessionSnapshot(RepPhase.DOWN, 0, event=RepEvent.SEEDED), ["Down"]),
    (SessionSnapshot(RepPhase.UP, 0, event=RepEvent.SEEDED), []),
    (SessionSnapshot(RepPhase.UP, 3, event=RepEvent.REP_COMPLETED), ["Up", "3"]),
    (SessionSnapshot(RepPhase.UP, 3), []),
])
def test_phrases_for(snapshot, expected):
    assert phrases_for(snapshot) == expected


def test_each_transition_announced_once(arm):
    agg = SessionAggregator()
    voice = Narrator(beep_on_rep=False)
    agg.subscribe(voice)
    for angle in (170, 120, 70, 60, 120, 170, 175, 70, 170):
        agg.process_sample(arm(angle))
    assert voice.pending() == ["Down", "Up", "1", "Down", "Up", "2"]


def test_no_speech_queues_nothing(arm):
    voice = Narrator(speak=False, beep_on_rep=False)
    voice(SessionSnapshot(RepPhase.UP, 1, event=RepEvent.REP_COMPLETED))
    assert voice.pending() == []
    # start() is a no-op without speech, so no TTS engine is created
    assert voice.start() is voice


def test_worker_speaks_in_order_and_survives_errors():
    engine = FakeEngine(fail_on={"Down"})
    voice = Narrator(engine=engine, beep_on_rep=False).start()
    voice(SessionSnapshot(RepPhase.DOWN, 0, event=RepEvent.ENTERED_DOWN))
    voice(SessionSnapshot(RepPhase.UP, 1, event=RepEvent.REP_COMPLETED))
    voice.stop()
    assert engine.said == ["Up", "1"]


def test_beeps_only_on_rep(monkeypatch):
    beeps = []
    monkeypatch.setattr(beeper, "beep_for", lambda event: beeps.append(event))
    voice = Narrator(speak=False, beep_on_rep=True)
    voice(SessionSnapshot(RepPhase.DOWN, 0, event=RepEvent.ENTERED_DOWN))
    voice(SessionSnapshot(RepPhase.UP, 1, event=RepEvent.REP_COMPLETED))
    assert beeps == [RepEvent.REP_COMPLETED]


def test_default_engine_comes_from_pyttsx3(monkeypatch):
    engine = FakeEngine()
    monkeypatch.setattr(narrator.pyttsx3, "init", lambda: engine)
    voice = Narrator(beep_on_rep=False).start()
    voice(SessionSnapshot(RepPhase.UP, 2, event=RepEvent.REP_COMPLETED))
    voice.stop()
    assert engine.said == ["Up", "2"]
