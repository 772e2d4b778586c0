# Short tones for rep events.
# Plays through simpleaudio (pip install .[audio]); without it, rings the terminal bell.

import logging
import threading

import numpy as np

from rep_engine import RepEvent

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100

# (frequency Hz, duration ms)
TONES = {
    RepEvent.REP_COMPLETED: (990, 100),
    RepEvent.ENTERED_DOWN: (660, 60),
}


def tone(freq=880, ms=120):
    t = np.linspace(0, ms / 1000.0, int(SAMPLE_RATE * ms / 1000.0), False)
    wave = 0.2 * np.sin(2 * np.pi * freq * t)
    return (wave * 32767).astype("int16")


def _play(freq, ms):
    try:
        import simpleaudio as sa
        play_obj = sa.play_buffer(tone(freq, ms), 1, 2, SAMPLE_RATE)
        play_obj.wait_done()
    except Exception as e:
        logger.debug("simpleaudio unavailable (%s), using terminal bell", e)
        print("\a", end="", flush=True)


def beep(freq=880, ms=120, async_play=True):
    if async_play:
        threading.Thread(target=_play, args=(freq, ms), daemon=True).start()
    else:
        _play(freq, ms)


def beep_for(event, async_play=True):
    """Beep for an event that has a tone; returns True if one was played."""
    if event not in TONES:
        return False
    freq, ms = TONES[event]
    beep(freq, ms, async_play=async_play)
    return True
