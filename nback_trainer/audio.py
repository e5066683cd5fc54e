"""Pygame playback sink for the auditory cue.

This stays outside the deterministic trial engine: the scheduler only calls
``play(symbol)`` and never waits on it. If the mixer cannot be opened the sink
goes silent and the session continues with visual cues only.
"""

from __future__ import annotations

import logging
import math
from array import array
from pathlib import Path

import pygame

from .cognitive_core import LETTERS

logger = logging.getLogger(__name__)


class MixerPlayback:
    _sample_rate = 22050
    _amp = 32767

    # One pitch per letter, a whole tone apart, so a tone-only setup is still playable.
    _LETTER_FREQS_HZ: dict[str, float] = {
        letter: 330.0 * (2.0 ** (idx * 2 / 12.0)) for idx, letter in enumerate(LETTERS)
    }

    def __init__(
        self,
        *,
        assets_dir: Path | None = None,
        volume: float = 1.0,
        tone_s: float = 0.30,
    ) -> None:
        self._available = False
        self._volume = max(0.0, min(1.0, float(volume)))
        self._tone_s = float(tone_s)
        self._assets_dir = assets_dir
        self._sounds: dict[str, pygame.mixer.Sound] = {}
        self._channel: pygame.mixer.Channel | None = None

        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=1, buffer=512)
            for letter in LETTERS:
                self._sounds[letter] = self._load_letter(letter) or self._build_letter_tone(letter)
            self._channel = pygame.mixer.Channel(0)
            self._available = True
        except Exception as exc:
            logger.warning("audio unavailable, continuing without sound: %s", exc)
            self._available = False

    @property
    def available(self) -> bool:
        return self._available

    def set_volume(self, volume: float) -> None:
        self._volume = max(0.0, min(1.0, float(volume)))

    def play(self, symbol: str) -> None:
        if not self._available:
            return
        sound = self._sounds.get(str(symbol).lower())
        if sound is None:
            return
        assert self._channel is not None
        try:
            self._channel.set_volume(self._volume)
            self._channel.play(sound)
        except Exception as exc:
            logger.warning("audio playback failed, continuing without sound: %s", exc)
            self._available = False

    def close(self) -> None:
        if not self._available:
            return
        assert self._channel is not None
        self._channel.stop()
        self._available = False

    def _load_letter(self, letter: str) -> pygame.mixer.Sound | None:
        if self._assets_dir is None:
            return None
        path = self._assets_dir / f"{letter}.wav"
        if not path.exists():
            return None
        try:
            return pygame.mixer.Sound(str(path))
        except Exception:
            logger.warning("could not load %s; using a generated tone", path)
            return None

    def _build_letter_tone(self, letter: str) -> pygame.mixer.Sound:
        pcm = self._render_tone_pcm(self._LETTER_FREQS_HZ[letter], self._tone_s, gain=0.35)
        return pygame.mixer.Sound(buffer=pcm.tobytes())

    def _render_tone_pcm(self, frequency_hz: float, duration_s: float, *, gain: float) -> array[int]:
        sample_count = max(1, int(self._sample_rate * duration_s))
        fade_n = max(1, int(self._sample_rate * 0.008))
        out = array("h")
        for idx in range(sample_count):
            envelope = 1.0
            if idx < fade_n:
                envelope = idx / fade_n
            elif idx > sample_count - fade_n:
                envelope = max(0.0, (sample_count - idx) / fade_n)
            value = math.sin(2.0 * math.pi * frequency_hz * (idx / self._sample_rate))
            out.append(int(max(-1.0, min(1.0, value * gain * envelope)) * self._amp))
        return out
