import logging

import pygame

from analysis.errors import DecodeError

logger = logging.getLogger(__name__)


def ensure_mixer():
    if not pygame.mixer.get_init():
        pygame.mixer.init()


def ensure_playable(song_path: str) -> None:
    """
    Loads 'song_path' into pygame.mixer.music once and unloads it again.

    Songs are decoded by librosa for analysis but played by SDL_mixer, and the
    two do not read the same containers. Raises DecodeError when the mixer
    cannot open the file (or there is no audio output at all).
    """
    try:
        ensure_mixer()
    except pygame.error as e:
        logger.error("Audio output unavailable: %s", e)
        raise DecodeError("No audio output device is available, so the song cannot be played.") from e

    try:
        pygame.mixer.music.load(song_path)
    except pygame.error as e:
        logger.error("Mixer cannot play %s: %s", song_path, e)
        raise DecodeError() from e

    pygame.mixer.music.unload()
