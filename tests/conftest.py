import os

import pygame
import pytest


@pytest.fixture
def headless_pygame():
    """Display and fonts without a real window"""
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
    pygame.display.init()
    pygame.font.init()
    yield
    pygame.quit()
