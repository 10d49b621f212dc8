import logging
import time

import pygame

from analysis.errors import DecodeError
from . import constants as C
from . import models as M
from .clock import Clock, MixerClock, TicksClock
from .effects import EffectsLayer
from .hand_tracking import HandTracker, cursors_from_hands
from .input import Input
from .menu import PauseScreen
from .playback import ensure_mixer
from .renderer import Renderer, SlicerRenderer, present
from .rhythm import RhythmManager
from .slicer import SlicerGame

logger = logging.getLogger(__name__)


class Game:
    """
    One play-through of a Level. The loop only schedules: every frame it reads
    the audio clock and the tracker's latest hands, lets RhythmManager advance,
    then draws the resulting snapshot.
    """
    def __init__(
        self,
        level: M.Level,
        tracker: HandTracker,
        screen=None,
        clock=None,
        config: C.RhythmConfig = C.DEFAULT_CONFIG,
    ) -> None:
        if screen is not None:
            self.screen = screen
        else:
            self.screen = pygame.display.set_mode((C.CANVAS_WIDTH, C.CANVAS_HEIGHT), pygame.RESIZABLE)
            pygame.display.set_caption("Hand Rhythm")
        self.clock = clock if clock is not None else pygame.time.Clock()
        self.running = False

        self.level = level
        self.tracker = tracker
        self.config = config

        # everything is played on a fixed canvas and scaled to the window
        self.canvas = pygame.Surface((C.CANVAS_WIDTH, C.CANVAS_HEIGHT))
        self.renderer = Renderer(self.canvas, config)
        self.effects = EffectsLayer()
        self.input = Input()

        self.audio_clock = MixerClock()
        self.rhythm = RhythmManager(level.circles, self.audio_clock, config)

        # --- pause state
        self.paused = False
        self.pause_screen: PauseScreen | None = None
        self._exit_to_menu = False
        self.quit_requested = False
        self.error: DecodeError | None = None

    def start(self):
        """Fresh run: reset circles, counters and effects, then start the music"""
        self.rhythm.reset()
        self.effects.clear()
        self.audio_clock.reset()

        try:
            ensure_mixer()
            pygame.mixer.music.load(self.level.song_path)
        except pygame.error as e:
            logger.error("Cannot play %s: %s", self.level.song_path, e)
            raise DecodeError() from e
        pygame.mixer.music.play()

        logger.info(
            "Starting %s (%d BPM) with %d circles", self.level.song_path, self.level.bpm, len(self.level.circles)
        )

    def run(self) -> M.RunSummary | None:
        """
        Run the game loop. Returns the run summary when the song ends, None if
        the player left early or the song could not be played (see 'error').
        """
        try:
            self.start()
        except DecodeError as e:
            self.error = e
            return None

        self.running = True
        self._exit_to_menu = False
        finished = False

        while self.running:
            self.clock.tick(C.FPS)
            self.input.update()

            if self.input.quit:
                self.quit_requested = True
                self.running = False
                break

            if self.paused:
                self._update_paused()
            else:
                finished = self.update()
                if finished:
                    self.running = False

            pygame.display.flip()

        pygame.mixer.music.stop()
        if not finished or self._exit_to_menu:
            return None
        return self.rhythm.summary()

    def current_cursors(self) -> list[M.HandCursor]:
        return cursors_from_hands(self.tracker.latest_hands(), C.CANVAS_WIDTH, C.CANVAS_HEIGHT)

    def update(self) -> bool:
        """Advance and draw one frame. Returns True when the song is over."""
        if self.input.escape:
            self._enter_pause()
            return False

        frame = self.rhythm.update(self.current_cursors())
        self.effects.spawn(frame.events)
        self.effects.update()

        self.renderer.draw_frame(frame, self.rhythm.circles, self.effects, self.tracker.latest_frame())
        present(self.canvas, self.screen)

        # every circle judged and its feedback faded: skip the outro
        if self.rhythm.is_finished() and not self.effects.feedbacks:
            return True
        return not pygame.mixer.music.get_busy()

    def _enter_pause(self):
        self.paused = True
        self._pause_snapshot = self.screen.copy()
        self.pause_screen = PauseScreen(self.screen)
        pygame.mixer.music.pause()

    def _exit_pause(self):
        self.paused = False
        self.pause_screen = None
        pygame.mixer.music.unpause()

    def _update_paused(self):
        # blit the frozen snapshot captured when pause was entered
        self.screen.blit(self._pause_snapshot, (0, 0))

        if self.input.escape:
            self._exit_pause()
            return

        action = self.pause_screen.update(self.input.mouse_pos, self.input.mouse_clicked)
        self.pause_screen.draw(time.time())

        if action == "resume":
            self._exit_pause()
        elif action == "menu":
            self._exit_to_menu = True
            self.running = False


class Slicer:
    """
    One round of the hand slicer, played until game over or until the player
    leaves.
    """
    def __init__(self, tracker: HandTracker, screen, clock=None, ticks: Clock | None = None, rng=None):
        self.screen = screen
        self.clock = clock if clock is not None else pygame.time.Clock()
        self.tracker = tracker
        self.ticks = ticks if ticks is not None else TicksClock()

        self.canvas = pygame.Surface((C.CANVAS_WIDTH, C.CANVAS_HEIGHT))
        self.renderer = SlicerRenderer(self.canvas)
        self.effects = EffectsLayer(rng)
        self.input = Input()
        self.game = SlicerGame(C.CANVAS_WIDTH, C.CANVAS_HEIGHT, rng)
        self.quit_requested = False

    def run(self) -> int | None:
        """Returns the final score, None if the player left before game over"""
        self.game.reset(self.ticks.now_ms())
        self.effects.clear()
        logger.info("Starting hand slicer")

        while True:
            self.clock.tick(C.FPS)
            self.input.update()

            if self.input.quit:
                self.quit_requested = True
                return None
            if self.input.escape:
                return None

            self.update()
            pygame.display.flip()

            if self.game.game_over:
                return self.game.score

    def update(self):
        """Advance and draw one frame"""
        now = self.ticks.now_ms()
        cursors = cursors_from_hands(self.tracker.latest_hands(), C.CANVAS_WIDTH, C.CANVAS_HEIGHT)

        for event in self.game.update(now, cursors):
            self.effects.burst(event.x, event.y, C.ORB_COLORS[event.kind.value])
        self.effects.update()

        self.renderer.draw_slicer_frame(self.game, cursors, self.effects, now, self.tracker.latest_frame())
        present(self.canvas, self.screen)
