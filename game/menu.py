import logging
import math
import os
import time
import warnings

import pygame

from analysis.analysis_job import AnalysisJob
from analysis.errors import SUPPORTED_FORMATS, DecodeError, EmptyResultWarning
from . import constants as C
from . import models as M
from .beatmap_generator import generate_hit_circles
from .input import Input
from .playback import ensure_playable

logger = logging.getLogger(__name__)

SLICER = "slicer"


class Button:
    def __init__(self, rect, text, font, base_color=(255, 255, 255), hover_color=(200, 220, 255)):
        self.rect = pygame.Rect(rect)
        self.text = text
        self.font = font
        self.base_color = base_color
        self.hover_color = hover_color
        self.is_hovered = False
        self._scale = 1.0
        self._target_scale = 1.0

    def check_hover(self, mouse_pos):
        self.is_hovered = self.rect.collidepoint(mouse_pos)
        self._target_scale = 1.08 if self.is_hovered else 1.0

    def check_click(self, mouse_pos, mouse_clicked):
        return mouse_clicked and self.rect.collidepoint(mouse_pos)

    def draw(self, screen):
        # smooth lerp toward target scale
        self._scale += (self._target_scale - self._scale) * 0.18

        color = self.hover_color if self.is_hovered else self.base_color
        if self.is_hovered:
            pygame.draw.rect(screen, (80, 80, 100), self.rect.inflate(8, 8), 2, border_radius=8)

        text_surface = self.font.render(self.text, True, color)
        scaled_w = int(text_surface.get_width() * self._scale)
        scaled_h = int(text_surface.get_height() * self._scale)
        if scaled_w > 0 and scaled_h > 0:
            text_surface = pygame.transform.smoothscale(text_surface, (scaled_w, scaled_h))
        screen.blit(text_surface, text_surface.get_rect(center=self.rect.center))


def draw_centered(screen, font, text, color, y):
    surface = font.render(text, True, color)
    screen.blit(surface, surface.get_rect(center=(screen.get_width() // 2, y)))


class SongScreen:
    """
    Title screen that doubles as the song loader. Songs come in as dropped files
    (or a path from the command line) and are analyzed in the background.
    Dropping another file while one is analyzing abandons the first.

    States: "idle" -> "loading" -> "ready" | "empty" | "error"
    """
    def __init__(self, screen, config: C.RhythmConfig = C.DEFAULT_CONFIG):
        self.screen = screen
        self.config = config
        sw, sh = screen.get_size()

        self.title_font = pygame.font.Font(None, 120)
        self.text_font = pygame.font.Font(None, 40)
        self.small_font = pygame.font.Font(None, 30)
        self.button_font = pygame.font.Font(None, 64)

        self.start_button = Button((sw // 2 - 140, sh // 2 + 120, 280, 70), "START GAME", self.button_font)
        self.slicer_button = Button((sw - 320, 30, 290, 60), "HAND SLICER", self.text_font)
        self.title_y_base = sh // 2 - 160

        self.state = "idle"
        self.job: AnalysisJob | None = None
        self.message = ""
        self.song_path: str | None = None
        self.analysis: M.AnalysisResult | None = None
        self.circles: list[M.HitCircle] = []

    def load_song(self, path: str):
        if self.job is not None and not self.job.done:
            logger.info("Abandoning analysis of %s", self.job.audio_path)
            self.job.cancel()

        self.song_path = path
        self.analysis = None
        self.circles = []
        self.message = ""
        self.job = AnalysisJob(path).start()
        self.state = "loading"

    def poll(self):
        """Picks up the analysis result once the background job finishes"""
        if self.state != "loading" or self.job is None or not self.job.done:
            return

        job = self.job
        if job.result is not None:
            self._build_level(job.result)
        elif job.error is not None:
            self.state = "error"
            self.message = str(job.error)
        else:
            self.state = "error"
            self.message = "Failed to analyze audio. Please try another file."

    def fail(self, message: str):
        """Back to the loader with an error, e.g. when playback failed after START"""
        self.state = "error"
        self.message = message

    def _build_level(self, analysis: M.AnalysisResult):
        try:
            ensure_playable(self.song_path)
        except DecodeError as e:
            self.fail(str(e))
            return

        self.analysis = analysis
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", EmptyResultWarning)
            self.circles = generate_hit_circles(analysis.beats, C.CANVAS_WIDTH, C.CANVAS_HEIGHT, self.config)

        if not self.circles:
            self.state = "empty"
            self.message = "No playable beats found in this song. Please try a different file."
        else:
            self.state = "ready"
            self.message = f"Audio analyzed: {analysis.bpm} BPM - {len(self.circles)} beats detected"

    def level(self) -> M.Level:
        return M.Level(self.song_path, self.analysis, self.circles)

    def update(self, inp: Input):
        for path in inp.dropped_files:
            self.load_song(path)

        self.poll()

        self.slicer_button.check_hover(inp.mouse_pos)
        if self.slicer_button.check_click(inp.mouse_pos, inp.mouse_clicked):
            return "slicer"

        if self.state == "ready":
            self.start_button.check_hover(inp.mouse_pos)
            if self.start_button.check_click(inp.mouse_pos, inp.mouse_clicked) or inp.enter:
                return "start"
        return None

    def draw(self, current_time):
        sw, sh = self.screen.get_size()

        # floating title
        y_offset = 8 * math.sin(current_time * 2)
        draw_centered(self.screen, self.title_font, "HAND RHYTHM", (255, 255, 255), self.title_y_base + y_offset)
        draw_centered(
            self.screen, self.small_font,
            "Use your index finger to hit the circles at the perfect timing!",
            (200, 200, 200), self.title_y_base + 80,
        )

        if self.state == "loading":
            self._draw_progress(self.job.progress if self.job else 0)
        elif self.state == "ready":
            draw_centered(self.screen, self.text_font, self.message, (100, 255, 100), sh // 2 + 60)
            self.start_button.draw(self.screen)
        elif self.state in ("error", "empty"):
            draw_centered(self.screen, self.text_font, self.message, (239, 68, 68), sh // 2 + 20)

        self.slicer_button.draw(self.screen)

        if self.state != "loading":
            draw_centered(self.screen, self.text_font, "Drop a music file on this window", (255, 255, 255), sh - 120)
            draw_centered(
                self.screen, self.small_font, "Supported: " + ", ".join(SUPPORTED_FORMATS), (150, 150, 150), sh - 80
            )

    def _draw_progress(self, progress: int):
        sw, sh = self.screen.get_size()
        name = os.path.basename(self.song_path or "")
        draw_centered(self.screen, self.text_font, f"Analyzing {name}... {progress}%", (255, 255, 255), sh // 2)

        bar = pygame.Rect(sw // 2 - 300, sh // 2 + 30, 600, 16)
        pygame.draw.rect(self.screen, (60, 60, 60), bar, border_radius=4)
        filled = bar.copy()
        filled.width = int(bar.width * progress / 100)
        if filled.width > 0:
            pygame.draw.rect(self.screen, (100, 200, 255), filled, border_radius=4)


class MenuManager:
    def __init__(self, screen, clock, config: C.RhythmConfig = C.DEFAULT_CONFIG, song_screen: SongScreen | None = None):
        self.screen = screen
        self.clock = clock
        self.song_screen = song_screen if song_screen is not None else SongScreen(screen, config)
        self.input = Input()

    def load_song(self, path: str):
        self.song_screen.load_song(path)

    def run(self) -> M.Level | str | None:
        """
        Main menu loop. Returns the analyzed Level to play, SLICER for the hand
        slicer, or None if quit.
        """
        while True:
            self.input.update()
            if self.input.quit:
                if self.song_screen.job is not None:
                    self.song_screen.job.cancel()
                return None

            self.screen.fill((0, 0, 0))
            action = self.song_screen.update(self.input)
            self.song_screen.draw(time.time())

            if action == "start":
                return self.song_screen.level()
            if action == "slicer":
                return SLICER

            pygame.display.flip()
            self.clock.tick(C.FPS)


class ResultsScreen:
    def __init__(self, screen, summary: M.RunSummary):
        self.screen = screen
        self.summary = summary
        sw, sh = screen.get_size()
        self.grade_font = pygame.font.Font(None, 200)
        self.text_font = pygame.font.Font(None, 44)
        btn_font = pygame.font.Font(None, 56)
        self.again_button = Button((sw // 2 - 260, sh - 140, 240, 60), "PLAY AGAIN", btn_font)
        self.menu_button = Button((sw // 2 + 20, sh - 140, 240, 60), "MAIN MENU", btn_font)

    def update(self, inp: Input):
        self.again_button.check_hover(inp.mouse_pos)
        self.menu_button.check_hover(inp.mouse_pos)
        if self.again_button.check_click(inp.mouse_pos, inp.mouse_clicked) or inp.enter:
            return "again"
        if self.menu_button.check_click(inp.mouse_pos, inp.mouse_clicked) or inp.escape:
            return "menu"
        return None

    def draw(self):
        s = self.summary
        sh = self.screen.get_height()
        draw_centered(self.screen, self.grade_font, s.grade, (255, 215, 0), sh // 4)

        lines = [
            f"Score: {s.score}",
            f"Accuracy: {s.accuracy}%",
            f"Max Combo: {s.max_combo}",
            f"Perfect {s.perfect_count}   Good {s.good_count}   Bad {s.bad_count}   Miss {s.miss_count}",
        ]
        for i, line in enumerate(lines):
            draw_centered(self.screen, self.text_font, line, (255, 255, 255), sh // 2 + i * 50)

        self.again_button.draw(self.screen)
        self.menu_button.draw(self.screen)


class GameOverScreen(ResultsScreen):
    """End of a hand slicer round: final score plus RETRY and MAIN MENU"""
    def __init__(self, screen, score: int):
        self.screen = screen
        self.score = score
        sw, sh = screen.get_size()
        self.title_font = pygame.font.Font(None, 140)
        self.text_font = pygame.font.Font(None, 64)
        btn_font = pygame.font.Font(None, 56)
        self.again_button = Button((sw // 2 - 260, sh // 2 + 100, 240, 60), "RETRY", btn_font)
        self.menu_button = Button((sw // 2 + 20, sh // 2 + 100, 240, 60), "MAIN MENU", btn_font)

    def draw(self):
        sh = self.screen.get_height()
        draw_centered(self.screen, self.title_font, "GAME OVER", C.ORB_COLORS["killer"], sh // 2 - 120)
        draw_centered(self.screen, self.text_font, f"Final Score: {self.score}", (255, 255, 255), sh // 2)
        self.again_button.draw(self.screen)
        self.menu_button.draw(self.screen)


def run_results(screen, clock, summary: M.RunSummary):
    """Results loop. Returns 'again', 'menu' or None if the window was closed."""
    return _run_end_screen(screen, clock, ResultsScreen(screen, summary))


def run_game_over(screen, clock, score: int):
    """Slicer game over loop, same answers as run_results"""
    return _run_end_screen(screen, clock, GameOverScreen(screen, score))


def _run_end_screen(screen, clock, results):
    inp = Input()
    while True:
        inp.update()
        if inp.quit:
            return None

        screen.fill((0, 0, 0))
        action = results.update(inp)
        results.draw()
        if action is not None:
            return action

        pygame.display.flip()
        clock.tick(C.FPS)


class PauseScreen:
    """Pause overlay drawn on top of the game. Returns 'resume' or 'menu'."""

    FADE_DURATION = 0.25  # seconds for dim animation

    def __init__(self, screen):
        self.screen = screen
        sw, sh = screen.get_size()
        btn_font = pygame.font.Font(None, 56)
        self.title_font = pygame.font.Font(None, 96)
        self.resume_button = Button((sw // 2 - 120, sh // 2 - 50, 240, 60), "RESUME", btn_font)
        self.menu_button = Button((sw // 2 - 120, sh // 2 + 30, 240, 60), "MAIN MENU", btn_font)
        self.open_time = time.time()

    def update(self, mouse_pos, mouse_clicked):
        self.resume_button.check_hover(mouse_pos)
        self.menu_button.check_hover(mouse_pos)
        if self.resume_button.check_click(mouse_pos, mouse_clicked):
            return "resume"
        if self.menu_button.check_click(mouse_pos, mouse_clicked):
            return "menu"
        return None

    def draw(self, current_time):
        sw, sh = self.screen.get_size()
        t = min(1.0, (current_time - self.open_time) / self.FADE_DURATION)
        ease = 1 - (1 - t) ** 3  # cubic ease-out

        overlay = pygame.Surface((sw, sh), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, int(150 * ease)))
        self.screen.blit(overlay, (0, 0))

        draw_centered(self.screen, self.title_font, "PAUSED", (255, 255, 255), sh // 2 - 140)
        self.resume_button.draw(self.screen)
        self.menu_button.draw(self.screen)
