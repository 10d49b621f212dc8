import cv2
import pygame

from . import constants as C
from . import models as M
from .rhythm import approach_progress


class Renderer:
    """
    Draws one game frame onto a fixed size canvas surface. Reads engine output
    only; never changes circles or run state.
    """
    def __init__(self, canvas: pygame.Surface, config: C.RhythmConfig = C.DEFAULT_CONFIG):
        self.canvas = canvas
        self.config = config
        self.hud_font = pygame.font.Font(None, 56)
        self.label_font = pygame.font.Font(None, 28)
        self.feedback_font = pygame.font.Font(None, 64)

    # ----- background

    def draw_background(self, frame_bgr=None):
        """Mirrored camera image (selfie view), dimmed so circles stay readable"""
        self.canvas.fill((0, 0, 0))
        if frame_bgr is None:
            return

        w, h = self.canvas.get_size()
        frame_rgb = cv2.cvtColor(cv2.flip(frame_bgr, 1), cv2.COLOR_BGR2RGB)
        frame_rgb = cv2.resize(frame_rgb, (w, h))
        image = pygame.image.frombuffer(frame_rgb.tobytes(), (w, h), "RGB")
        self.canvas.blit(image, (0, 0))

        overlay = pygame.Surface((w, h), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 90))
        self.canvas.blit(overlay, (0, 0))

    # ----- play field

    def draw_hit_circle(self, circle: M.HitCircle, current_time: float):
        """Hit circle with an approach ring shrinking from 3x to 1x radius"""
        if not circle.is_visible or circle.is_hit:
            return

        progress = approach_progress(circle, current_time, self.config)
        approach_radius = circle.radius * (3 - 2 * progress)
        center = (int(circle.x), int(circle.y))

        pygame.draw.circle(self.canvas, C.APPROACH_RING_COLOR, center, int(approach_radius), 4)
        pygame.draw.circle(self.canvas, C.CIRCLE_COLOR, center, int(circle.radius))
        pygame.draw.circle(self.canvas, (255, 255, 255), center, int(circle.radius), 3)

    def draw_hand_cursor(self, cursor: M.HandCursor):
        if not cursor.is_tracking:
            return

        r = int(self.config.cursor_radius)
        glow = pygame.Surface((r * 2, r * 2), pygame.SRCALPHA)
        pygame.draw.circle(glow, (*C.CURSOR_COLOR, 77), (r, r), r)
        self.canvas.blit(glow, (int(cursor.x) - r, int(cursor.y) - r))

        pygame.draw.circle(self.canvas, (255, 255, 255), (int(cursor.x), int(cursor.y)), max(1, r // 2))

    def draw_hit_feedback(self, feedback: M.HitFeedback):
        key = feedback.judgment.value
        text = self.feedback_font.render(C.JUDGMENT_TEXT[key], True, C.JUDGMENT_COLORS[key])
        text.set_alpha(int(255 * max(0.0, min(1.0, feedback.alpha))))
        rect = text.get_rect(center=(int(feedback.x), int(feedback.y + C.FEEDBACK_Y_OFFSET)))
        self.canvas.blit(text, rect)

    def draw_particles(self, particles: list[M.Particle]):
        r = C.PARTICLE_RADIUS
        for particle in particles:
            dot = pygame.Surface((r * 2, r * 2), pygame.SRCALPHA)
            alpha = int(255 * max(0.0, min(1.0, particle.life)))
            pygame.draw.circle(dot, (*particle.color, alpha), (r, r), r)
            self.canvas.blit(dot, (int(particle.x) - r, int(particle.y) - r))

    # ----- HUD

    def draw_hud(self, state: M.RunState):
        w = self.canvas.get_width()

        score_label = self.label_font.render("SCORE", True, (34, 211, 238))
        score_text = self.hud_font.render(str(state.score), True, C.COLOR)
        self.canvas.blit(score_label, (24, 20))
        self.canvas.blit(score_text, (24, 44))

        combo_label = self.label_font.render("COMBO", True, (250, 204, 21))
        combo_text = self.hud_font.render(f"{state.combo}x", True, C.COLOR)
        self.canvas.blit(combo_label, combo_label.get_rect(topright=(w - 24, 20)))
        self.canvas.blit(combo_text, combo_text.get_rect(topright=(w - 24, 44)))

    def draw_frame(self, frame: M.FrameResult, circles: list[M.HitCircle], effects, camera_frame=None):
        self.draw_background(camera_frame)

        for circle in circles:
            self.draw_hit_circle(circle, frame.clock)

        for cursor in frame.cursors:
            self.draw_hand_cursor(cursor)

        self.draw_particles(effects.particles)
        for feedback in effects.feedbacks:
            self.draw_hit_feedback(feedback)

        self.draw_hud(frame.state)


def present(canvas: pygame.Surface, screen: pygame.Surface):
    """Scale the canvas to the window"""
    size = screen.get_size()
    if size == canvas.get_size():
        screen.blit(canvas, (0, 0))
    else:
        screen.blit(pygame.transform.smoothscale(canvas, size), (0, 0))


class SlicerRenderer(Renderer):
    """Draws the hand slicer: falling orbs, finger trails and lives"""

    def draw_orb(self, orb: M.Orb):
        color = C.ORB_COLORS[orb.kind.value]
        r = int(orb.radius)
        cx, cy = int(orb.x), int(orb.y)

        # fading streak above the orb
        streak_h = r * 4
        streak = pygame.Surface((r * 2, streak_h), pygame.SRCALPHA)
        for row in range(streak_h):
            alpha = int(204 * row / streak_h)
            pygame.draw.line(streak, (*color, alpha), (0, row), (r * 2, row))
        self.canvas.blit(streak, (cx - r, cy - streak_h))

        glow_r = r * 2 if orb.kind == M.OrbKind.GOLD else int(r * 1.5)
        glow = pygame.Surface((glow_r * 2, glow_r * 2), pygame.SRCALPHA)
        pygame.draw.circle(glow, (*color, 70), (glow_r, glow_r), glow_r)
        self.canvas.blit(glow, (cx - glow_r, cy - glow_r))

        pygame.draw.circle(self.canvas, color, (cx, cy), r)
        pygame.draw.circle(self.canvas, (255, 255, 255), (cx, cy), r, 2)

    def draw_trails(self, trails: dict[int, list[tuple[float, float]]], buff_active: bool):
        glow_color = C.BUFF_TRAIL_COLOR if buff_active else C.TRAIL_COLOR
        for trail in trails.values():
            if len(trail) < 2:
                continue
            points = [(int(x), int(y)) for x, y in trail]
            pygame.draw.lines(self.canvas, glow_color, False, points, 15)
            pygame.draw.lines(self.canvas, (255, 255, 255), False, points, 6)

    def draw_fingertip(self, cursor: M.HandCursor):
        if cursor.is_tracking:
            pygame.draw.circle(self.canvas, (255, 255, 255), (int(cursor.x), int(cursor.y)), 10)

    def draw_slicer_hud(self, game, now_ms: float):
        w = self.canvas.get_width()

        score_text = self.hud_font.render(f"SCORE: {game.score}", True, C.COLOR)
        self.canvas.blit(score_text, score_text.get_rect(midtop=(w // 2, 20)))

        # one heart per life
        for i in range(game.lives):
            pygame.draw.circle(self.canvas, C.ORB_COLORS["killer"], (36 + i * 34, 44), 12)

        if game.buff_active:
            buff_text = self.hud_font.render(f"BUFF: {game.buff_time_left(now_ms)}s", True, C.BUFF_TRAIL_COLOR)
            self.canvas.blit(buff_text, buff_text.get_rect(topright=(w - 24, 20)))

    def draw_slicer_frame(self, game, cursors: list[M.HandCursor], effects, now_ms: float, camera_frame=None):
        self.draw_background(camera_frame)

        for orb in game.orbs:
            self.draw_orb(orb)

        self.draw_trails(game.trails, game.buff_active)
        for cursor in cursors:
            self.draw_fingertip(cursor)

        self.draw_particles(effects.particles)
        self.draw_slicer_hud(game, now_ms)
