import argparse
import logging
import os

import pygame

import game.constants as C
from analysis.errors import SUPPORTED_FORMATS
from game.engine import Game, Slicer
from game.hand_tracking import MediaPipeHandTracker, MouseHandTracker
from game.menu import SLICER, MenuManager, run_game_over, run_results


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Hit the circles on the beat with your index finger.")
    ap.add_argument("song", nargs="?", help="Audio file to analyze right away (" + ", ".join(SUPPORTED_FORMATS) + ")")
    ap.add_argument("--camera", type=int, default=0, help="Camera index (default: 0)")
    ap.add_argument("--max-hands", type=int, default=C.MAX_NUM_HANDS, help="Maximum number of hands to track")
    ap.add_argument("--hand-model", default="models/hand_landmarker.task",
                    help="MediaPipe Tasks model, only used when mp.solutions is unavailable")
    ap.add_argument("--mouse", action="store_true", help="Play with the mouse instead of a camera")
    ap.add_argument("--windowed", action="store_true", help="Use a 1280x720 window instead of fullscreen size")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap.parse_args(argv)


def play_level(level, menu, tracker, screen, clock):
    """Plays until the player heads back to the menu. Returns 'menu' or None on quit."""
    action = "again"
    while action == "again":
        game = Game(level=level, tracker=tracker, screen=screen, clock=clock)
        summary = game.run()
        if game.quit_requested:
            action = None
        elif game.error is not None:
            menu.song_screen.fail(str(game.error))
            action = "menu"
        elif summary is None:
            action = "menu"
        else:
            action = run_results(screen, clock, summary)
    return action


def play_slicer(tracker, screen, clock):
    action = "again"
    while action == "again":
        slicer = Slicer(tracker, screen, clock)
        score = slicer.run()
        if slicer.quit_requested:
            action = None
        elif score is None:
            action = "menu"
        else:
            action = run_game_over(screen, clock, score)
    return action


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    pygame.init()
    if args.windowed:
        screen = pygame.display.set_mode((C.CANVAS_WIDTH, C.CANVAS_HEIGHT), pygame.RESIZABLE)
    else:
        info = pygame.display.Info()
        screen = pygame.display.set_mode((info.current_w, info.current_h), pygame.RESIZABLE)
    pygame.display.set_caption("Hand Rhythm")
    clock = pygame.time.Clock()

    if args.mouse:
        tracker = MouseHandTracker()
    else:
        tracker = MediaPipeHandTracker(
            camera_index=args.camera,
            max_num_hands=args.max_hands,
            tasks_model_path=args.hand_model,
        )
    tracker.start()

    menu = MenuManager(screen, clock)
    if args.song:
        menu.load_song(os.path.abspath(args.song))

    try:
        while True:
            choice = menu.run()
            if choice is None:
                break

            if choice == SLICER:
                action = play_slicer(tracker, screen, clock)
            else:
                action = play_level(choice, menu, tracker, screen, clock)

            if action is None:
                break
    finally:
        tracker.stop()
        pygame.quit()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
