from dataclasses import dataclass

# --- audio analysis

CHUNK_SECONDS = 0.1 # 100ms energy chunks for tempo estimation
PEAK_THRESHOLD_RATIO = 0.3 # energy peaks must beat 30% of the loudest chunk
DEFAULT_BPM = 120
MIN_BPM = 60
MAX_BPM = 200

FRAME_SIZE = 2048
HOP_SIZE = 512
ONSET_THRESHOLD_MULTIPLIER = 2 # onset must beat 2x the mean flux
MIN_ONSETS = 10 # fewer than this -> synthesize beats from the tempo

PROGRESS_DECODE_START = 10
PROGRESS_DECODED = 30
PROGRESS_SAMPLES_READY = 40
PROGRESS_BPM_DONE = 60
PROGRESS_BEATS_DONE = 90
PROGRESS_DONE = 100

# --- beatmap generator

MIN_BEAT_INTENSITY = 0.6 # strong onsets only
MIN_BEAT_GAP_MS = 600

# --- canvas

CANVAS_WIDTH = 1280
CANVAS_HEIGHT = 720

# --- rhythm

HIT_CIRCLE_RADIUS = 60
HAND_CURSOR_RADIUS = 25
APPROACH_TIME = 3000 # ms a circle is on screen before its beat

PERFECT_WINDOW_MS = 100
GOOD_WINDOW_MS = 250
BAD_WINDOW_MS = 400

PERFECT_POINTS = 300
GOOD_POINTS = 100
BAD_POINTS = 50
MISS_POINTS = 0

# (min combo, multiplier), highest tier first
COMBO_MULTIPLIERS = (
    (50, 2.5),
    (20, 2.0),
    (10, 1.5),
    (0, 1.0),
)

GRADE_THRESHOLDS = (
    (95, "S"),
    (90, "A"),
    (80, "B"),
    (70, "C"),
)
LOWEST_GRADE = "D"

# --- hand tracking

INDEX_FINGER_TIP = 8
HAND_LANDMARK_COUNT = 21
MAX_NUM_HANDS = 2

# --- effects

FEEDBACK_FADE_PER_FRAME = 0.02
FEEDBACK_Y_OFFSET = -80
PARTICLE_COUNT = 20
PARTICLE_MIN_SPEED = 2.0
PARTICLE_SPEED_RANGE = 3.0
PARTICLE_DECAY_PER_FRAME = 0.02
PARTICLE_RADIUS = 4

JUDGMENT_COLORS = {
    "perfect": (255, 215, 0), # gold
    "good": (6, 182, 212), # cyan
    "bad": (156, 163, 175), # gray
    "miss": (239, 68, 68), # red
}

JUDGMENT_TEXT = {
    "perfect": "PERFECT!",
    "good": "GOOD!",
    "bad": "BAD",
    "miss": "MISS",
}

# --- hand slicer

SLICER_LIVES = 5
ORB_RADIUS = 25
ORB_TOUCH_PADDING = 15 # fingertip reach beyond the orb edge
ORB_SPAWN_BASE_MS = 1000
ORB_SPAWN_STEP_MS = 50 # spawn this much faster every 10 points
ORB_SPAWN_MIN_MS = 400
ORB_BASE_SPEED = 3.0 # px per frame
ORB_SPEED_STEP = 0.5 # faster every 50 points
GOLD_ORB_ROLL = 0.98 # rolls above are gold
KILLER_ORB_ROLL = 0.3 # rolls at or below are killers
ORB_POINTS = 10
GOLD_ORB_POINTS = 20
BUFF_DURATION_MS = 10000
FINGER_TRAIL_LENGTH = 20

ORB_COLORS = {
    "score": (34, 197, 94), # green
    "killer": (239, 68, 68), # red
    "gold": (255, 215, 0),
}
TRAIL_COLOR = (0, 255, 255)
BUFF_TRAIL_COLOR = (255, 215, 0)

# --- engine

FPS = 60
CIRCLE_COLOR = (34, 197, 94)
CURSOR_COLOR = (34, 211, 238)
APPROACH_RING_COLOR = (255, 255, 255)
COLOR = (255, 255, 255)


@dataclass(frozen=True)
class RhythmConfig:
    """Gameplay tunables shared by the generator and the timing engine"""
    hit_circle_radius: float = HIT_CIRCLE_RADIUS
    cursor_radius: float = HAND_CURSOR_RADIUS
    approach_time: float = APPROACH_TIME
    perfect_ms: float = PERFECT_WINDOW_MS
    good_ms: float = GOOD_WINDOW_MS
    bad_ms: float = BAD_WINDOW_MS
    perfect_points: int = PERFECT_POINTS
    good_points: int = GOOD_POINTS
    bad_points: int = BAD_POINTS
    combo_multipliers: tuple = COMBO_MULTIPLIERS
    min_intensity: float = MIN_BEAT_INTENSITY
    min_gap_ms: float = MIN_BEAT_GAP_MS


DEFAULT_CONFIG = RhythmConfig()
