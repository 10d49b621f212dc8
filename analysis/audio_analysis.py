from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import Callable, Optional, Sequence

import numpy as np
import librosa
from audioread.exceptions import DecodeError as AudioreadDecodeError

import game.constants as C
import game.models as M
from analysis.errors import AnalysisCancelled, AnalysisError, BeatAnalysisError, DecodeError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

FLUX_BLOCK_FRAMES = 256 # frames per vectorized flux block, keeps memory flat on long songs


def load_audio(audio_path: str) -> tuple[np.ndarray, int]:
    """Decodes 'audio_path' at its native sample rate, downmixed to mono."""
    try:
        y, sr = librosa.load(audio_path, sr=None, mono=True)
    except (OSError, EOFError, RuntimeError, ValueError, AudioreadDecodeError) as e:
        logger.error("Could not decode %s: %s", audio_path, e)
        raise DecodeError() from e

    if y.size == 0:
        raise DecodeError("The audio file contains no samples. Please pick another file.")

    return y, int(sr)

def _as_mono(samples: Sequence[float] | np.ndarray) -> np.ndarray:
    """
    Float64 copy of the first channel. Channels-first (librosa) and
    channels-last (soundfile) layouts are both accepted; the shorter axis is
    taken as the channel axis.
    """
    y = np.asarray(samples, dtype=np.float64)
    if y.ndim > 2:
        raise ValueError(f"Expected mono or (channels, samples) audio, got shape {y.shape}")
    if y.ndim == 2:
        y = y[0] if y.shape[0] <= y.shape[1] else y[:, 0]
    return np.ascontiguousarray(y)

def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelled("Audio analysis was cancelled")

# ==================== BPM ====================

def get_chunk_energies(y: np.ndarray, chunk_size: int) -> np.ndarray:
    """Mean squared amplitude of each 'chunk_size' slice. The last chunk may be shorter."""
    if chunk_size <= 0 or len(y) == 0:
        return np.zeros(0)

    num_full = len(y) // chunk_size
    full = y[:num_full * chunk_size].reshape(num_full, chunk_size)
    energies = np.mean(full ** 2, axis=1)

    remainder = y[num_full * chunk_size:]
    if len(remainder):
        energies = np.append(energies, np.mean(remainder ** 2))

    return energies

def find_energy_peaks(energies: np.ndarray, ratio: float = C.PEAK_THRESHOLD_RATIO) -> np.ndarray:
    """Indices of strict local maxima louder than 'ratio' of the loudest chunk."""
    if len(energies) < 3:
        return np.zeros(0, dtype=int)

    threshold = float(np.max(energies)) * ratio
    mid = energies[1:-1]
    is_peak = (mid > energies[:-2]) & (mid > energies[2:]) & (mid > threshold)

    return np.flatnonzero(is_peak) + 1

def detect_bpm(samples: Sequence[float] | np.ndarray, sample_rate: int) -> float:
    """
    Estimates tempo from the spacing of energy peaks in 100ms chunks.

    The most common gap between consecutive peaks is taken as one beat. Falls back
    to DEFAULT_BPM when fewer than two peaks exist, and always clamps to
    [MIN_BPM, MAX_BPM].
    """
    y = _as_mono(samples)
    chunk_size = int(sample_rate * C.CHUNK_SECONDS)

    energies = get_chunk_energies(y, chunk_size)
    peaks = find_energy_peaks(energies)
    gaps = np.diff(peaks)

    if len(gaps) == 0:
        bpm = float(C.DEFAULT_BPM)
    else:
        # ties go to the gap seen first
        modal_gap = Counter(gaps.tolist()).most_common(1)[0][0]
        chunk_duration = chunk_size / sample_rate
        bpm = 60 / (modal_gap * chunk_duration)

    logger.info("Raw BPM (energy peaks): %.3f", bpm)

    return float(max(C.MIN_BPM, min(C.MAX_BPM, bpm)))

# ==================== ONSETS ====================

def spectral_flux(
    samples: Sequence[float] | np.ndarray,
    frame_size: int = C.FRAME_SIZE,
    hop_size: int = C.HOP_SIZE,
    cancel_event: Optional[threading.Event] = None,
) -> np.ndarray:
    """
    Frame-to-frame flux over coarse energy bands.

    This is not a frequency transform: each frame is cut into frame_size / 2 equal
    index ranges of the raw samples and the band "magnitude" is the root of their
    summed squares. Flux is the sum of positive band differences against the
    previous frame (all zeros before frame 0).
    """
    y = _as_mono(samples)
    num_frames = (len(y) - frame_size) // hop_size
    if num_frames <= 0:
        return np.zeros(0)

    num_bands = frame_size // 2
    band_width = frame_size // num_bands

    frames = librosa.util.frame(y, frame_length=frame_size, hop_length=hop_size)[:, :num_frames]

    flux = np.empty(num_frames)
    previous = np.zeros(num_bands)

    for start in range(0, num_frames, FLUX_BLOCK_FRAMES):
        _check_cancelled(cancel_event)

        block = frames[:, start:start + FLUX_BLOCK_FRAMES]
        spectrum = np.sqrt((block.reshape(num_bands, band_width, -1) ** 2).sum(axis=1))

        prev = np.column_stack([previous, spectrum[:, :-1]])
        flux[start:start + block.shape[1]] = np.maximum(spectrum - prev, 0.0).sum(axis=0)

        previous = spectrum[:, -1]

    return flux

def pick_onsets(flux: Sequence[float] | np.ndarray, hop_size: int, sample_rate: int) -> list[M.Beat]:
    """Strict local flux maxima above twice the mean flux, as Beats (ms)."""
    flux = np.asarray(flux, dtype=np.float64)
    if len(flux) < 3:
        return []

    threshold = float(np.mean(flux)) * C.ONSET_THRESHOLD_MULTIPLIER

    mid = flux[1:-1]
    is_peak = (mid > flux[:-2]) & (mid > flux[2:]) & (mid > threshold)

    beats: list[M.Beat] = []
    for i in np.flatnonzero(is_peak) + 1:
        timestamp = i * hop_size * 1000 / sample_rate
        intensity = min(1.0, flux[i] / (threshold * 2))
        beats.append(M.Beat(timestamp=float(timestamp), intensity=float(intensity)))

    return beats

def synthesize_beats(bpm: float, duration_ms: float) -> list[M.Beat]:
    """Evenly spaced full-intensity beats from 0 for the whole track."""
    if bpm <= 0:
        raise ValueError("Invalid BPM")

    interval = 60 / bpm * 1000
    num_beats = int(duration_ms // interval)

    return [M.Beat(timestamp=i * interval, intensity=1.0) for i in range(num_beats)]

def detect_beats(
    samples: Sequence[float] | np.ndarray,
    sample_rate: int,
    bpm: float,
    cancel_event: Optional[threading.Event] = None,
) -> list[M.Beat]:
    """
    Onset timestamps from spectral flux peaks.

    If fewer than MIN_ONSETS are found the detected onsets are thrown away and
    replaced by a synthetic grid at 'bpm'. Ambient, noisy or very short tracks
    stay playable that way, but the grid ignores the actual rhythm of the song.
    """
    y = _as_mono(samples)

    flux = spectral_flux(y, C.FRAME_SIZE, C.HOP_SIZE, cancel_event)
    beats = pick_onsets(flux, C.HOP_SIZE, sample_rate)

    if len(beats) < C.MIN_ONSETS:
        duration_ms = len(y) / sample_rate * 1000
        logger.warning(
            "Only %d onsets detected, falling back to a %.1f BPM grid", len(beats), bpm
        )
        return synthesize_beats(bpm, duration_ms)

    logger.info("Detected %d onsets", len(beats))
    return beats

# ==================== PIPELINE ====================

def _progress_reporter(on_progress: Optional[ProgressCallback]) -> ProgressCallback:
    """Wraps 'on_progress' so reported values never go backwards."""
    last = [0]

    def report(value: int) -> None:
        last[0] = max(last[0], value)
        if on_progress is not None:
            on_progress(last[0])

    return report

def _analyze_decoded(
    samples: np.ndarray,
    sample_rate: int,
    report: ProgressCallback,
    cancel_event: Optional[threading.Event],
) -> M.AnalysisResult:
    try:
        if sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {sample_rate}")

        y = _as_mono(samples)
        report(C.PROGRESS_SAMPLES_READY)
        _check_cancelled(cancel_event)

        bpm = detect_bpm(y, sample_rate)
        report(C.PROGRESS_BPM_DONE)
        _check_cancelled(cancel_event)

        beats = detect_beats(y, sample_rate, bpm, cancel_event)
        report(C.PROGRESS_BEATS_DONE)
    except BeatAnalysisError:
        raise
    except Exception as e:
        logger.exception("Audio analysis failed")
        raise AnalysisError(
            "Failed to analyze audio. Please ensure the file is a valid audio file."
        ) from e

    _check_cancelled(cancel_event)
    report(C.PROGRESS_DONE)

    return M.AnalysisResult(
        bpm=int(round(bpm)),
        beats=beats,
        duration=len(y) / sample_rate,
    )

def analyze(
    samples: Sequence[float] | np.ndarray,
    sample_rate: int,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> M.AnalysisResult:
    """BPM, beats and duration of already decoded samples in [-1, 1]."""
    report = _progress_reporter(on_progress)
    report(C.PROGRESS_DECODE_START)
    report(C.PROGRESS_DECODED)

    return _analyze_decoded(np.asarray(samples), sample_rate, report, cancel_event)

def analyze_file(
    audio_path: str,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> M.AnalysisResult:
    """Decodes and analyzes the song at 'audio_path'.

    Raises DecodeError for unreadable audio, AnalysisError for failures while
    analyzing and AnalysisCancelled once 'cancel_event' is set."""
    report = _progress_reporter(on_progress)
    report(C.PROGRESS_DECODE_START)
    _check_cancelled(cancel_event)

    y, sr = load_audio(audio_path)
    report(C.PROGRESS_DECODED)
    _check_cancelled(cancel_event)

    result = _analyze_decoded(y, sr, report, cancel_event)
    logger.info(
        "Analyzed %s: %d BPM, %d beats, %.1fs", audio_path, result.bpm, len(result.beats), result.duration
    )
    return result
