"""
VowelSeg Audio Collaborators

Everything that touches audio lives here; the engine never does.

Library Stack:
    - parselmouth: Praat pitch / intensity / formant / MFCC analysis
    - soundfile: WAV I/O and sample-accurate slicing (libsndfile-backed)
    - numpy: Array operations
    - ffmpeg (external binary): WAV -> MP3 transcoding

INVARIANTS:
    - The feature table uses the exact header from vowelseg.features
    - Undefined analysis values are written as "--undefined--"
    - Slices are cut with floor-based sample indexing
    - Slices are always written as PCM 16-bit WAV, regardless of source
    - The intermediate WAV is removed only after a successful transcode
"""

import logging
import subprocess
from pathlib import Path

import numpy as np
import parselmouth
import soundfile as sf

from vowelseg.config import ToleranceConfig
from vowelseg.errors import AnalysisFailure, ExtractionFailure
from vowelseg.features import DELIMITER, FIELD_UNDEFINED, MATRIX_HEADER


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

NUM_FORMANTS = 5
NUM_MFCC = 12
MFCC_WINDOW = 0.015  # seconds
DEFAULT_FFMPEG = "ffmpeg"


# =============================================================================
# WAV Output
# =============================================================================


def write_wav(path: Path, samples: np.ndarray, sample_rate: int) -> None:
    """Write a slice as PCM 16-bit WAV, hard-clipped to [-1, 1]."""
    clipped = np.clip(samples, -1.0, 1.0)
    sf.write(path, clipped, sample_rate, subtype="PCM_16")


# =============================================================================
# Feature Analysis (Praat via parselmouth)
# =============================================================================


def _format_value(value: float) -> str:
    if value is None or not np.isfinite(value) or value == 0:
        return FIELD_UNDEFINED
    return f"{value:.2f}"


def compute_feature_rows(sound: "parselmouth.Sound", config: ToleranceConfig) -> list[str]:
    """
    Analyse a sound into feature table rows (no header).

    Frame times come from the pitch track; intensity, formants and
    MFCCs are sampled at those times.

    Args:
        sound: Source sound
        config: time_step, window and max_formant are used

    Returns:
        One delimited row per analysis frame.
    """
    pitch = sound.to_pitch(time_step=config.time_step)
    times = pitch.xs()
    f0 = pitch.selected_array["frequency"]

    intensity = sound.to_intensity(time_step=config.time_step)
    formant = sound.to_formant_burg(
        time_step=config.time_step,
        max_number_of_formants=NUM_FORMANTS,
        maximum_formant=config.max_formant,
        window_length=config.window,
    )

    mfcc = sound.to_mfcc(
        number_of_coefficients=NUM_MFCC,
        window_length=MFCC_WINDOW,
        time_step=config.time_step,
    )
    mfcc_values = np.asarray(mfcc.to_array())
    if mfcc_values.shape[0] == mfcc.n_frames != mfcc_values.shape[1]:
        mfcc_values = mfcc_values.T
    # Rows are c0..c12; keep the last twelve
    mfcc_values = mfcc_values[-NUM_MFCC:]
    mfcc_times = mfcc.xs()

    rows = []
    for i, t in enumerate(times):
        t = float(t)
        fields = [
            f"{t:.6f}",
            _format_value(intensity.get_value(t)),
            _format_value(float(f0[i])),
            *(_format_value(formant.get_value_at_time(n, t)) for n in (1, 2, 3)),
        ]
        if len(mfcc_times):
            fields.extend(
                f"{np.interp(t, mfcc_times, coeffs):.2f}" for coeffs in mfcc_values
            )
        else:
            fields.extend([FIELD_UNDEFINED] * NUM_MFCC)
        rows.append(DELIMITER.join(fields))
    return rows


def analyze_features(audio_path: Path, table_path: Path, config: ToleranceConfig) -> Path:
    """
    Generate the feature table for a whole sound file.

    Args:
        audio_path: Source sound (anything libsndfile / Praat can read)
        table_path: Output table path
        config: Analysis parameters

    Returns:
        table_path

    Raises:
        AnalysisFailure: If the sound cannot be read/analysed or the
            table cannot be written.
    """
    logger.info(
        "Analysing %s (time step %ss, window %ss, max formant %d Hz)",
        audio_path, config.time_step, config.window, config.max_formant,
    )
    try:
        sound = parselmouth.Sound(str(audio_path))
        if sound.n_channels > 1:
            sound = sound.convert_to_mono()
        rows = compute_feature_rows(sound, config)
    except (parselmouth.PraatError, OSError) as e:
        raise AnalysisFailure(f"acoustic analysis of {audio_path} failed: {e}") from e

    try:
        with open(table_path, "w", newline="") as f:
            f.write(MATRIX_HEADER + "\n")
            for row in rows:
                f.write(row + "\n")
    except OSError as e:
        raise AnalysisFailure(f"couldn't write feature table {table_path}: {e}") from e

    logger.info("Wrote %d frames to %s", len(rows), table_path)
    return table_path


# =============================================================================
# Slicing
# =============================================================================


def cut_slice(source: Path, dest: Path, start_s: float, end_s: float) -> Path:
    """
    Cut [start_s, end_s] out of source into a PCM-16 WAV.

    Note:
        - Time-to-sample: floor(start_s * sr), floor(end_s * sr)
        - Clamped to the source length

    Raises:
        ExtractionFailure: If the source cannot be read, the range is
            empty, or the slice cannot be written.
    """
    try:
        info = sf.info(str(source))
        sr = info.samplerate
        start_idx = max(0, int(start_s * sr))
        end_idx = min(info.frames, int(end_s * sr))
        if end_idx <= start_idx:
            raise ExtractionFailure(
                f"empty slice {start_s:.3f}-{end_s:.3f}s of {source}", stem=dest.stem
            )
        samples, sr = sf.read(
            str(source), start=start_idx, stop=end_idx, dtype="float32", always_2d=False
        )
        write_wav(dest, samples, sr)
    except (OSError, RuntimeError) as e:
        raise ExtractionFailure(f"couldn't cut slice from {source}: {e}", stem=dest.stem) from e
    return dest


# =============================================================================
# Transcoding
# =============================================================================


def transcode(source: Path, dest: Path, ffmpeg: str = DEFAULT_FFMPEG) -> Path:
    """
    Convert a WAV slice to a compressed delivery format (by dest suffix).

    Raises:
        ExtractionFailure: If ffmpeg is missing or exits non-zero.
    """
    cmd = [ffmpeg, "-v", "0", "-y", "-i", str(source), str(dest)]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise ExtractionFailure(f"couldn't run {ffmpeg}: {e}", stem=dest.stem) from e
    if result.returncode != 0:
        raise ExtractionFailure(
            f"{ffmpeg} exited with status {result.returncode} converting {source}: "
            f"{result.stderr.strip()}",
            stem=dest.stem,
        )
    return dest
