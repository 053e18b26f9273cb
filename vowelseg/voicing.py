"""
VowelSeg Voicing Classifier.

A frame is voiced when it is loud enough and both pitch and the third
formant were tracked. Failing any one condition makes it unvoiced.
"""

from vowelseg.config import DEFAULT_MINIMUM_INTENSITY
from vowelseg.features import FeatureRecord


def is_voiced(record: FeatureRecord, minimum_intensity: int = DEFAULT_MINIMUM_INTENSITY) -> bool:
    """Return True iff intensity >= minimum_intensity, pitch != 0 and F3 != 0."""
    if record.intensity_db < minimum_intensity:
        return False
    if record.pitch_hz == 0:
        return False
    if record.f3_hz == 0:
        return False
    return True
