"""
VowelSeg - Single-pitch, single-vowel segment extraction

Pipeline (fixed order):
    1. Acoustic analysis: recording -> feature table (Praat via parselmouth)
    2. Parse: feature table rows -> FeatureRecords
    3. Voicing: tag each frame voiced / unvoiced
    4. Segmentation: sliding window over voiced frames, homogeneity test
    5. Extraction: feature rows + audio slice per accepted segment
    6. Summary: frame count, segment count, mean duration

Invariants:
    - One forward pass; the feature stream is never rewound
    - Unvoiced frames discard the current candidate window
    - Rejected windows slide forward one frame at a time
    - Accepted segments never overlap and are emitted in stream order
    - Same input + same parameters = identical output
"""

__version__ = "1.0.0"
