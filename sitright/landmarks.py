"""Pose landmark types shared by every stage of the posture pipeline.

A DetectionFrame is what the pose-detection collaborator hands us once per
scheduler tick: 33 image-normalised landmarks, their world-space twins, the
frame size and a monotonic timestamp in milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence


# ---------------------------------------------------------------------------
# MediaPipe landmark indices


class PoseLandmark(IntEnum):
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


TOTAL_LANDMARKS = 33

# Hips are left out: they are rarely in shot with a desk webcam.
CRITICAL_LANDMARKS = (
    PoseLandmark.LEFT_EAR,
    PoseLandmark.RIGHT_EAR,
    PoseLandmark.LEFT_SHOULDER,
    PoseLandmark.RIGHT_SHOULDER,
)

MIN_VISIBILITY = 0.5


# ---------------------------------------------------------------------------
# Data classes


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 0.0


@dataclass(frozen=True)
class DetectionFrame:
    """One pose-detection result.

    ``landmarks`` are normalised to the image (x, y in [0, 1]); ``world_landmarks``
    are metric, hip-centred coordinates. Both use MediaPipe's y-down convention.
    """

    landmarks: tuple[Landmark, ...]
    world_landmarks: tuple[Landmark, ...]
    timestamp_ms: float
    frame_width: int
    frame_height: int


def is_complete(landmarks: Sequence[Landmark]) -> bool:
    return landmarks is not None and len(landmarks) >= TOTAL_LANDMARKS


def has_visible_critical_landmarks(
    landmarks: Sequence[Landmark], min_visibility: float = MIN_VISIBILITY
) -> bool:
    """Return True only if every critical landmark meets the visibility threshold."""
    return all(landmarks[idx].visibility >= min_visibility for idx in CRITICAL_LANDMARKS)


def landmark_confidence(landmarks: Sequence[Landmark]) -> float:
    """Mean visibility of the critical landmarks, in [0, 1]."""
    return sum(landmarks[idx].visibility for idx in CRITICAL_LANDMARKS) / len(CRITICAL_LANDMARKS)
