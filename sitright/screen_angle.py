"""Screen recline compensation for the head-forward angle.

When the user tilts the laptop lid back, the camera looks up at them and the
face geometry shifts as if the head had pitched. We capture the face geometry
at calibration time as a reference, estimate a pitch delta from how far the
live geometry moved away from it, and subtract a share of that delta from the
head-forward angle.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Sequence

from sitright.angles import PostureAngles
from sitright.landmarks import Landmark, PoseLandmark

# Degrees of pitch per unit change of each signal
FACE_Y_SCALE = 45.0
NOSE_CHIN_SCALE = 30.0
EYE_MOUTH_SCALE = 20.0

HEAD_FORWARD_COMPENSATION = 0.8


@dataclass(frozen=True)
class ScreenAngleSignals:
    face_y: float
    nose_chin_ratio: float
    eye_mouth_ratio: float


# A reference is just the signals captured while calibrating.
ScreenAngleReference = ScreenAngleSignals


def extract_screen_angle_signals(landmarks: Sequence[Landmark]) -> ScreenAngleSignals:
    nose = landmarks[PoseLandmark.NOSE]
    left_eye = landmarks[PoseLandmark.LEFT_EYE]
    right_eye = landmarks[PoseLandmark.RIGHT_EYE]
    mouth_left = landmarks[PoseLandmark.MOUTH_LEFT]
    mouth_right = landmarks[PoseLandmark.MOUTH_RIGHT]

    ear_span = abs(landmarks[PoseLandmark.LEFT_EAR].x - landmarks[PoseLandmark.RIGHT_EAR].x)
    if ear_span == 0:
        ear_span = 1.0

    mouth_mid_y = (mouth_left.y + mouth_right.y) / 2.0
    eye_mid_y = (left_eye.y + right_eye.y) / 2.0

    return ScreenAngleSignals(
        face_y=nose.y,
        nose_chin_ratio=(mouth_mid_y - nose.y) / ear_span,
        eye_mouth_ratio=(mouth_mid_y - eye_mid_y) / ear_span,
    )


def estimate_angle_change(current: ScreenAngleSignals, reference: ScreenAngleReference) -> float:
    """Estimated pitch change in degrees; 0.0 when current equals the reference."""
    return (
        (current.face_y - reference.face_y) * FACE_Y_SCALE
        + (current.nose_chin_ratio - reference.nose_chin_ratio) * NOSE_CHIN_SCALE
        + (current.eye_mouth_ratio - reference.eye_mouth_ratio) * EYE_MOUTH_SCALE
    )


def compensate_angles(angles: PostureAngles, pitch_delta: float) -> PostureAngles:
    return dataclasses.replace(
        angles,
        head_forward_angle=angles.head_forward_angle - pitch_delta * HEAD_FORWARD_COMPENSATION,
    )
