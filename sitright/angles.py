"""Posture angle extraction.

Turns one frame of pose landmarks into the named scalar signals every later
stage works with. The functions here are pure: no state, no smoothing.

Sign conventions (MediaPipe y grows downward, so vertical deltas are inverted):
    head_forward_angle  positive = ears ahead of shoulders
    torso_angle         positive = shoulders ahead of hips
    head_tilt_angle     positive = left ear lower than right ear
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Optional, Sequence

from sitright.geometry import midpoint
from sitright.landmarks import (
    Landmark,
    PoseLandmark,
    has_visible_critical_landmarks,
    is_complete,
)


@dataclass(frozen=True)
class PostureAngles:
    head_forward_angle: float   # degrees
    torso_angle: float          # degrees
    head_tilt_angle: float      # degrees
    face_frame_ratio: float     # ear span / frame width
    face_y: float               # normalised nose height
    nose_to_ear_avg: float      # normalised nose drop below the ears
    shoulder_diff: float        # shoulder line slope, degrees


SIGNAL_NAMES = tuple(f.name for f in fields(PostureAngles))


# ---------------------------------------------------------------------------
# Individual signals


def head_forward_angle(world_landmarks: Sequence[Landmark]) -> float:
    """Forward head angle from vertical (degrees), ear midpoint over shoulder midpoint."""
    ear = midpoint(world_landmarks[PoseLandmark.LEFT_EAR], world_landmarks[PoseLandmark.RIGHT_EAR])
    shoulder = midpoint(
        world_landmarks[PoseLandmark.LEFT_SHOULDER], world_landmarks[PoseLandmark.RIGHT_SHOULDER]
    )
    dx = ear.x - shoulder.x
    dy = shoulder.y - ear.y
    return math.degrees(math.atan2(dx, dy))


def torso_angle(world_landmarks: Sequence[Landmark]) -> float:
    """Torso lean from vertical (degrees), shoulder midpoint over hip midpoint."""
    shoulder = midpoint(
        world_landmarks[PoseLandmark.LEFT_SHOULDER], world_landmarks[PoseLandmark.RIGHT_SHOULDER]
    )
    hip = midpoint(world_landmarks[PoseLandmark.LEFT_HIP], world_landmarks[PoseLandmark.RIGHT_HIP])
    dx = shoulder.x - hip.x
    dy = hip.y - shoulder.y
    return math.degrees(math.atan2(dx, dy))


def head_tilt_angle(landmarks: Sequence[Landmark]) -> float:
    # Non-mirrored output puts the person's left ear at the higher x, so level
    # ears give dx > 0 and an angle near zero.
    left_ear = landmarks[PoseLandmark.LEFT_EAR]
    right_ear = landmarks[PoseLandmark.RIGHT_EAR]
    return math.degrees(math.atan2(left_ear.y - right_ear.y, left_ear.x - right_ear.x))


def face_frame_ratio(landmarks: Sequence[Landmark], frame_width: float = 1.0) -> float:
    """Horizontal ear span relative to the frame width.

    ``frame_width`` is the width of the coordinate space the landmarks live in:
    1.0 for normalised landmarks, the pixel width for pixel coordinates.
    """
    span = abs(landmarks[PoseLandmark.LEFT_EAR].x - landmarks[PoseLandmark.RIGHT_EAR].x)
    return span / frame_width


def face_y(landmarks: Sequence[Landmark]) -> float:
    return landmarks[PoseLandmark.NOSE].y


def nose_to_ear_avg(landmarks: Sequence[Landmark]) -> float:
    nose = landmarks[PoseLandmark.NOSE]
    left = nose.y - landmarks[PoseLandmark.LEFT_EAR].y
    right = nose.y - landmarks[PoseLandmark.RIGHT_EAR].y
    return (left + right) / 2.0


def shoulder_diff(world_landmarks: Sequence[Landmark]) -> float:
    """Shoulder line slope in degrees from |dy| over |dx|; 0 when level."""
    left = world_landmarks[PoseLandmark.LEFT_SHOULDER]
    right = world_landmarks[PoseLandmark.RIGHT_SHOULDER]
    return math.degrees(math.atan2(abs(left.y - right.y), abs(right.x - left.x)))


# ---------------------------------------------------------------------------
# All signals at once


def extract_posture_angles(
    world_landmarks: Sequence[Landmark],
    landmarks: Optional[Sequence[Landmark]] = None,
    frame_width: float = 1.0,
) -> Optional[PostureAngles]:
    """Compute every posture signal for one frame.

    Args:
        world_landmarks: 33 world-space landmarks (depth-aware angles).
        landmarks: 33 image-plane landmarks for the face signals. Defaults to
                   ``world_landmarks``.
        frame_width: Width of the image-plane coordinate space.

    Returns:
        PostureAngles, or None if a landmark list is short or a critical
        landmark is not visible enough. There is never a partial result.
    """
    if landmarks is None:
        landmarks = world_landmarks
    if not is_complete(world_landmarks) or not is_complete(landmarks):
        return None
    if not has_visible_critical_landmarks(world_landmarks):
        return None
    if frame_width <= 0:
        return None

    return PostureAngles(
        head_forward_angle=head_forward_angle(world_landmarks),
        torso_angle=torso_angle(world_landmarks),
        head_tilt_angle=head_tilt_angle(landmarks),
        face_frame_ratio=face_frame_ratio(landmarks, frame_width),
        face_y=face_y(landmarks),
        nose_to_ear_avg=nose_to_ear_avg(landmarks),
        shoulder_diff=shoulder_diff(world_landmarks),
    )


def angles_from_frame(frame) -> Optional[PostureAngles]:
    """extract_posture_angles() for a DetectionFrame with normalised image landmarks."""
    return extract_posture_angles(frame.world_landmarks, frame.landmarks, 1.0)
