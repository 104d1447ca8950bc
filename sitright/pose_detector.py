"""MediaPipe Pose wrapper producing DetectionFrames.

Only this module and the UI touch OpenCV / MediaPipe; everything downstream
works on DetectionFrame.
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import mediapipe as mp
import numpy as np

from sitright.landmarks import TOTAL_LANDMARKS, DetectionFrame, Landmark

logger = logging.getLogger(__name__)


def _convert(landmark_list) -> tuple[Landmark, ...]:
    return tuple(
        Landmark(x=lm.x, y=lm.y, z=lm.z, visibility=lm.visibility or 0.0)
        for lm in landmark_list.landmark
    )


def frame_from_pose_result(
    result, frame_width: int, frame_height: int, timestamp_ms: float
) -> Optional[DetectionFrame]:
    """Convert a MediaPipe Pose ``process()`` result into a DetectionFrame.

    Returns None if no pose was found or the landmark list is incomplete.
    World landmarks fall back to the image landmarks when missing.
    """
    if result is None or not result.pose_landmarks:
        return None

    landmarks = _convert(result.pose_landmarks)
    if len(landmarks) < TOTAL_LANDMARKS:
        return None

    world = getattr(result, "pose_world_landmarks", None)
    world_landmarks = _convert(world) if world else landmarks
    if len(world_landmarks) < TOTAL_LANDMARKS:
        world_landmarks = landmarks

    return DetectionFrame(
        landmarks=landmarks,
        world_landmarks=world_landmarks,
        timestamp_ms=timestamp_ms,
        frame_width=frame_width,
        frame_height=frame_height,
    )


class PoseDetector:
    """Runs MediaPipe Pose on BGR camera frames."""

    def __init__(
        self,
        model_complexity: int = 0,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ) -> None:
        self._pose = mp.solutions.pose.Pose(
            model_complexity=model_complexity,   # 0 = lite model
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def detect(self, bgr_frame: np.ndarray, timestamp_ms: float) -> Optional[DetectionFrame]:
        h, w = bgr_frame.shape[:2]
        rgb = cv2.cvtColor(bgr_frame, cv2.COLOR_BGR2RGB)
        rgb.flags.writeable = False
        try:
            result = self._pose.process(rgb)
        except Exception:
            logger.exception("Pose detection failed")
            return None
        return frame_from_pose_result(result, w, h, timestamp_ms)

    def close(self) -> None:
        self._pose.close()
