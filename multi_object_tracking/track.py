import itertools
import math
import threading
from collections import deque
from enum import Enum
from typing import Any

from multi_object_tracking.box import Box, box_iou
from multi_object_tracking.config import ConfParam
from multi_object_tracking.detected_object import Detection
from multi_object_tracking.motion_filter import MotionFilter, MotionFilterFactory

# A box that kept this much overlap over the history window is stationary
STATIONARY_IOU = 0.7
# Seconds of corrected boxes kept to decide between moving and stationary
HISTORY_SECONDS = 10


class TrackStatus(Enum):
    MOVING = "moving"
    STATIONARY = "stationary"


class IdSequence:
    """
    Thread-safe generator of unique, monotonically increasing track ids.

    Ids are never reused, even after the track that owned them is gone.
    """

    def __init__(self, start: int = 0) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            return next(self._counter)


# Shared by every manager that does not bring its own sequence
default_id_sequence = IdSequence()


class Track:
    """
    A persistent hypothesis that detections across frames belong to one object.

    The track moves its box with a motion filter while it is moving, and
    switches to plain exponential smoothing once the box has stayed in place
    for about one second of frames.
    """

    def __init__(
        self,
        conf_param: ConfParam,
        det: Detection,
        fps: float,
        motion_filter: MotionFilter,
        id_sequence: IdSequence | None = None,
    ) -> None:
        """
        Spawn a track from an unmatched detection.

        Args:
            conf_param (ConfParam): Confidence bounds shared by all tracks.
            det (Detection): Detection the track starts from.
            fps (float): Frame rate of the stream, sizes the position history.
            motion_filter (MotionFilter): Fresh filter owned by this track.
            id_sequence (IdSequence): Source of the track id (default: process-wide).
        """
        self._id = (id_sequence or default_id_sequence).next_id()
        self._conf_param = conf_param
        self._fps = fps

        self._status = TrackStatus.MOVING
        self._confidence = conf_param.init_conf
        self._count = 1  # Frames this track has existed

        self._box = det.box
        self._class_id = det.class_id
        self._class_prob = det.class_prob

        # Recent corrected boxes, oldest first
        self._history: deque[Box] = deque(maxlen=math.ceil(fps * HISTORY_SECONDS))

        self._filter = motion_filter
        self._filter.init(det.box.x, det.box.y)

    @classmethod
    def spawn(
        cls,
        conf_param: ConfParam,
        det: Detection,
        fps: float,
        filter_factory: MotionFilterFactory,
        id_sequence: IdSequence | None = None,
    ) -> "Track":
        return cls(conf_param, det, fps, filter_factory(), id_sequence)

    @property
    def id(self) -> int:
        return self._id

    @property
    def status(self) -> TrackStatus:
        return self._status

    @property
    def confidence(self) -> int:
        return self._confidence

    @property
    def count(self) -> int:
        return self._count

    @property
    def box(self) -> Box:
        return self._box

    @property
    def class_id(self) -> int:
        return self._class_id

    @property
    def class_prob(self) -> float:
        return self._class_prob

    @property
    def history(self) -> tuple[Box, ...]:
        return tuple(self._history)

    @property
    def history_capacity(self) -> int:
        return self._history.maxlen

    def predict(self) -> None:
        """
        Advance the track by one frame.

        A moving track follows its motion filter and loses one confidence
        point; a stationary track keeps its box. The track ages either way.
        """
        if self._status is TrackStatus.MOVING:
            x, y = self._filter.predict()
            self._box = Box(x, y, self._box.w, self._box.h)
            # Retirement at zero is decided by the manager
            self._confidence -= 1

        self._count += 1

    def correct(self, det: Detection) -> None:
        """
        Update the track with a detection it was matched to.

        Args:
            det (Detection): Matched detection for the current frame.
        """
        old = self._box
        new = det.box

        if self._status is TrackStatus.MOVING:
            x, y = self._filter.correct(new.x, new.y)
            self._box = Box(x, y, (old.w + new.w) / 2, (old.h + new.h) / 2)
            self._class_prob = (self._class_prob + det.class_prob) / 2
            self._confidence = min(self._conf_param.max_conf, self._confidence + 2)
        else:
            self._box = Box(
                0.9 * old.x + 0.1 * new.x,
                0.9 * old.y + 0.1 * new.y,
                0.9 * old.w + 0.1 * new.w,
                0.9 * old.h + 0.1 * new.h,
            )

        # The deque drops the oldest box once it is full
        self._history.append(self._box)
        self._update_status()

    def _update_status(self) -> None:
        # Roughly one second of history is needed before deciding
        if len(self._history) < self._fps:
            return

        if box_iou(self._history[0], self._history[-1]) > STATIONARY_IOU:
            self._status = TrackStatus.STATIONARY
        else:
            self._status = TrackStatus.MOVING

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self._id,
            "box": self._box,
            "class_id": self._class_id,
            "class_prob": self._class_prob,
            "status": self._status.value,
            "confidence": self._confidence,
            "count": self._count,
        }

    def __repr__(self) -> str:
        return (
            f"Track(id={self._id}, status={self._status.name}, "
            f"confidence={self._confidence}, count={self._count}, box={self._box})"
        )
