from collections.abc import Sequence
from dataclasses import dataclass

from multi_object_tracking.box import Box


@dataclass(frozen=True)
class Detection:
    """
    Represents a single object found by the detector in one video frame.

    Detections are treated as read-only values for the duration of a tracking
    step; tracks copy what they need from them.
    """

    box: Box  # Bounding box in center format
    class_id: int  # Class index reported by the detector
    class_prob: float  # Detector confidence for the class

    @classmethod
    def from_xyxy(
        cls, coords: Sequence[float], class_id: int, class_prob: float
    ) -> "Detection":
        """
        Build a detection from [x1, y1, x2, y2] corner coordinates.

        Args:
            coords (Sequence[float]): Bounding box corners [x1, y1, x2, y2].
            class_id (int): Detected class index.
            class_prob (float): Detection confidence.

        Returns:
            Detection: Detection with a center-format box.
        """
        x1, y1, x2, y2 = (float(c) for c in coords)
        return cls(Box.from_xyxy(x1, y1, x2, y2), int(class_id), float(class_prob))
