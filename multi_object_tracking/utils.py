from collections.abc import Iterable

import cv2 as cv
import numpy as np

from multi_object_tracking.track import Track


def id_to_color(idx: int):
    blue = idx * 5 % 256
    green = idx * 12 % 256
    red = idx * 23 % 256
    return (red, green, blue)


def draw_tracks(image: np.ndarray, tracks: Iterable[Track]) -> np.ndarray:
    """
    Draw bounding boxes and ids of tracks onto a copy of the image.

    Args:
        image (np.ndarray): Frame to annotate.
        tracks (Iterable[Track]): Tracks to draw.

    Returns:
        np.ndarray: Annotated copy of the frame.
    """
    annotated = image.copy()

    for track in tracks:
        left, top, right, bottom = (int(v) for v in track.box.to_xyxy())
        color = id_to_color(track.id * 10)  # Color based on track ID

        # Draw bounding box
        cv.rectangle(annotated, (left, top), (right, bottom), color, thickness=3)
        # Draw track ID label
        cv.putText(
            annotated,
            str(track.id),
            (left - 10, top - 10),
            cv.FONT_HERSHEY_SIMPLEX,
            1,
            color,
            thickness=2,
        )

    return annotated
