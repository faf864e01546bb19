import pytest

from multi_object_tracking.box import Box
from multi_object_tracking.config import ConfParam
from multi_object_tracking.detected_object import Detection
from multi_object_tracking.track import IdSequence
from multi_object_tracking.track_manager import TrackManager


class FakeMotionFilter:
    """Deterministic filter: predicts a constant velocity, trusts every measurement."""

    def __init__(self, vx: float = 0.0, vy: float = 0.0) -> None:
        self.vx = vx
        self.vy = vy
        self.x = 0.0
        self.y = 0.0

    def init(self, x, y):
        self.x, self.y = x, y

    def predict(self):
        self.x += self.vx
        self.y += self.vy
        return self.x, self.y

    def correct(self, x, y):
        self.x, self.y = x, y
        return self.x, self.y


def det(x, y, w=10.0, h=10.0, class_id=0, class_prob=0.8):
    return Detection(Box(x, y, w, h), class_id, class_prob)


@pytest.fixture
def id_sequence():
    return IdSequence()


@pytest.fixture
def make_manager(id_sequence):
    def _make(init_conf=1, min_conf=3, max_conf=6, fps=10.0, iou_thresh=0.3, **kwargs):
        kwargs.setdefault("filter_factory", FakeMotionFilter)
        kwargs.setdefault("id_sequence", id_sequence)
        return TrackManager(
            ConfParam(init_conf, min_conf, max_conf), fps, iou_thresh, **kwargs
        )

    return _make
