import numpy as np
import pytest

from multi_object_tracking.assignment import Assignment, SolverError
from multi_object_tracking.box import Box, box_iou
from multi_object_tracking.config import ConfigurationError, ConfParam, TrackerConfig
from multi_object_tracking.motion_filter import KalmanMotionFilter
from multi_object_tracking.track import IdSequence, TrackStatus
from multi_object_tracking.track_manager import TrackManager

from conftest import det


class FailingSolver:
    def solve(self, weights):
        raise SolverError("no luck")


class MatchEverythingSolver:
    def solve(self, weights):
        weights = np.asarray(weights, dtype=np.float64)
        return Assignment(np.ones(weights.shape, dtype=bool), weights)


def run_frames(manager, frames):
    for detections in frames:
        manager.track(detections)


def test_first_frame_spawns_one_track_per_detection(make_manager):
    manager = make_manager(init_conf=2)

    manager.track([det(0, 0), det(50, 0), det(100, 0)])

    assert len(manager.tracks) == 3
    assert len({t.id for t in manager.tracks}) == 3
    assert all(t.confidence == 2 for t in manager.tracks)
    assert all(t.status is TrackStatus.MOVING for t in manager.tracks)


def test_end_to_end_track_dies_without_detections(make_manager):
    manager = make_manager(init_conf=1, min_conf=1, max_conf=3, fps=10, iou_thresh=0.3)

    manager.track([det(0, 0, 10, 10)])
    assert len(manager.tracks) == 1
    assert manager.tracks[0].confidence == 1
    assert len(manager.get_tracks()) == 1

    manager.track([])

    assert manager.tracks == []
    assert manager.get_tracks() == []
    assert manager.get_saved_tracks() == []


def test_visibility_gate(make_manager):
    manager = make_manager(init_conf=1, min_conf=3, max_conf=6)

    manager.track([det(0, 0)])
    assert manager.get_tracks() == []

    manager.track([det(0, 0)])
    assert manager.tracks[0].confidence == 2
    assert manager.get_tracks() == []

    manager.track([det(0, 0)])
    assert manager.tracks[0].confidence == 3
    assert manager.get_tracks() == manager.tracks


def test_matched_track_keeps_its_id(make_manager):
    manager = make_manager()

    manager.track([det(0, 0)])
    track_id = manager.tracks[0].id
    manager.track([det(2, 0)])

    assert [t.id for t in manager.tracks] == [track_id]
    assert manager.tracks[0].box.x == 2


def test_confidence_decays_to_removal(make_manager):
    manager = make_manager(init_conf=1, min_conf=1, max_conf=3, fps=100)

    run_frames(manager, [[det(0, 0)]] * 3)
    assert manager.tracks[0].confidence == 3

    run_frames(manager, [[], []])
    assert manager.tracks[0].confidence == 1

    manager.track([])
    assert manager.tracks == []


@pytest.mark.parametrize("matched_frames,archived", [(28, False), (29, True)])
def test_archive_requires_more_than_thirty_frames(make_manager, matched_frames, archived):
    manager = make_manager(init_conf=1, min_conf=1, max_conf=2, fps=100)

    run_frames(manager, [[det(0, 0)]] * matched_frames)
    track = manager.tracks[0]
    run_frames(manager, [[], []])

    assert manager.tracks == []
    assert track.count == matched_frames + 2
    assert (manager.get_saved_tracks() == [track]) is archived


def test_unmatched_detection_spawns_new_track(make_manager):
    manager = make_manager()

    manager.track([det(0, 0)])
    manager.track([det(0, 0), det(200, 200)])

    assert len(manager.tracks) == 2
    assert manager.tracks[1].box.x == 200
    assert manager.tracks[1].confidence == 1


def test_matches_below_threshold_are_rejected(make_manager):
    manager = make_manager(init_conf=3, iou_thresh=0.5)

    manager.track([det(0, 0)])
    # IoU with the track is 1/3, the solver pairs them anyway
    table = manager.associate([det(5, 0)])
    assert table.tolist() == [[0]]

    manager.track([det(5, 0)])
    assert len(manager.tracks) == 2


def test_associate_undoes_transpose(make_manager):
    manager = make_manager()
    manager.track([det(0, 0), det(100, 0), det(200, 0)])

    table = manager.associate([det(101, 0)])

    assert table.shape == (3, 1)
    assert table[:, 0].tolist() == [0, 1, 0]


def test_associate_without_transpose(make_manager):
    manager = make_manager()
    manager.track([det(100, 0)])

    table = manager.associate([det(0, 0), det(99, 0), det(300, 0)])

    assert table.shape == (1, 3)
    assert table.tolist() == [[0, 1, 0]]


def test_solver_failure_degrades_to_prediction(make_manager):
    manager = make_manager(init_conf=3, solver=FailingSolver())
    manager.track([det(0, 0)])

    manager.track([det(0, 0)])

    assert len(manager.tracks) == 2
    assert manager.tracks[0].confidence == 2
    assert manager.tracks[0].count == 2


def test_several_matches_in_a_row_apply_in_detection_order(make_manager):
    manager = make_manager(init_conf=1, max_conf=6, fps=100, solver=MatchEverythingSolver())
    manager.track([det(0, 0)])

    manager.track([det(1, 0), det(2, 0)])

    assert len(manager.tracks) == 1
    assert manager.tracks[0].box.x == 2
    assert manager.tracks[0].confidence == 4


def test_clear_keeps_archive(make_manager):
    manager = make_manager(init_conf=1, min_conf=1, max_conf=2, fps=100)
    run_frames(manager, [[det(0, 0)]] * 40 + [[], []])
    assert len(manager.get_saved_tracks()) == 1

    manager.track([det(0, 0)])
    manager.clear()

    assert manager.tracks == []
    assert len(manager.get_saved_tracks()) == 1

    manager.track([det(0, 0)])
    assert len(manager.tracks) == 1


def test_archive_size_limit(make_manager):
    manager = make_manager(init_conf=1, min_conf=1, max_conf=2, fps=100, max_saved_tracks=2)

    for x in (0, 100, 200):
        manager.clear()
        run_frames(manager, [[det(x, 0)]] * 31 + [[], []])

    saved = manager.get_saved_tracks()
    assert [t.box.x for t in saved] == [100, 200]


def test_ids_are_unique_across_managers_sharing_a_sequence():
    ids = IdSequence()
    managers = [
        TrackManager(ConfParam(1, 1, 3), 10, 0.3, id_sequence=ids) for _ in range(2)
    ]

    for manager in managers:
        manager.track([det(0, 0), det(100, 0)])

    all_ids = [t.id for m in managers for t in m.tracks]
    assert sorted(all_ids) == [0, 1, 2, 3]


def test_kalman_filter_keeps_a_static_object(id_sequence):
    manager = TrackManager(
        ConfParam(1, 3, 6), 10, 0.3, filter_factory=KalmanMotionFilter, id_sequence=id_sequence
    )

    run_frames(manager, [[det(50, 50)]] * 5)

    assert len(manager.tracks) == 1
    assert manager.tracks[0].box.x == pytest.approx(50, abs=1e-3)
    assert manager.get_tracks() == manager.tracks


@pytest.mark.parametrize(
    "conf_param,fps,iou_thresh",
    [
        (ConfParam(1, 3, 6), 0, 0.3),
        (ConfParam(1, 3, 6), -5, 0.3),
        (ConfParam(7, 3, 6), 10, 0.3),
        (ConfParam(-1, 3, 6), 10, 0.3),
        (ConfParam(1, -3, 6), 10, 0.3),
        (ConfParam(1, 3, 6), 10, 1.5),
    ],
)
def test_invalid_configuration_is_rejected(conf_param, fps, iou_thresh):
    with pytest.raises(ConfigurationError):
        TrackManager(conf_param, fps, iou_thresh)


def test_match_exactly_at_threshold_is_rejected(make_manager):
    manager = make_manager(
        init_conf=3, iou_thresh=box_iou(Box(0, 0, 10, 10), Box(5, 0, 10, 10))
    )
    manager.track([det(0, 0)])

    assert manager.associate([det(5, 0)]).tolist() == [[0]]


def test_from_config_accepts_config_overrides(id_sequence):
    config = TrackerConfig(conf_param=ConfParam(1, 1, 3), fps=10, iou_thresh=0.3)

    manager = TrackManager.from_config(
        config, max_saved_tracks=5, iou_thresh=0.5, id_sequence=id_sequence
    )

    assert manager.saved_tracks.maxlen == 5
    assert manager.iou_thresh == 0.5
    assert manager.fps == 10
    assert manager.id_sequence is id_sequence


def test_from_config_validates_overrides():
    with pytest.raises(ConfigurationError):
        TrackManager.from_config(TrackerConfig(), fps=0)


@pytest.mark.parametrize("attribute", ["conf_param", "fps", "iou_thresh", "config"])
def test_configuration_is_read_only(make_manager, attribute):
    manager = make_manager()

    with pytest.raises(AttributeError):
        setattr(manager, attribute, None)


@pytest.mark.parametrize("fps", [float("inf"), float("nan")])
def test_non_finite_fps_is_rejected(fps):
    with pytest.raises(ConfigurationError):
        TrackManager(ConfParam(1, 3, 6), fps, 0.3)
