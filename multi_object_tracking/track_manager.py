import dataclasses
from collections import deque
from collections.abc import Sequence

import numpy as np
from loguru import logger

from multi_object_tracking.assignment import (
    AssignmentSolver,
    HungarianSolver,
    SolverError,
    construct_similarity_matrix,
)
from multi_object_tracking.config import ConfParam, TrackerConfig
from multi_object_tracking.detected_object import Detection
from multi_object_tracking.motion_filter import KalmanMotionFilter, MotionFilterFactory
from multi_object_tracking.track import IdSequence, Track


class TrackManager:
    """
    Keeps persistent tracks alive across frames of a single video stream.

    Each call to track() runs one frame through the pipeline
    predict -> associate -> correct -> spawn -> retire -> archive.
    A manager is not meant to be shared between threads.
    """

    def __init__(
        self,
        conf_param: ConfParam,
        fps: float,
        iou_thresh: float,
        max_saved_tracks: int | None = None,
        archive_min_count: int = 30,
        filter_factory: MotionFilterFactory = KalmanMotionFilter,
        solver: AssignmentSolver | None = None,
        id_sequence: IdSequence | None = None,
    ) -> None:
        """
        Initialize the track manager.

        Args:
            conf_param (ConfParam): Initial, visible and maximum track confidence.
            fps (float): Frame rate of the stream.
            iou_thresh (float): A matched pair needs an IoU above this to be accepted.
            max_saved_tracks (int): Keep only this many archived tracks (default: unbounded).
            archive_min_count (int): Dying tracks older than this are archived (default: 30).
            filter_factory (MotionFilterFactory): Builds the motion filter of each new track.
            solver (AssignmentSolver): Assignment solver (default: Hungarian).
            id_sequence (IdSequence): Source of track ids (default: process-wide).

        Raises:
            ConfigurationError: If the parameters are inconsistent.
        """
        self._config = TrackerConfig(
            conf_param=conf_param,
            fps=fps,
            iou_thresh=iou_thresh,
            max_saved_tracks=max_saved_tracks,
            archive_min_count=archive_min_count,
        )
        self._config.validate()

        self.filter_factory = filter_factory
        self.solver = solver or HungarianSolver()
        self.id_sequence = id_sequence

        # Tracks currently alive, in spawn order
        self.tracks: list[Track] = []
        # Tracks that lived long enough before dying
        self.saved_tracks: deque[Track] = deque(maxlen=max_saved_tracks)

    @classmethod
    def from_config(cls, config: TrackerConfig, **kwargs) -> "TrackManager":
        """
        Build a manager from a config.

        Keyword arguments naming a TrackerConfig field override that field;
        the rest (filter_factory, solver, id_sequence) go to the constructor.
        """
        config_fields = {f.name for f in dataclasses.fields(TrackerConfig)}
        overrides = {k: kwargs.pop(k) for k in list(kwargs) if k in config_fields}
        config = dataclasses.replace(config, **overrides)

        return cls(
            config.conf_param,
            config.fps,
            config.iou_thresh,
            max_saved_tracks=config.max_saved_tracks,
            archive_min_count=config.archive_min_count,
            **kwargs,
        )

    # Configuration is fixed at construction
    @property
    def config(self) -> TrackerConfig:
        return self._config

    @property
    def conf_param(self) -> ConfParam:
        return self._config.conf_param

    @property
    def fps(self) -> float:
        return self._config.fps

    @property
    def iou_thresh(self) -> float:
        return self._config.iou_thresh

    @property
    def archive_min_count(self) -> int:
        return self._config.archive_min_count

    def clear(self) -> None:
        """Drop all active tracks, e.g. when the stream restarts."""
        self.tracks = []
        logger.info("Track manager cleared")

    def track(self, detections: Sequence[Detection]) -> None:
        """
        Run one frame of detections through the tracker.

        Args:
            detections (Sequence[Detection]): Detections of the current frame.
        """
        if not self.tracks:
            # Nothing to match against, every detection starts a track
            for det in detections:
                self._spawn(det)
        else:
            # Predict existing tracks
            for track in self.tracks:
                track.predict()

            if len(detections) != 0:
                table = self.associate(detections)
                num_tracks = len(self.tracks)

                # Correct existing tracks
                for i, j in zip(*np.nonzero(table)):
                    self.tracks[i].correct(detections[j])

                # Launch new tracks for detections no track claimed
                for j in np.flatnonzero(table.sum(axis=0) == 0):
                    self._spawn(detections[j])

                logger.debug(
                    f"Associated {int(table.sum())} of {len(detections)} detections "
                    f"with {num_tracks} tracks"
                )

        self._retire()
        self._check_invariants()

    def associate(self, detections: Sequence[Detection]) -> np.ndarray:
        """
        Match the current detections against the active tracks.

        Args:
            detections (Sequence[Detection]): Detections of the current frame.

        Returns:
            np.ndarray: Integer matrix of shape (num_tracks, num_detections) with
                1 where the solver paired a track and a detection with an IoU
                above iou_thresh, 0 elsewhere.
        """
        match = np.zeros((len(self.tracks), len(detections)), dtype=np.int32)

        sim_mat, is_transposed = construct_similarity_matrix(
            [track.box for track in self.tracks], [det.box for det in detections]
        )

        try:
            result = self.solver.solve(sim_mat)
        except SolverError as e:
            logger.warning(f"Assignment failed, treating frame as unmatched: {e}")
            return match

        accepted = result.matched & (result.weights > self.iou_thresh)

        # Bring the solver output back to (track, detection) orientation
        if is_transposed:
            accepted = accepted.T

        match[accepted] = 1
        return match

    def get_tracks(self) -> list[Track]:
        """Active tracks confident enough to be shown."""
        return [
            track
            for track in self.tracks
            if track.confidence >= self.conf_param.min_conf
        ]

    def get_saved_tracks(self) -> list[Track]:
        """Every archived track, oldest first."""
        return list(self.saved_tracks)

    def _spawn(self, det: Detection) -> Track:
        track = Track.spawn(
            self.conf_param, det, self.fps, self.filter_factory, self.id_sequence
        )
        self.tracks.append(track)
        logger.debug(f"New track created: {track.id}")
        return track

    def _retire(self) -> None:
        remaining_tracks: list[Track] = []

        for track in self.tracks:
            if track.confidence > 0:
                remaining_tracks.append(track)
            elif track.count > self.archive_min_count:
                self.saved_tracks.append(track)
                logger.debug(f"Track archived: {track.id} (count {track.count})")
            else:
                logger.debug(f"Track dropped: {track.id} (count {track.count})")

        self.tracks = remaining_tracks

    def _check_invariants(self) -> None:
        ids = [track.id for track in self.tracks]
        assert len(ids) == len(set(ids)), f"duplicate track ids: {ids}"
        assert all(
            0 < track.confidence <= self.conf_param.max_conf for track in self.tracks
        ), "track confidence out of range"
