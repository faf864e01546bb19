from multi_object_tracking.assignment import (
    Assignment,
    AssignmentSolver,
    GreedySolver,
    HungarianSolver,
    SolverError,
    construct_similarity_matrix,
)
from multi_object_tracking.box import Box, box_iou
from multi_object_tracking.config import (
    ConfigurationError,
    ConfParam,
    TrackerConfig,
    load_config,
)
from multi_object_tracking.detected_object import Detection
from multi_object_tracking.motion_filter import KalmanMotionFilter, MotionFilter
from multi_object_tracking.track import IdSequence, Track, TrackStatus
from multi_object_tracking.track_manager import TrackManager

__version__ = "0.1.0"
