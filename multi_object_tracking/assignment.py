from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np
from scipy.optimize import linear_sum_assignment

from multi_object_tracking.box import Box, box_iou


class SolverError(RuntimeError):
    """Raised when an assignment solver cannot handle a weight matrix."""


@dataclass
class Assignment:
    """
    Result of solving an assignment problem.

    Attributes:
        matched (np.ndarray): Boolean matrix, True where the (row, col) edge is
            part of the assignment.
        weights (np.ndarray): The original weight of every edge.
    """

    matched: np.ndarray
    weights: np.ndarray

    def pairs(self) -> list[tuple[int, int]]:
        """Matched (row, col) index pairs in row-major order."""
        rows, cols = np.nonzero(self.matched)
        return [(int(r), int(c)) for r, c in zip(rows, cols)]


class AssignmentSolver(Protocol):
    def solve(self, weights: np.ndarray) -> Assignment: ...


def _check_weights(weights: np.ndarray) -> np.ndarray:
    weights = np.asarray(weights, dtype=np.float64)
    if weights.ndim != 2 or weights.size == 0:
        raise SolverError(f"cannot solve a weight matrix of shape {weights.shape}")
    if not np.all(np.isfinite(weights)):
        raise SolverError("weight matrix contains non-finite values")
    if np.any(weights < 0):
        raise SolverError("weight matrix contains negative values")
    return weights


class HungarianSolver:
    """
    Maximum-weight one-to-one assignment (Hungarian / Kuhn-Munkres).

    Every row of a matrix with no more rows than columns gets a partner, even
    when its weight is zero; callers are expected to threshold the result.
    """

    def solve(self, weights: np.ndarray) -> Assignment:
        weights = _check_weights(weights)

        # Apply Hungarian algorithm to find optimal assignment
        hungarian_row, hungarian_col = linear_sum_assignment(weights, maximize=True)

        matched = np.zeros(weights.shape, dtype=bool)
        matched[hungarian_row, hungarian_col] = True

        return Assignment(matched, weights)


class GreedySolver:
    """
    Greedy best-first assignment.

    Repeatedly accepts the heaviest remaining edge and removes its row and
    column. Runs in O(n*m*min(n, m)) but is not guaranteed to be optimal.
    """

    def solve(self, weights: np.ndarray) -> Assignment:
        weights = _check_weights(weights)

        remaining = weights.copy()
        matched = np.zeros(weights.shape, dtype=bool)

        for _ in range(min(weights.shape)):
            # argmax returns the first maximum in row-major order
            row, col = np.unravel_index(np.argmax(remaining), remaining.shape)
            matched[row, col] = True

            # Zero out matched row and column
            remaining[row, :] = -1.0
            remaining[:, col] = -1.0

        return Assignment(matched, weights)


def construct_similarity_matrix(
    track_boxes: Sequence[Box], detection_boxes: Sequence[Box]
) -> tuple[np.ndarray, bool]:
    """
    Build the IoU similarity matrix between tracks and detections.

    The smaller of the two sets becomes the rows ("agents") of the matrix and
    the larger one the columns ("tasks").

    Args:
        track_boxes (Sequence[Box]): Current boxes of the active tracks.
        detection_boxes (Sequence[Box]): Boxes of the current detections.

    Returns:
        tuple: (sim_mat, is_transposed)
            - sim_mat: Array of shape (min(T, D), max(T, D)) holding IoU values
            - is_transposed: True when rows are detections and columns tracks
    """
    is_transposed = len(track_boxes) > len(detection_boxes)

    if is_transposed:
        agents, tasks = detection_boxes, track_boxes
    else:
        agents, tasks = track_boxes, detection_boxes

    sim_mat = np.zeros((len(agents), len(tasks)), dtype=np.float64)

    # Populate matrix with similarity scores between all box pairs
    for i, agent_box in enumerate(agents):
        for j, task_box in enumerate(tasks):
            sim_mat[i, j] = box_iou(agent_box, task_box)

    return sim_mat, is_transposed
