from typing import Callable, Protocol

import cv2 as cv
import numpy as np


class MotionFilter(Protocol):
    """Predict/correct filter over a 2-D point, as used by a track."""

    def init(self, x: float, y: float) -> None: ...

    def predict(self) -> tuple[float, float]: ...

    def correct(self, x: float, y: float) -> tuple[float, float]: ...


class KalmanMotionFilter:
    """
    Constant-velocity Kalman filter on the image plane using cv.KalmanFilter.

    State: [x, y, vx, vy]^T (px, px, px/frame, px/frame)
    Measurement: [x, y]^T
    """

    def __init__(
        self, process_noise: float = 1e-4, measurement_noise: float = 2e-4
    ) -> None:
        self.process_noise = process_noise
        self.measurement_noise = measurement_noise
        self.kf = cv.KalmanFilter(4, 2)

    def init(self, x: float, y: float) -> None:
        """
        Reset the filter so that it starts at (x, y) with zero velocity.

        Args:
            x (float): Initial x position.
            y (float): Initial y position.
        """
        self.kf = cv.KalmanFilter(4, 2)

        # F: state transition matrix
        self.kf.transitionMatrix = np.array(
            [
                [1, 0, 1, 0],
                [0, 1, 0, 1],
                [0, 0, 1, 0],
                [0, 0, 0, 1],
            ],
            np.float32,
        )

        # H: only the position is observed
        self.kf.measurementMatrix = np.eye(2, 4, dtype=np.float32)

        # Q and R
        self.kf.processNoiseCov = self.process_noise * np.eye(4, dtype=np.float32)
        self.kf.measurementNoiseCov = self.measurement_noise * np.eye(
            2, dtype=np.float32
        )

        # Initial state
        self.kf.statePost = np.array([[x], [y], [0.0], [0.0]], dtype=np.float32)
        # A correction before the first prediction must not pull towards the origin
        self.kf.statePre = self.kf.statePost.copy()

    def predict(self) -> tuple[float, float]:
        pred = self.kf.predict()
        return float(pred[0, 0]), float(pred[1, 0])

    def correct(self, x: float, y: float) -> tuple[float, float]:
        meas = np.array([[x], [y]], dtype=np.float32)
        est = self.kf.correct(meas)
        return float(est[0, 0]), float(est[1, 0])


MotionFilterFactory = Callable[[], MotionFilter]
