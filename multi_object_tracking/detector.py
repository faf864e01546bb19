from typing import Any

from loguru import logger

from multi_object_tracking.detected_object import Detection


class YoloDetector:
    """Turns the output of an ultralytics YOLO model into tracker detections."""

    def __init__(self, model: Any, conf: float = 0.5) -> None:
        """
        Args:
            model: Loaded YOLO model (anything with a compatible predict()).
            conf (float): Confidence threshold for object detection (default: 0.5).
        """
        self.model = model
        self.conf = conf

    @classmethod
    def from_weights(cls, weights: str = "yolo11s.pt", conf: float = 0.5) -> "YoloDetector":
        from ultralytics import YOLO

        logger.info(f"Loading YOLO weights from {weights}")
        return cls(YOLO(weights), conf=conf)

    def predict(self, input_image: Any) -> list[Detection]:
        """
        Run object detection inference on the input image.

        Args:
            input_image: Input image for object detection.

        Returns:
            list[Detection]: Detections found in the image, empty if none.
        """
        # Run YOLO model prediction on the input image
        results = self.model.predict(input_image, conf=self.conf, verbose=False)

        # Extract the first (and typically only) result
        result = results[0]
        if not result.boxes:
            return []

        # Bounding boxes as [x1, y1, x2, y2]
        boxes = [[float(j) for j in i] for i in result.boxes.xyxy]
        # Confidence scores for each detection
        scores = [float(s) for s in result.boxes.conf]
        # Class categories for each detection
        categories = [int(c) for c in result.boxes.cls]

        return [
            Detection.from_xyxy(box, category, score)
            for box, score, category in zip(boxes, scores, categories)
        ]
