from dataclasses import dataclass


@dataclass(frozen=True)
class Box:
    """
    Axis-aligned bounding box stored as center point and size.

    Attributes:
        x (float): Center x coordinate.
        y (float): Center y coordinate.
        w (float): Width of the box.
        h (float): Height of the box.
    """

    x: float
    y: float
    w: float
    h: float

    @property
    def area(self) -> float:
        # Degenerate boxes have no area
        if self.w <= 0 or self.h <= 0:
            return 0.0
        return self.w * self.h

    def iou(self, other: "Box") -> float:
        return box_iou(self, other)

    def to_xyxy(self) -> tuple[float, float, float, float]:
        """
        Convert the box to [x1, y1, x2, y2] corner format.

        Returns:
            tuple: (left, top, right, bottom) coordinates.
        """
        half_w = self.w / 2.0
        half_h = self.h / 2.0
        return (self.x - half_w, self.y - half_h, self.x + half_w, self.y + half_h)

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "Box":
        """
        Build a box from [x1, y1, x2, y2] corner coordinates.

        Args:
            x1 (float): Top-left x coordinate.
            y1 (float): Top-left y coordinate.
            x2 (float): Bottom-right x coordinate.
            y2 (float): Bottom-right y coordinate.

        Returns:
            Box: Box in center format.
        """
        # Calculate width and height of the bounding box
        width = x2 - x1
        height = y2 - y1
        # Calculate center coordinates
        x_center = x1 + (width / 2.0)
        y_center = y1 + (height / 2.0)

        return cls(float(x_center), float(y_center), float(width), float(height))


def box_iou(prev_box: Box, current_box: Box) -> float:
    """
    Calculate the Intersection over Union (IoU) between two bounding boxes.

    Args:
        prev_box (Box): First bounding box.
        current_box (Box): Second bounding box.

    Returns:
        float: IoU value between the two boxes (0.0 to 1.0). Boxes with
            non-positive area never overlap anything.
    """
    if prev_box.area == 0.0 or current_box.area == 0.0:
        return 0.0

    prev_x1, prev_y1, prev_x2, prev_y2 = prev_box.to_xyxy()
    cur_x1, cur_y1, cur_x2, cur_y2 = current_box.to_xyxy()

    # Areas come from the same corners as the intersection so that a box
    # overlaps itself exactly
    prev_box_area = (prev_x2 - prev_x1) * (prev_y2 - prev_y1)
    current_box_area = (cur_x2 - cur_x1) * (cur_y2 - cur_y1)

    # Determine the coordinates of the intersection rectangle
    xA = max(prev_x1, cur_x1)  # Intersection top-left x
    yA = max(prev_y1, cur_y1)  # Intersection top-left y
    xB = min(prev_x2, cur_x2)  # Intersection bottom-right x
    yB = min(prev_y2, cur_y2)  # Intersection bottom-right y

    # Compute the area of intersection rectangle (W * H)
    intercept_area = max(0.0, xB - xA) * max(0.0, yB - yA)
    if intercept_area == 0.0:
        return 0.0

    # Compute the union area
    union_area = (prev_box_area + current_box_area) - intercept_area

    # Rounding must never report more than a full overlap
    return min(1.0, intercept_area / union_area)
