import glob
import os
import sys

import cv2 as cv
from loguru import logger

from multi_object_tracking.config import TrackerConfig, load_config
from multi_object_tracking.detector import YoloDetector
from multi_object_tracking.track_manager import TrackManager
from multi_object_tracking.utils import draw_tracks


def run(images_path, config: TrackerConfig, weights: str = "yolo11s.pt"):
    detector = YoloDetector.from_weights(weights)
    manager = TrackManager.from_config(config)

    for image_file in images_path:
        image = cv.imread(image_file)
        if image is None:
            logger.warning(f"Skipping unreadable image {image_file}")
            continue

        manager.track(detector.predict(image))

        output_image = draw_tracks(image, manager.get_tracks())
        cv.imshow("Object Tracking", output_image)

        # Break the loop if 'q' is pressed
        if cv.waitKey(1) & 0xFF == ord("q"):
            break

    # Clean up OpenCV windows
    cv.destroyAllWindows()

    logger.info(
        f"Finished with {len(manager.get_tracks())} visible tracks, "
        f"{len(manager.get_saved_tracks())} archived"
    )
    return manager


def list_images(image_dir, pattern: str = "*.png") -> list[str]:
    """Sorted image files of a directory, one per frame."""
    return sorted(glob.glob(os.path.join(image_dir, pattern)))


if __name__ == "__main__":
    if len(sys.argv) < 2:
        sys.exit("usage: python -m multi_object_tracking.main <image_dir> [config.yaml]")

    images_path = list_images(sys.argv[1])

    # Optional YAML config as the second argument
    config = load_config(sys.argv[2]) if len(sys.argv) > 2 else TrackerConfig()

    run(images_path, config)
