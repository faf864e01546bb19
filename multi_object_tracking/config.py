import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


class ConfigurationError(ValueError):
    """Raised when tracker parameters are inconsistent."""


@dataclass(frozen=True)
class ConfParam:
    """
    Confidence bookkeeping parameters shared by all tracks of a manager.

    Attributes:
        init_conf (int): Confidence given to a freshly spawned track.
        min_conf (int): Confidence a track needs to be reported by get_tracks().
        max_conf (int): Upper bound of the confidence counter.
    """

    init_conf: int = 1
    min_conf: int = 3
    max_conf: int = 6

    def validate(self) -> None:
        if not 0 <= self.init_conf <= self.max_conf:
            raise ConfigurationError(
                f"expected 0 <= init_conf <= max_conf, got init_conf={self.init_conf}, "
                f"max_conf={self.max_conf}"
            )
        if self.min_conf < 0:
            raise ConfigurationError(f"min_conf must be >= 0, got {self.min_conf}")


@dataclass(frozen=True)
class TrackerConfig:
    """Everything needed to build a TrackManager."""

    conf_param: ConfParam = field(default_factory=ConfParam)
    fps: float = 25.0
    iou_thresh: float = 0.3
    max_saved_tracks: int | None = None
    archive_min_count: int = 30

    def validate(self) -> None:
        self.conf_param.validate()
        if not (self.fps > 0 and math.isfinite(self.fps)):
            raise ConfigurationError(f"fps must be positive and finite, got {self.fps}")
        if not 0.0 <= self.iou_thresh <= 1.0:
            raise ConfigurationError(
                f"iou_thresh must be within [0, 1], got {self.iou_thresh}"
            )
        if self.max_saved_tracks is not None and self.max_saved_tracks < 0:
            raise ConfigurationError(
                f"max_saved_tracks must be >= 0, got {self.max_saved_tracks}"
            )

    @classmethod
    def from_dict(cls, cfg: Mapping[str, Any]) -> "TrackerConfig":
        """
        Build a config from a nested mapping, e.g. a parsed YAML file:

          tracker:
            fps: 10
            iou_thresh: 0.3
            confidence: {init: 1, min: 3, max: 6}
        """
        defaults = cls()
        conf_param = ConfParam(
            init_conf=int(get(cfg, "tracker.confidence.init", defaults.conf_param.init_conf)),
            min_conf=int(get(cfg, "tracker.confidence.min", defaults.conf_param.min_conf)),
            max_conf=int(get(cfg, "tracker.confidence.max", defaults.conf_param.max_conf)),
        )
        max_saved = get(cfg, "tracker.max_saved_tracks", defaults.max_saved_tracks)
        config = cls(
            conf_param=conf_param,
            fps=float(get(cfg, "tracker.fps", defaults.fps)),
            iou_thresh=float(get(cfg, "tracker.iou_thresh", defaults.iou_thresh)),
            max_saved_tracks=None if max_saved is None else int(max_saved),
            archive_min_count=int(
                get(cfg, "tracker.archive_min_count", defaults.archive_min_count)
            ),
        )
        config.validate()
        return config


def load_yaml(path: str | Path) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path.resolve()}")
    with config_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: str | Path) -> TrackerConfig:
    return TrackerConfig.from_dict(load_yaml(path))


def get(cfg: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """
    Dot-access helper:
      get(cfg, "tracker.confidence.min", 3)
    """
    cur: Any = cfg
    for part in key.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return cur
