"""Configuration loader for loopstitch."""

import yaml
import numbers
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field, fields

from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'default.yaml'

MATCHER_TYPES = ('ratio', 'hungarian')
MATCHER_METRICS = ('euclidean', 'cosine', 'hamming')

# YAML keys of the close_loops section -> StitchConfig field names
_STITCH_KEYS = {
    'bf_detection_enabled': 'enabled',
    'bf_detection_percent_match_req': 'percent_match_req',
    'bf_detection_new_shot_length': 'new_shot_length',
    'bf_detection_max_search_length': 'max_search_length',
    'bf_detection_search_workers': 'search_workers',
}


class ConfigurationError(ValueError):
    """Raised when a configuration block fails validation."""

    pass


def _check_keys(section: str, config_dict: Dict[str, Any], allowed):
    unknown = sorted(set(config_dict) - set(allowed))
    if unknown:
        raise ConfigurationError(f"Unknown {section} option(s): {', '.join(unknown)}")


def _as_uint(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 0:
        raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")
    return int(value)


def _as_bool(name: str, value: Any) -> bool:
    # Quoted YAML values such as "false" are strings and must not pass
    if not isinstance(value, bool):
        raise ConfigurationError(f"{name} must be true or false, got {value!r}")
    return value


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None


@dataclass(frozen=True)
class MatcherConfig:
    """Descriptor matcher configuration."""
    type: str = "ratio"
    metric: str = "euclidean"
    ratio: float = 0.75
    cross_check: bool = False
    max_distance: Optional[float] = None

    def __post_init__(self):
        if self.type not in MATCHER_TYPES:
            raise ConfigurationError(
                f"Unknown feature_matcher type {self.type!r} (expected one of {MATCHER_TYPES})"
            )
        if self.metric not in MATCHER_METRICS:
            raise ConfigurationError(
                f"Unknown feature_matcher metric {self.metric!r} (expected one of {MATCHER_METRICS})"
            )
        ratio = _as_float('feature_matcher.ratio', self.ratio)
        if not 0.0 < ratio <= 1.0:
            raise ConfigurationError(f"feature_matcher.ratio must be in (0, 1], got {ratio}")
        object.__setattr__(self, 'ratio', ratio)
        _as_bool('feature_matcher.cross_check', self.cross_check)
        if self.max_distance is not None:
            max_distance = _as_float('feature_matcher.max_distance', self.max_distance)
            if max_distance < 0.0:
                raise ConfigurationError(
                    f"feature_matcher.max_distance must be non-negative, got {max_distance}"
                )
            object.__setattr__(self, 'max_distance', max_distance)

    @classmethod
    def from_dict(cls, config_dict: Optional[Dict[str, Any]]) -> 'MatcherConfig':
        """Create MatcherConfig from dictionary."""
        config_dict = dict(config_dict or {})
        _check_keys('feature_matcher', config_dict, [f.name for f in fields(cls)])
        return cls(**config_dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert MatcherConfig to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class StitchConfig:
    """
    Bad-frame stitching configuration.

    Validated on construction and immutable afterwards. A new shot length
    of 0 is coerced to 1.
    """
    enabled: bool = True
    percent_match_req: float = 0.2
    new_shot_length: int = 2
    max_search_length: int = 5
    search_workers: int = 1
    feature_matcher: MatcherConfig = field(default_factory=MatcherConfig)

    def __post_init__(self):
        _as_bool('bf_detection_enabled', self.enabled)

        percent = _as_float('bf_detection_percent_match_req', self.percent_match_req)
        if abs(percent) > 1.0:
            raise ConfigurationError(
                f"bf_detection_percent_match_req must satisfy abs(value) <= 1.0, got {percent}"
            )
        object.__setattr__(self, 'percent_match_req', percent)

        shot_length = _as_uint('bf_detection_new_shot_length', self.new_shot_length)
        object.__setattr__(self, 'new_shot_length', shot_length or 1)

        object.__setattr__(
            self, 'max_search_length',
            _as_uint('bf_detection_max_search_length', self.max_search_length)
        )
        workers = _as_uint('bf_detection_search_workers', self.search_workers)
        if workers < 1:
            raise ConfigurationError("bf_detection_search_workers must be at least 1")
        object.__setattr__(self, 'search_workers', workers)

        if isinstance(self.feature_matcher, dict):
            object.__setattr__(self, 'feature_matcher', MatcherConfig.from_dict(self.feature_matcher))
        elif not isinstance(self.feature_matcher, MatcherConfig):
            raise ConfigurationError(
                f"feature_matcher must be a mapping, got {type(self.feature_matcher).__name__}"
            )

    @classmethod
    def from_dict(cls, config_dict: Optional[Dict[str, Any]]) -> 'StitchConfig':
        """
        Create StitchConfig from a ``close_loops`` dictionary.

        Args:
            config_dict: Mapping using the ``bf_detection_*`` option names
                         plus a nested ``feature_matcher`` mapping.

        Returns:
            Validated StitchConfig.

        Raises:
            ConfigurationError: If any option is unknown or invalid.
        """
        config_dict = dict(config_dict or {})
        _check_keys('close_loops', config_dict, list(_STITCH_KEYS) + ['feature_matcher'])

        kwargs = {_STITCH_KEYS[key]: value for key, value in config_dict.items() if key in _STITCH_KEYS}
        kwargs['feature_matcher'] = MatcherConfig.from_dict(config_dict.get('feature_matcher'))
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert StitchConfig to a ``close_loops`` dictionary."""
        config_dict = {key: getattr(self, name) for key, name in _STITCH_KEYS.items()}
        config_dict['feature_matcher'] = self.feature_matcher.to_dict()
        return config_dict


@dataclass(frozen=True)
class TrackerConfig:
    """Frame-to-frame feature tracking configuration."""
    min_track_length: int = 2
    feature_matcher: MatcherConfig = field(default_factory=MatcherConfig)

    def __post_init__(self):
        min_length = _as_uint('tracker.min_track_length', self.min_track_length)
        if min_length < 1:
            raise ConfigurationError("tracker.min_track_length must be at least 1")
        object.__setattr__(self, 'min_track_length', min_length)
        if isinstance(self.feature_matcher, dict):
            object.__setattr__(self, 'feature_matcher', MatcherConfig.from_dict(self.feature_matcher))

    @classmethod
    def from_dict(cls, config_dict: Optional[Dict[str, Any]]) -> 'TrackerConfig':
        """Create TrackerConfig from dictionary."""
        config_dict = dict(config_dict or {})
        _check_keys('tracker', config_dict, ['min_track_length', 'feature_matcher'])
        return cls(
            min_track_length=config_dict.get('min_track_length', 2),
            feature_matcher=MatcherConfig.from_dict(config_dict.get('feature_matcher'))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert TrackerConfig to dictionary."""
        return {
            'min_track_length': self.min_track_length,
            'feature_matcher': self.feature_matcher.to_dict()
        }


@dataclass(frozen=True)
class Config:
    """Main configuration class."""
    close_loops: StitchConfig = field(default_factory=StitchConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)

    @classmethod
    def from_dict(cls, config_dict: Optional[Dict[str, Any]]) -> 'Config':
        """Create Config from dictionary."""
        config_dict = dict(config_dict or {})
        _check_keys('top-level', config_dict, ['close_loops', 'tracker'])
        return cls(
            close_loops=StitchConfig.from_dict(config_dict.get('close_loops')),
            tracker=TrackerConfig.from_dict(config_dict.get('tracker'))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert Config to dictionary."""
        return {
            'close_loops': self.close_loops.to_dict(),
            'tracker': self.tracker.to_dict()
        }


def check_configuration(config_dict: Optional[Dict[str, Any]]) -> bool:
    """
    Check a ``close_loops`` configuration block without raising.

    Args:
        config_dict: Mapping as accepted by :meth:`StitchConfig.from_dict`.

    Returns:
        False if the nested matcher block is invalid, the match threshold
        lies outside [-1, 1], or any other option is rejected.
    """
    try:
        StitchConfig.from_dict(config_dict)
    except ConfigurationError as e:
        logger.debug(f"Rejected close_loops configuration: {e}")
        return False
    return True


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file. If None, uses config/default.yaml.

    Returns:
        Config object with all settings.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    config_path = Path(config_path)

    if not config_path.exists():
        logger.warning(f"Config file {config_path} not found. Using defaults.")
        return Config()

    with open(config_path, 'r') as f:
        config_dict = yaml.safe_load(f)

    return Config.from_dict(config_dict)


def save_config(config: Config, path: str):
    """
    Save configuration to YAML file.

    Args:
        config: Config object to save.
        path: Path where to save the config.
    """
    config_dict = config.to_dict()

    with open(path, 'w') as f:
        yaml.dump(config_dict, f, default_flow_style=False, indent=2)
