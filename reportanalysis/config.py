"""Configuration management for reportanalysis.

Centralizes profile-based configuration loading and validation for the batch
tool. The normalizer itself takes no configuration beyond a ScoringPolicy.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from reportanalysis.derive import DEFAULT_POLICY, ScoringPolicy
from reportanalysis.exceptions import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ProfileConfig:
    """Profile configuration loaded from YAML file.

    Contains input/output paths and optional setting overrides.
    """

    name: str
    input_path: Path | None = None
    output_path: Path | None = None

    # Processing configuration
    workers: int | None = None
    log_level: str | None = None

    # Scoring overrides (defaults reproduce the built-in heuristic)
    score_floor: int | None = None
    neutral_score: int | None = None

    @classmethod
    def from_file(cls, profile_path: Path) -> "ProfileConfig":
        """Load profile from YAML or JSON file."""
        if not profile_path.exists():
            raise FileNotFoundError(f"Profile not found: {profile_path}")

        content = profile_path.read_text(encoding="utf-8")

        try:
            if profile_path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            else:
                data = json.loads(content)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Invalid profile file {profile_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Profile {profile_path} must contain a mapping")

        def get_path(key: str) -> Path | None:
            val = data.get(key)
            return Path(val) if val else None

        return cls(
            name=data.get("name", profile_path.stem),
            input_path=get_path("input_path"),
            output_path=get_path("output_path"),
            workers=data.get("workers"),
            log_level=data.get("log_level"),
            score_floor=data.get("score_floor"),
            neutral_score=data.get("neutral_score"),
        )

    @classmethod
    def list_profiles(cls, profiles_dir: Path = Path("profiles")) -> list[str]:
        """List available profile names (excludes templates starting with _)."""
        if not profiles_dir.exists():
            return []
        profiles = []
        for ext in ("*.yaml", "*.yml", "*.json"):
            for f in profiles_dir.glob(ext):
                if not f.name.startswith("_"):
                    profiles.append(f.stem)
        return sorted(set(profiles))


@dataclass
class Config:
    """Validated configuration for a batch normalization run."""

    # Path Configuration
    input_path: Path
    output_path: Path

    # Processing Configuration
    max_workers: int
    log_level: str

    # Scoring Configuration
    score_floor: int = DEFAULT_POLICY.floor
    neutral_score: int = DEFAULT_POLICY.neutral

    @property
    def policy(self) -> ScoringPolicy:
        return ScoringPolicy(floor=self.score_floor, neutral=self.neutral_score)

    @classmethod
    def from_profile(cls, profile: ProfileConfig) -> "Config":
        """Load configuration from a profile.

        Args:
            profile: ProfileConfig loaded from YAML/JSON file.

        Returns:
            Config: Validated configuration object.

        Raises:
            ConfigurationError: If required fields are missing or values are invalid.
        """
        if not profile.input_path:
            raise ConfigurationError(
                f"Profile '{profile.name}' missing required field: input_path"
            )
        if not profile.output_path:
            raise ConfigurationError(
                f"Profile '{profile.name}' missing required field: output_path"
            )
        return cls.build(
            input_path=profile.input_path,
            output_path=profile.output_path,
            workers=profile.workers,
            log_level=profile.log_level,
            score_floor=profile.score_floor,
            neutral_score=profile.neutral_score,
        )

    @classmethod
    def build(
        cls,
        input_path: Path,
        output_path: Path,
        workers: int | None = None,
        log_level: str | None = None,
        score_floor: int | None = None,
        neutral_score: int | None = None,
    ) -> "Config":
        """Apply environment fallbacks and validate explicit settings."""
        # Workers with priority: explicit > env > default (clamped to CPU count)
        if workers is not None:
            try:
                max_workers_raw = int(workers)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid workers value '{workers}', must be an integer") from e
        else:
            try:
                max_workers_raw = int(os.getenv("MAX_WORKERS", "4"))
            except ValueError:
                max_workers_raw = 4
        max_cpu = os.cpu_count() or 8
        max_workers = max(1, min(max_workers_raw, max_cpu))

        level = (log_level or os.getenv("LOG_LEVEL") or "INFO").upper()
        if level not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level '{level}', must be one of {list(LOG_LEVELS)}")

        floor = DEFAULT_POLICY.floor if score_floor is None else score_floor
        neutral = DEFAULT_POLICY.neutral if neutral_score is None else neutral_score
        try:
            ScoringPolicy(floor=floor, neutral=neutral)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid scoring configuration: {e}") from e

        return cls(
            input_path=Path(input_path),
            output_path=Path(output_path),
            max_workers=max_workers,
            log_level=level,
            score_floor=floor,
            neutral_score=neutral,
        )

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)
