# pattern_engine/core/detection_config.py

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Tuple
import logging
import os

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationError
from .tree import NodeKind

logger = logging.getLogger(__name__)

ENV_PREFIX = "PATTERN_ENGINE_"

DEFAULT_TRANSPARENT_KINDS = frozenset({
    NodeKind.STMT_LIST,
    NodeKind.REC_LIST,
    NodeKind.PROC_DEF,
    NodeKind.TYPE_DECL,
})

DEFAULT_EXCLUDE_DIRS = ("venv", ".venv", "__pycache__", "build", "node_modules")


@dataclass(frozen=True)
class PatternDetectionConfig:
    """Configuration for pattern detection"""
    min_confidence: float = 0.0          # Floor applied on top of each definition's threshold
    enable_heuristics: bool = True
    enable_ast_matching: bool = True
    max_depth: Optional[int] = None      # None scans the whole tree
    transparent_kinds: FrozenSet[NodeKind] = DEFAULT_TRANSPARENT_KINDS
    max_workers: Optional[int] = None
    file_patterns: Tuple[str, ...] = ("*.py",)
    exclude_dirs: Tuple[str, ...] = field(default=DEFAULT_EXCLUDE_DIRS)

    def __post_init__(self):
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ConfigurationError(f"min_confidence must be within [0, 1], got {self.min_confidence}")
        if self.max_depth is not None and self.max_depth < 0:
            raise ConfigurationError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")

    def threshold_for(self, minimum_confidence: float) -> float:
        return max(minimum_confidence, self.min_confidence)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> 'PatternDetectionConfig':
        """Build a config from PATTERN_ENGINE_* environment variables (and a .env file)"""
        load_dotenv(env_file or find_dotenv(usecwd=True))

        kwargs = {}
        raw = _env("MIN_CONFIDENCE")
        if raw is not None:
            kwargs["min_confidence"] = _parse_float("MIN_CONFIDENCE", raw)
        raw = _env("ENABLE_HEURISTICS")
        if raw is not None:
            kwargs["enable_heuristics"] = _parse_bool("ENABLE_HEURISTICS", raw)
        raw = _env("ENABLE_AST_MATCHING")
        if raw is not None:
            kwargs["enable_ast_matching"] = _parse_bool("ENABLE_AST_MATCHING", raw)
        raw = _env("MAX_DEPTH")
        if raw is not None:
            kwargs["max_depth"] = _parse_int("MAX_DEPTH", raw)
        raw = _env("MAX_WORKERS")
        if raw is not None:
            kwargs["max_workers"] = _parse_int("MAX_WORKERS", raw)
        raw = _env("FILE_PATTERNS")
        if raw is not None:
            kwargs["file_patterns"] = tuple(p.strip() for p in raw.split(",") if p.strip())
        raw = _env("TRANSPARENT_KINDS")
        if raw is not None:
            kwargs["transparent_kinds"] = _parse_kinds(raw)

        config = cls(**kwargs)
        logger.debug(f"Loaded detection config from environment: {config}")
        return config


def _env(name: str) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_PREFIX}{name} is not a number: {raw!r}") from e


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_PREFIX}{name} is not an integer: {raw!r}") from e


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{ENV_PREFIX}{name} is not a boolean: {raw!r}")


def _parse_kinds(raw: str) -> FrozenSet[NodeKind]:
    kinds = set()
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            kinds.add(NodeKind[part.upper()])
        except KeyError as e:
            raise ConfigurationError(f"Unknown node kind in {ENV_PREFIX}TRANSPARENT_KINDS: {part!r}") from e
    return frozenset(kinds)
