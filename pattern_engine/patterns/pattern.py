# pattern_engine/patterns/pattern.py

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..core.tree import TreeNode
from .heuristics import Heuristic
from .signature import Signature


@dataclass(frozen=True)
class PatternDefinition:
    """Represents a design pattern the detector looks for"""
    name: str
    description: str
    signatures: Tuple[Signature, ...] = ()
    heuristics: Tuple[Heuristic, ...] = ()
    minimum_confidence: float = 0.6

    def __post_init__(self):
        if not self.name:
            raise ValueError("Pattern definitions need a name")
        if not 0.0 <= self.minimum_confidence <= 1.0:
            raise ValueError(f"minimum_confidence must be in [0, 1], got {self.minimum_confidence}")
        # Accept lists from callers but keep the definition immutable
        object.__setattr__(self, 'signatures', tuple(self.signatures))
        object.__setattr__(self, 'heuristics', tuple(self.heuristics))

    @property
    def is_decidable(self) -> bool:
        return bool(self.signatures or self.heuristics)


@dataclass(frozen=True)
class Match:
    """A (pattern, node) pair whose confidence cleared the pattern's threshold"""
    pattern_name: str
    node: TreeNode
    confidence: float
    matched_signatures: Tuple[Signature, ...] = ()
    matched_heuristics: Tuple[Heuristic, ...] = ()
    file_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        location = self.node.location
        return {
            'pattern': self.pattern_name,
            'confidence': round(self.confidence, 4),
            'node': {
                'kind': self.node.kind.value,
                'name': self.node.name,
                'line': location.line,
                'column': location.column,
            },
            'file': self.file_path or location.file,
            'matched_signatures': [sig.describe() for sig in self.matched_signatures],
            'matched_heuristics': [h.description for h in self.matched_heuristics],
        }
