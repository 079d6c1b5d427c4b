# pattern_engine/patterns/scorer.py

from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.detection_config import PatternDetectionConfig
from ..core.tree import TreeNode
from .heuristics import Heuristic, HeuristicEvaluator
from .matcher import SignatureMatcher
from .pattern import PatternDefinition
from .signature import Signature

# Mass given to the structural evidence when a definition declares signatures
STRUCTURAL_WEIGHT = 0.5


@dataclass(frozen=True)
class ScoreResult:
    """Confidence together with the evidence behind it"""
    confidence: float
    matched_signatures: Tuple[Signature, ...]
    fired_heuristics: Tuple[Heuristic, ...]
    max_mass: float

    @property
    def decidable(self) -> bool:
        return self.max_mass > 0


class ConfidenceScorer:
    """Combines signature match ratio and heuristic weights into [0, 1].

    confidence = (0.5 * matched/total + sum(fired weights))
                 / (0.5 + sum(all weights))

    Either side may be empty. A definition with neither (or with both
    switched off by configuration) has no mass and scores 0.
    """

    def __init__(self, matcher: Optional[SignatureMatcher] = None,
                 evaluator: Optional[HeuristicEvaluator] = None,
                 config: Optional[PatternDetectionConfig] = None):
        self.config = config or PatternDetectionConfig()
        self.matcher = matcher or SignatureMatcher(self.config.transparent_kinds)
        self.evaluator = evaluator or HeuristicEvaluator()

    def score(self, node: TreeNode, definition: PatternDefinition) -> float:
        return self.evaluate(node, definition).confidence

    def evaluate(self, node: TreeNode, definition: PatternDefinition) -> ScoreResult:
        confidence = 0.0
        max_mass = 0.0

        matched: Tuple[Signature, ...] = ()
        if self.config.enable_ast_matching and definition.signatures:
            matched = tuple(sig for sig in definition.signatures if self.matcher.matches(node, sig))
            confidence += STRUCTURAL_WEIGHT * (len(matched) / len(definition.signatures))
            max_mass += STRUCTURAL_WEIGHT

        fired: Tuple[Heuristic, ...] = ()
        if self.config.enable_heuristics and definition.heuristics:
            results = self.evaluator.evaluate(node, definition.heuristics)
            fired = tuple(heuristic for heuristic, ok in results if ok)
            max_mass += sum(heuristic.weight for heuristic in definition.heuristics)
            confidence += sum(heuristic.weight for heuristic in fired)

        if max_mass > 0:
            confidence /= max_mass
        else:
            confidence = 0.0

        # Guard against float drift past the ends of the range
        confidence = min(1.0, max(0.0, confidence))
        return ScoreResult(confidence, matched, fired, max_mass)


def score(node: TreeNode, definition: PatternDefinition) -> float:
    return ConfidenceScorer().score(node, definition)
