# pattern_engine/patterns/__init__.py

# Initialize the patterns subpackage
from .signature import Signature, register_property_extractor
from .matcher import SignatureMatcher, matches
from .heuristics import Heuristic, HeuristicEvaluator
from .scorer import ConfidenceScorer, ScoreResult, score
from .pattern import PatternDefinition, Match
from .pattern_registry import PatternRegistry
from .catalog import default_definitions
from .pattern_analyzer import DetectionReport
from .pattern_detector import PatternDetector
from .templates import default_templates, extract_bindings, substitute_tree
from .pattern_transformer import PatternTransformer, TransformResult
