# pattern_engine/__init__.py

# Initialize the pattern_engine package
from .core import (
    NodeKind,
    TreeNode,
    PatternDetectionConfig,
    Instrumentation,
    ServiceRegistry,
)
from .patterns import (
    Signature,
    Heuristic,
    PatternDefinition,
    Match,
    PatternRegistry,
    PatternDetector,
    PatternTransformer,
    DetectionReport,
)

__version__ = "1.0.0"
