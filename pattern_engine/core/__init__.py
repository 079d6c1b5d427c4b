# pattern_engine/core/__init__.py

# Initialize the core subpackage
from .tree import (
    NodeKind,
    SourceLocation,
    TreeNode,
    NAME_BEARING_KINDS,
    format_tree,
    node,
    replace_node,
    walk,
    walk_with_depth,
)
from .errors import (
    PatternEngineError,
    ParseFailure,
    HeuristicFailure,
    TemplateNotFound,
    WriteFailure,
    TransformError,
    RegistryFrozenError,
    DuplicatePatternError,
    ConfigurationError,
)
from .detection_config import PatternDetectionConfig
from .instrumentation import Instrumentation, MetricsCollector, Monitor
from .service_registry import ServiceRegistry
from .slots import slot, substitute_slots
