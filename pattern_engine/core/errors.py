# pattern_engine/core/errors.py

from typing import Optional


class PatternEngineError(Exception):
    """Base error for the engine, tagged with the pattern it concerns"""

    def __init__(self, message: str, pattern: Optional[str] = None, context: str = ""):
        self.pattern = pattern
        self.context = context
        prefix = f"[{pattern}] " if pattern else ""
        super().__init__(f"{prefix}{message}")


class ParseFailure(PatternEngineError):
    """The language processor could not produce a tree for a file"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse {path}: {reason}", context="parse")


class HeuristicFailure(PatternEngineError):
    """A heuristic predicate raised instead of answering"""

    def __init__(self, description: str, cause: BaseException):
        self.description = description
        self.cause = cause
        super().__init__(f"Heuristic '{description}' failed: {cause}", context="heuristic")


class TemplateNotFound(PatternEngineError):
    def __init__(self, template_name: str):
        self.template_name = template_name
        super().__init__("No template registered for pattern", pattern=template_name,
                         context="transform")


class WriteFailure(PatternEngineError):
    def __init__(self, path: str, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write output file {path}: {cause}", context="write")


class TransformError(PatternEngineError):
    """A template could not be applied to the matched node"""


class RegistryFrozenError(PatternEngineError):
    """Registration attempted after the registry was published to readers"""


class DuplicatePatternError(PatternEngineError):
    pass


class ConfigurationError(PatternEngineError):
    pass
