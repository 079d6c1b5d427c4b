# pattern_engine/patterns/pattern_transformer.py

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Union
import logging

from ..core.errors import ParseFailure, TemplateNotFound, TransformError, WriteFailure
from ..core.instrumentation import Instrumentation
from ..core.tree import TreeNode
from ..utils.language_processors import LanguageProcessor, PythonProcessor
from .pattern import Match
from .pattern_detector import PatternDetector
from .templates import default_templates, extract_bindings, needs_module_scope, source_splices, substitute_tree

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class TransformResult:
    """Outcome of applying a template"""
    success: bool
    tree: Optional[TreeNode] = None
    error: Optional[str] = None


class PatternTransformer:
    """Applies registered templates to matched nodes and files.

    The input tree is never modified: every application builds a new tree,
    so applying the same template to the same match twice gives equal
    results.
    """

    def __init__(self, detector: Optional[PatternDetector] = None,
                 templates: Optional[Mapping[str, TreeNode]] = None,
                 processor: Optional[LanguageProcessor] = None,
                 instrumentation: Optional[Instrumentation] = None):
        self.detector = detector or PatternDetector(instrumentation=instrumentation)
        self.instrumentation = instrumentation or self.detector.instrumentation
        self.processor = processor or PythonProcessor()
        if templates is None:
            templates = default_templates(self.processor)
        self.templates: Dict[str, TreeNode] = dict(templates)

    def register_template(self, name: str, template: TreeNode):
        if name in self.templates:
            logger.warning(f"Replacing template for pattern: {name}")
        self.templates[name] = template

    def apply_pattern(self, node: TreeNode, template_name: str) -> TreeNode:
        """Transformed tree for a node, or the node itself if the template is unknown"""
        return self._instantiate(node, template_name, self.processor).tree

    def apply_template(self, match: Match, template_name: str,
                       processor: Optional[LanguageProcessor] = None) -> TransformResult:
        return self._instantiate(match.node, template_name, processor or self.processor)

    def _instantiate(self, source: TreeNode, template_name: str,
                     processor: Optional[LanguageProcessor]) -> TransformResult:
        template = self.templates.get(template_name)
        if template is None:
            error = TemplateNotFound(template_name)
            logger.error(f"Error applying pattern: {str(error)}")
            self.instrumentation.count("templates.missing")
            return TransformResult(success=False, tree=source, error=str(error))

        bindings = extract_bindings(source)
        try:
            tree = processor.instantiate_template(template, bindings, source) if processor else None
            if tree is None:
                tree = substitute_tree(template, bindings, source_splices(source))
        except (ParseFailure, TransformError) as e:
            logger.error(f"Error applying pattern {template_name} to {source.name}: {str(e)}")
            return TransformResult(success=False, tree=source, error=str(e))

        self.instrumentation.count("templates.applied")
        self.instrumentation.event("template.applied", pattern=template_name, target=source.name)
        return TransformResult(success=True, tree=tree)

    def apply_to_file(self, path: PathLike, pattern_name: str,
                      output_path: Optional[PathLike] = None) -> bool:
        """Rewrite the best match of a pattern in a file.

        The output goes to `output_path`, or back to `path` when omitted.
        Returns False when the file cannot be parsed, holds no match, the
        template is unknown or the output cannot be written.
        """
        processor = self.detector.processors.get_processor(path)
        try:
            tree = self.detector.parse_file(path)
        except ParseFailure as e:
            logger.error(f"Error transforming file: {str(e)}")
            self.instrumentation.count("files.failed")
            return False

        matches = [m for m in self.detector.detect(tree, file_path=str(path))
                   if m.pattern_name == pattern_name]
        if not matches:
            logger.info(f"No {pattern_name} pattern found in {path}")
            return False

        template = self.templates.get(pattern_name)
        if template is not None and needs_module_scope(template):
            top_level = {id(child) for child in tree.children}
            matches = [m for m in matches if id(m.node) in top_level]
            if not matches:
                logger.info(f"No module-level {pattern_name} pattern found in {path}")
                return False

        match = matches[0]
        result = self.apply_template(match, pattern_name, processor)
        if not result.success:
            return False

        try:
            text = processor.render_replacement(tree, match.node, result.tree)
        except TransformError as e:
            logger.error(f"Error rendering transformed code for {path}: {str(e)}")
            return False

        target = Path(output_path) if output_path is not None else Path(path)
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            failure = WriteFailure(str(target), e)
            logger.error(str(failure))
            self.instrumentation.count("writes.failed")
            return False

        logger.info(f"Applied {pattern_name} template to {match.node.name} in {path}, wrote {target}")
        return True
