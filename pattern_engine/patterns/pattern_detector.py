# pattern_engine/patterns/pattern_detector.py

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Union
import logging
import threading

from ..core.detection_config import PatternDetectionConfig
from ..core.errors import ParseFailure
from ..core.instrumentation import Instrumentation, NULL_INSTRUMENTATION
from ..core.service_registry import ServiceRegistry
from ..core.tree import CONDITIONAL_KINDS, NodeKind, TreeNode, walk, walk_with_depth
from ..utils.language_processors import LanguageProcessorRegistry
from .catalog import default_definitions
from .heuristics import HeuristicEvaluator
from .matcher import SignatureMatcher
from .pattern import Match, PatternDefinition
from .pattern_analyzer import DetectionReport
from .pattern_registry import PatternRegistry
from .scorer import ConfidenceScorer

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PatternDetector:
    """Finds pattern instances in parsed trees, files and whole projects.

    Every node of a tree is tested against every registered definition in
    pre-order. Results come back sorted by descending confidence, ties
    keeping discovery order, so the same tree always yields the same list.
    """

    def __init__(self, registry: Optional[PatternRegistry] = None,
                 processors: Optional[LanguageProcessorRegistry] = None,
                 config: Optional[PatternDetectionConfig] = None,
                 instrumentation: Optional[Instrumentation] = None,
                 services: Optional[ServiceRegistry] = None):
        self.config = config or PatternDetectionConfig()
        self.instrumentation = instrumentation or NULL_INSTRUMENTATION
        self.services = services or ServiceRegistry(self.instrumentation)
        self.registry = registry if registry is not None else PatternRegistry(default_definitions())
        self.processors = processors or self.services.get_or_create("language_processors",
                                                                    LanguageProcessorRegistry)
        self.scorer = ConfidenceScorer(
            matcher=SignatureMatcher(self.config.transparent_kinds),
            evaluator=HeuristicEvaluator(self.instrumentation),
            config=self.config,
        )

    def register_definition(self, definition: PatternDefinition, replace: bool = False) -> 'PatternDetector':
        self.registry.register(definition, replace=replace)
        return self

    def detect_pattern(self, node: TreeNode, definition: PatternDefinition,
                       file_path: Optional[str] = None) -> Optional[Match]:
        """Score one node against one definition"""
        result = self.scorer.evaluate(node, definition)
        if not result.decidable:
            return None
        if result.confidence < self.config.threshold_for(definition.minimum_confidence):
            return None
        return Match(
            pattern_name=definition.name,
            node=node,
            confidence=result.confidence,
            matched_signatures=result.matched_signatures,
            matched_heuristics=result.fired_heuristics,
            file_path=file_path,
        )

    def detect_node(self, node: TreeNode, file_path: Optional[str] = None) -> List[Match]:
        """All definitions matched by a single node, without descending"""
        matches = []
        for definition in self.registry:
            match = self.detect_pattern(node, definition, file_path)
            if match is not None:
                matches.append(match)
        return sorted(matches, key=lambda m: -m.confidence)

    def detect(self, tree: TreeNode, file_path: Optional[str] = None) -> List[Match]:
        """Detect all registered patterns in a tree"""
        definitions = list(self.registry)
        matches: List[Match] = []

        for current, _ in walk_with_depth(tree, self.config.max_depth):
            for definition in definitions:
                match = self.detect_pattern(current, definition, file_path)
                if match is None:
                    continue
                logger.debug(f"Found {definition.name} pattern at {current.location} "
                             f"(confidence {match.confidence:.2f})")
                self.instrumentation.count("matches.found")
                self.instrumentation.count(f"matches.{definition.name}")
                matches.append(match)

        # sorted() is stable, so equal confidences keep pre-order
        return sorted(matches, key=lambda m: -m.confidence)

    def parse_file(self, path: PathLike) -> TreeNode:
        """Parse a file; any processor error surfaces as ParseFailure"""
        try:
            return self.processors.parse_file(path)
        except ParseFailure:
            raise
        except Exception as e:
            raise ParseFailure(str(path), f"{type(e).__name__}: {str(e)}") from e

    def detect_in_file(self, path: PathLike) -> List[Match]:
        """Detect patterns in one file; a file that cannot be parsed yields no matches"""
        try:
            tree = self.parse_file(path)
        except ParseFailure as e:
            logger.error(f"Error detecting patterns: {str(e)}")
            self.instrumentation.count("files.failed")
            return []
        return self.detect(tree, file_path=str(path))

    def find_refactoring_candidates(self, tree: TreeNode) -> List[TreeNode]:
        """Procedures whose body directly dispatches on a condition"""
        candidates = []
        for current in walk(tree):
            if current.kind != NodeKind.PROC_DEF:
                continue
            body = current.child_of_kind(NodeKind.STMT_LIST)
            if body is not None and any(stmt.kind in CONDITIONAL_KINDS for stmt in body.children):
                candidates.append(current)
        return candidates

    def collect_files(self, project_path: PathLike) -> List[Path]:
        """Source files under a project root, in a stable order"""
        root = Path(project_path)
        if root.is_file():
            return [root]

        files = set()
        for pattern in self.config.file_patterns:
            for path in root.rglob(pattern):
                relative = path.relative_to(root).parts[:-1]
                if any(part.startswith(".") or part in self.config.exclude_dirs for part in relative):
                    continue
                if path.is_file():
                    files.add(path)
        return sorted(files)

    def analyze_file(self, path: PathLike, label: Optional[str] = None) -> DetectionReport:
        """Partial report for a single file"""
        label = label or str(path)
        report = DetectionReport()
        try:
            tree = self.parse_file(path)
        except ParseFailure as e:
            logger.error(f"Skipping file: {str(e)}")
            self.instrumentation.count("files.failed")
            report.add_failure(label)
            return report

        try:
            matches = self.detect(tree, file_path=label)
            refactorings = len(self.find_refactoring_candidates(tree))
        except Exception as e:
            # One broken file never aborts a project scan
            logger.error(f"Error analyzing {label}: {str(e)}")
            self.instrumentation.count("files.failed")
            report.add_failure(label)
            return report

        self.instrumentation.count("files.scanned")
        report.add_file(label, matches, refactorings)
        logger.debug(f"Analyzed {label}: {len(matches)} matches, {refactorings} refactoring candidates")
        return report

    def analyze_project(self, project_path: PathLike,
                        stop_event: Optional[threading.Event] = None) -> DetectionReport:
        """Scan every source file under a project root.

        Files are processed concurrently, each producing its own partial
        report; the partials are merged on the calling thread. Setting
        `stop_event` stops scheduling further files.
        """
        root = Path(project_path)
        files = self.collect_files(root)

        # Definitions are read concurrently from here on
        self.registry.freeze()
        self.services.freeze()

        logger.info(f"Analyzing {len(files)} files in {root}")

        def scan(path: Path) -> Optional[DetectionReport]:
            if stop_event is not None and stop_event.is_set():
                return None
            label = path.name if root.is_file() else path.relative_to(root).as_posix()
            return self.analyze_file(path, label)

        report = DetectionReport()
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            partials = list(executor.map(scan, files))

        for partial in partials:
            if partial is not None:
                report.merge(partial)

        logger.info(f"Project analysis complete: {report.total_detections} patterns in "
                    f"{report.files_scanned} files ({len(report.failed_files)} failed)")
        self.instrumentation.event("project.analyzed", path=str(root),
                                   files=report.files_scanned, detections=report.total_detections)
        return report
