# pattern_engine/patterns/pattern_analyzer.py

from collections import defaultdict
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Dict, List, Tuple
import json
import logging

import networkx as nx

from .pattern import Match

logger = logging.getLogger(__name__)


@dataclass
class DetectionReport:
    """Pattern usage across a project.

    Derived data only: it can always be rebuilt by scanning again. Partial
    reports (one per file) are folded together with `merge`.
    """
    pattern_counts: Dict[str, int] = field(default_factory=dict)
    file_patterns: Dict[str, List[Match]] = field(default_factory=dict)
    total_detections: int = 0
    total_confidence: float = 0.0
    potential_refactorings: int = 0
    files_scanned: int = 0
    failed_files: List[str] = field(default_factory=list)

    @property
    def avg_confidence(self) -> float:
        if self.total_detections == 0:
            return 0.0
        return self.total_confidence / self.total_detections

    def add_file(self, file_path: str, matches: List[Match], refactorings: int = 0):
        """Record the outcome of one successfully parsed file"""
        self.files_scanned += 1
        self.potential_refactorings += refactorings
        if not matches:
            return

        self.file_patterns.setdefault(file_path, []).extend(matches)
        self.total_detections += len(matches)
        for match in matches:
            self.pattern_counts[match.pattern_name] = self.pattern_counts.get(match.pattern_name, 0) + 1
            self.total_confidence += match.confidence

    def add_failure(self, file_path: str):
        self.failed_files.append(file_path)

    def merge(self, other: 'DetectionReport') -> 'DetectionReport':
        """Fold another report into this one"""
        for pattern, count in other.pattern_counts.items():
            self.pattern_counts[pattern] = self.pattern_counts.get(pattern, 0) + count
        for file_path, matches in other.file_patterns.items():
            self.file_patterns.setdefault(file_path, []).extend(matches)
        self.total_detections += other.total_detections
        self.total_confidence += other.total_confidence
        self.potential_refactorings += other.potential_refactorings
        self.files_scanned += other.files_scanned
        self.failed_files.extend(other.failed_files)
        return self

    def pattern_distribution(self) -> Dict[str, float]:
        """Share of all detections per pattern"""
        if self.total_detections == 0:
            return {}
        return {pattern: count / self.total_detections for pattern, count in self.pattern_counts.items()}

    def top_patterns(self, limit: int = 5) -> List[Tuple[str, int]]:
        ranked = sorted(self.pattern_counts.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:limit]

    def files_with_most_patterns(self, limit: int = 5) -> List[Tuple[str, int]]:
        ranked = sorted(((path, len(matches)) for path, matches in self.file_patterns.items()),
                        key=lambda item: (-item[1], item[0]))
        return ranked[:limit]

    def pattern_quality_metrics(self) -> Dict[str, float]:
        """Average confidence per pattern"""
        totals: Dict[str, float] = defaultdict(float)
        counts: Dict[str, int] = defaultdict(int)
        for matches in self.file_patterns.values():
            for match in matches:
                totals[match.pattern_name] += match.confidence
                counts[match.pattern_name] += 1
        return {pattern: totals[pattern] / counts[pattern] for pattern in counts}

    def relationship_graph(self) -> nx.Graph:
        """Patterns as nodes, edges between patterns found in the same file.

        Edge weight is the number of files the two patterns share.
        """
        graph = nx.Graph()
        graph.add_nodes_from(self.pattern_counts)
        for matches in self.file_patterns.values():
            names = sorted({match.pattern_name for match in matches})
            for first, second in combinations(names, 2):
                if graph.has_edge(first, second):
                    graph[first][second]['weight'] += 1
                else:
                    graph.add_edge(first, second, weight=1)
        return graph

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of pattern usage"""
        graph = self.relationship_graph()
        return {
            'total_patterns': self.total_detections,
            'pattern_distribution': dict(self.pattern_counts),
            'average_confidence': self.avg_confidence,
            'potential_refactorings': self.potential_refactorings,
            'files_scanned': self.files_scanned,
            'files_failed': len(self.failed_files),
            'relationship_density': nx.density(graph) if graph.number_of_nodes() > 1 else 0.0,
        }

    def get_pattern_suggestions(self, low_confidence: float = 0.75) -> List[str]:
        """Generate improvement suggestions based on the report"""
        suggestions = []

        for pattern, quality in sorted(self.pattern_quality_metrics().items()):
            if quality < low_confidence:
                suggestions.append(
                    f"Pattern '{pattern}' is only partially recognizable (average confidence {quality:.2f}). "
                    "Consider completing the implementations."
                )

        if self.potential_refactorings:
            suggestions.append(
                f"{self.potential_refactorings} function(s) dispatch on conditions directly. "
                "Consider a Factory or Strategy to replace the branching."
            )

        if self.failed_files:
            suggestions.append(f"{len(self.failed_files)} file(s) could not be parsed and were skipped.")

        return suggestions

    def to_dict(self) -> Dict[str, Any]:
        return {
            'summary': self.get_summary(),
            'patterns': {
                pattern: {
                    'count': self.pattern_counts[pattern],
                    'average_confidence': round(quality, 4),
                }
                for pattern, quality in sorted(self.pattern_quality_metrics().items())
            },
            'files': {
                path: [match.to_dict() for match in matches]
                for path, matches in sorted(self.file_patterns.items())
            },
            'failed_files': sorted(self.failed_files),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
