# pattern_engine/patterns/heuristics.py

from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple
import logging

from ..core.errors import HeuristicFailure
from ..core.instrumentation import Instrumentation, NULL_INSTRUMENTATION
from ..core.tree import NodeKind, TreeNode

logger = logging.getLogger(__name__)

HeuristicCheck = Callable[[TreeNode], bool]


@dataclass(frozen=True)
class Heuristic:
    """Weighted, non-structural evidence for a pattern"""
    description: str
    weight: float
    check: HeuristicCheck = field(compare=False, repr=False)

    def __post_init__(self):
        if not 0.0 < self.weight <= 1.0:
            raise ValueError(f"Heuristic weight must be in (0, 1], got {self.weight} for '{self.description}'")


class HeuristicEvaluator:
    """Runs heuristics against a node; a raising heuristic counts as not fired"""

    def __init__(self, instrumentation: Optional[Instrumentation] = None):
        self.instrumentation = instrumentation or NULL_INSTRUMENTATION

    def evaluate(self, node: TreeNode,
                 heuristics: Iterable[Heuristic]) -> List[Tuple[Heuristic, bool]]:
        return [(heuristic, self.fires(node, heuristic)) for heuristic in heuristics]

    def fires(self, node: TreeNode, heuristic: Heuristic) -> bool:
        try:
            return bool(heuristic.check(node))
        except Exception as e:
            failure = HeuristicFailure(heuristic.description, e)
            logger.warning(f"{failure} on {node.kind.name} node at {node.location}")
            self.instrumentation.count("heuristics.failed")
            return False


def evaluate(node: TreeNode, heuristics: Iterable[Heuristic]) -> List[Tuple[Heuristic, bool]]:
    return HeuristicEvaluator().evaluate(node, heuristics)


# Building blocks for heuristic predicates

def name_contains(node: TreeNode, *fragments: str, ignore_case: bool = False) -> bool:
    if node.name is None:
        return False
    name = node.name.lower() if ignore_case else node.name
    for fragment in fragments:
        if (fragment.lower() if ignore_case else fragment) in name:
            return True
    return False


def fields_of(node: TreeNode) -> List[TreeNode]:
    """FIELD nodes declared on a type, or held in a field/var list"""
    if node.kind in (NodeKind.REC_LIST, NodeKind.VAR_SECTION):
        return node.children_of_kind(NodeKind.FIELD)
    if node.kind == NodeKind.TYPE_DECL:
        record = node.child_of_kind(NodeKind.REC_LIST)
        return record.children_of_kind(NodeKind.FIELD) if record is not None else []
    return []


def methods_of(node: TreeNode) -> List[TreeNode]:
    if node.kind != NodeKind.TYPE_DECL:
        return []
    body = node.child_of_kind(NodeKind.STMT_LIST)
    return body.children_of_kind(NodeKind.PROC_DEF) if body is not None else []


def body_of(node: TreeNode) -> List[TreeNode]:
    """Statements directly inside a procedure body"""
    if node.kind != NodeKind.PROC_DEF:
        return []
    body = node.child_of_kind(NodeKind.STMT_LIST)
    return list(body.children) if body is not None else []
