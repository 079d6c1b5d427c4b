# pattern_engine/patterns/matcher.py

from typing import AbstractSet, Optional
import logging

from ..core.detection_config import DEFAULT_TRANSPARENT_KINDS
from ..core.tree import NodeKind, TreeNode
from .signature import Signature, get_property_extractor

logger = logging.getLogger(__name__)


class SignatureMatcher:
    """Decides whether a node satisfies a Signature.

    Matching is all-or-nothing: every check fails fast and there is no
    partial credit here. Partial credit across several signatures is the
    scorer's business.
    """

    def __init__(self, transparent_kinds: AbstractSet[NodeKind] = DEFAULT_TRANSPARENT_KINDS):
        self.transparent_kinds = frozenset(transparent_kinds)

    def matches(self, node: Optional[TreeNode], signature: Signature) -> bool:
        # A missing node vacuously satisfies an optional signature
        if node is None:
            return signature.optional

        if node.kind != signature.kind:
            return False

        if not self._matches_name(node, signature):
            return False

        if not self._matches_properties(node, signature):
            return False

        if signature.is_leaf:
            return True

        return all(self._matches_child(node, child_sig) for child_sig in signature.children)

    def _matches_name(self, node: TreeNode, signature: Signature) -> bool:
        pattern = signature.compiled_pattern
        if pattern is None:
            return True
        # Closed for nodes that cannot carry a name
        if not node.is_name_bearing or node.name is None:
            return False
        return pattern.search(node.name) is not None

    def _matches_properties(self, node: TreeNode, signature: Signature) -> bool:
        for name, expected in signature.required_properties.items():
            extractor = get_property_extractor(name)
            if extractor is not None:
                actual = extractor(node)
            else:
                actual = node.prop(name)
                if actual is None:
                    logger.debug(f"Property '{name}' has no extractor and is absent on {node.kind.name} node")
                    return False
            if actual != expected:
                return False
        return True

    def _matches_child(self, node: TreeNode, child_sig: Signature) -> bool:
        for child in node.children:
            if self.matches(child, child_sig):
                return True

        # One extra level for statement lists, field lists and bodies
        if node.kind in self.transparent_kinds:
            for child in node.children:
                for grandchild in child.children:
                    if self.matches(grandchild, child_sig):
                        return True

        return child_sig.optional


_DEFAULT_MATCHER = SignatureMatcher()


def matches(node: Optional[TreeNode], signature: Signature) -> bool:
    """Match using the default transparent kinds"""
    return _DEFAULT_MATCHER.matches(node, signature)
