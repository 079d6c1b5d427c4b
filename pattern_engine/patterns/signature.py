# pattern_engine/patterns/signature.py

from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Optional, Tuple
import re

from ..core.tree import NodeKind, TreeNode

PropertyExtractor = Callable[[TreeNode], Optional[str]]


@dataclass(frozen=True)
class Signature:
    """Declarative shape a node (and its subtree) has to satisfy.

    A signature without children constrains kind, name and properties only.
    Builder methods return new signatures, so partial signatures can be
    shared between pattern definitions.

    example:
    >>> Signature(NodeKind.TYPE_DECL).with_child(Signature(NodeKind.FIELD, r"[Ii]nstance"))
    """
    kind: NodeKind
    name_pattern: Optional[str] = None
    required_properties: Dict[str, str] = field(default_factory=dict, hash=False)
    children: Tuple['Signature', ...] = ()
    optional: bool = False

    def __post_init__(self):
        if self.name_pattern is not None:
            # Fail at definition time rather than in the middle of a scan
            re.compile(self.name_pattern)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def compiled_pattern(self) -> Optional['re.Pattern']:
        if self.name_pattern is None:
            return None
        return _compile(self.name_pattern)

    def with_child(self, child: 'Signature') -> 'Signature':
        return replace(self, children=self.children + (child,))

    def with_children(self, *children: 'Signature') -> 'Signature':
        return replace(self, children=self.children + tuple(children))

    def with_property(self, name: str, value: str) -> 'Signature':
        properties = dict(self.required_properties)
        properties[name] = value
        return replace(self, required_properties=properties)

    def as_optional(self) -> 'Signature':
        return replace(self, optional=True)

    def describe(self) -> str:
        parts = [self.kind.name]
        if self.name_pattern:
            parts.append(f"/{self.name_pattern}/")
        for key, value in sorted(self.required_properties.items()):
            parts.append(f"{key}={value}")
        if self.optional:
            parts.append("?")
        text = " ".join(parts)
        if self.children:
            text += "(" + ", ".join(child.describe() for child in self.children) + ")"
        return text


_PATTERN_CACHE: Dict[str, 're.Pattern'] = {}


def _compile(pattern: str) -> 're.Pattern':
    compiled = _PATTERN_CACHE.get(pattern)
    if compiled is None:
        compiled = re.compile(pattern)
        _PATTERN_CACHE[pattern] = compiled
    return compiled


# Property extractors

def _bool_text(value: bool) -> str:
    return "true" if value else "false"


def _private(node: TreeNode) -> Optional[str]:
    return _bool_text(node.visible is False)


def _public(node: TreeNode) -> Optional[str]:
    return _bool_text(node.visible is True)


def _type(node: TreeNode) -> Optional[str]:
    return node.type_text or ""


def _static(node: TreeNode) -> Optional[str]:
    return node.prop("static", "false")


def _arity(node: TreeNode) -> Optional[str]:
    params = node.child_of_kind(NodeKind.PARAMS)
    if params is None:
        return "0"
    return str(len(params.children_of_kind(NodeKind.FIELD)))


def _children(node: TreeNode) -> Optional[str]:
    return str(len(node.children))


_PROPERTY_EXTRACTORS: Dict[str, PropertyExtractor] = {
    "private": _private,
    "public": _public,
    "type": _type,
    "static": _static,
    "arity": _arity,
    "children": _children,
}


def register_property_extractor(name: str, extractor: PropertyExtractor):
    """Add or replace the extractor used for a declared property name.

    Must be called during setup, before detection starts.
    """
    _PROPERTY_EXTRACTORS[name] = extractor


def get_property_extractor(name: str) -> Optional[PropertyExtractor]:
    return _PROPERTY_EXTRACTORS.get(name)


def known_properties() -> Tuple[str, ...]:
    return tuple(sorted(_PROPERTY_EXTRACTORS))
