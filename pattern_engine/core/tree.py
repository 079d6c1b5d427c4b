# pattern_engine/core/tree.py

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


class NodeKind(Enum):
    """Closed set of generic node kinds produced by language processors"""
    MODULE = "module"
    TYPE_DECL = "type_decl"
    REC_LIST = "rec_list"            # Field declarations of a type
    FIELD = "field"
    VAR_SECTION = "var_section"      # Module level variable declarations
    PROC_DEF = "proc_def"
    PARAMS = "params"
    STMT_LIST = "stmt_list"
    IF_STMT = "if_stmt"
    CASE_STMT = "case_stmt"
    FOR_STMT = "for_stmt"
    WHILE_STMT = "while_stmt"
    RETURN_STMT = "return_stmt"
    RAISE_STMT = "raise_stmt"
    TRY_STMT = "try_stmt"
    WITH_STMT = "with_stmt"
    ASSIGN = "assign"
    CALL = "call"
    DOT_EXPR = "dot_expr"
    IDENT = "ident"
    LITERAL = "literal"
    COLLECTION = "collection"
    EXPR = "expr"
    IMPORT = "import"
    PLACEHOLDER = "placeholder"      # Template slot
    OTHER = "other"                  # Syntax the processor does not map


NAME_BEARING_KINDS = frozenset({
    NodeKind.MODULE,
    NodeKind.TYPE_DECL,
    NodeKind.FIELD,
    NodeKind.PROC_DEF,
    NodeKind.IDENT,
    NodeKind.CALL,
    NodeKind.DOT_EXPR,
    NodeKind.ASSIGN,
    NodeKind.IMPORT,
    NodeKind.PLACEHOLDER,
})

CONDITIONAL_KINDS = frozenset({NodeKind.IF_STMT, NodeKind.CASE_STMT})


@dataclass(frozen=True)
class SourceLocation:
    """Where a node came from"""
    file: Optional[str] = None
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.file or '<memory>'}:{self.line}:{self.column}"


@dataclass(frozen=True)
class TreeNode:
    """A read-only node of a parsed program.

    Trees are never mutated during detection. Rewrites go through
    `dataclasses.replace` or `replace_node`, which build new nodes and share
    untouched subtrees with the original.

    `origin` is an opaque handle on the language processor's native node. It
    is excluded from comparison so structurally equal trees compare equal no
    matter which processor (if any) built them.
    """
    kind: NodeKind
    children: Tuple['TreeNode', ...] = ()
    name: Optional[str] = None
    type_text: Optional[str] = None
    visible: Optional[bool] = None
    location: SourceLocation = field(default_factory=SourceLocation, compare=False)
    properties: Dict[str, str] = field(default_factory=dict, hash=False)
    origin: Any = field(default=None, compare=False, hash=False, repr=False)

    def __len__(self) -> int:
        return len(self.children)

    def __iter__(self) -> Iterator['TreeNode']:
        return iter(self.children)

    def __getitem__(self, index: int) -> 'TreeNode':
        return self.children[index]

    @property
    def is_name_bearing(self) -> bool:
        return self.kind in NAME_BEARING_KINDS

    def prop(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.properties.get(key, default)

    def child_of_kind(self, kind: NodeKind) -> Optional['TreeNode']:
        """First direct child of the given kind"""
        for child in self.children:
            if child.kind == kind:
                return child
        return None

    def children_of_kind(self, kind: NodeKind) -> List['TreeNode']:
        return [child for child in self.children if child.kind == kind]

    def with_children(self, children) -> 'TreeNode':
        return replace(self, children=tuple(children))


def node(kind: NodeKind, *children: TreeNode, name: Optional[str] = None,
         type_text: Optional[str] = None, visible: Optional[bool] = None,
         properties: Optional[Dict[str, str]] = None,
         location: Optional[SourceLocation] = None) -> TreeNode:
    """Convenience constructor used by templates and tests.

    example:
    >>> node(NodeKind.TYPE_DECL, node(NodeKind.IDENT, name='Config'), name='Config')
    """
    return TreeNode(
        kind=kind,
        children=tuple(children),
        name=name,
        type_text=type_text,
        visible=visible,
        properties=dict(properties or {}),
        location=location or SourceLocation(),
    )


def walk(root: Optional[TreeNode]) -> Iterator[TreeNode]:
    """Pre-order traversal, children visited left to right"""
    for current, _ in walk_with_depth(root):
        yield current


def walk_with_depth(root: Optional[TreeNode],
                    max_depth: Optional[int] = None) -> Iterator[Tuple[TreeNode, int]]:
    """Pre-order traversal yielding (node, depth); the root has depth 0.

    An explicit stack keeps deep trees clear of the recursion limit.
    """
    if root is None:
        return
    stack: List[Tuple[TreeNode, int]] = [(root, 0)]
    while stack:
        current, depth = stack.pop()
        yield current, depth
        if max_depth is not None and depth >= max_depth:
            continue
        for child in reversed(current.children):
            stack.append((child, depth + 1))


def replace_node(root: TreeNode, target: TreeNode, replacement: TreeNode) -> TreeNode:
    """Return a copy of `root` with `target` (matched by identity) swapped out.

    Only the nodes on the path from the root to the target are rebuilt, every
    other subtree is shared. If the target is not in the tree the root is
    returned as-is.
    """
    if root is target:
        return replacement

    path = _find_path(root, target)
    if path is None:
        return root

    rebuilt = replacement
    for parent, index in reversed(path):
        children = list(parent.children)
        children[index] = rebuilt
        rebuilt = parent.with_children(children)
    return rebuilt


def _find_path(root: TreeNode, target: TreeNode) -> Optional[List[Tuple[TreeNode, int]]]:
    stack: List[Tuple[TreeNode, List[Tuple[TreeNode, int]]]] = [(root, [])]
    while stack:
        current, path = stack.pop()
        for index, child in enumerate(current.children):
            if child is target:
                return path + [(current, index)]
            stack.append((child, path + [(current, index)]))
    return None


def format_tree(root: TreeNode, indent: str = "  ") -> str:
    """Indented dump of a tree, one node per line"""
    lines = []
    for current, depth in walk_with_depth(root):
        parts = [current.kind.name]
        if current.name is not None:
            parts.append(repr(current.name))
        if current.type_text:
            parts.append(f": {current.type_text}")
        if current.visible is not None:
            parts.append("public" if current.visible else "private")
        lines.append(f"{indent * depth}{' '.join(parts)}")
    return "\n".join(lines) + "\n"
