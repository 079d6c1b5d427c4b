# pattern_engine/patterns/templates.py

"""Prebuilt pattern templates and generic slot substitution.

A template is an ordinary TreeNode. Slots are either PLACEHOLDER nodes, whose
name is the slot key, or `__slot_<key>__` markers inside names, type texts
and property values. A slot standing alone as a statement (PLACEHOLDER
`body`, or an identifier `__slot_body__`) is spliced with the members of the
matched node.
"""

from typing import Dict, List, Mapping, Optional, Sequence
import logging

from ..core.errors import TransformError
from ..core.slots import slot, substitute_slots
from ..core.tree import NodeKind, TreeNode, node
from ..utils.language_processors import LanguageProcessor

logger = logging.getLogger(__name__)

# Slots that stand for a list of nodes rather than a single value
SPLICE_KEYS = ("body", "fields")

SINGLETON_TEMPLATE_SOURCE = '''
import threading


class __slot_name__:
    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    __slot_body__
'''

FACTORY_TEMPLATE_SOURCE = '''
_creators = {}


def register_product(key, creator):
    _creators[key] = creator


def __slot_name__(key, *args, **kwargs) -> __slot_type__:
    if key not in _creators:
        raise ValueError("Unknown product: %r" % (key,))
    return _creators[key](*args, **kwargs)
'''


def extract_bindings(source: TreeNode) -> Dict[str, str]:
    """Slot values taken from a matched node"""
    bindings = dict(source.properties)
    bindings["name"] = source.name or "Unnamed"
    bindings["type"] = source.type_text or "object"
    bindings["kind"] = source.kind.value
    return bindings


def source_splices(source: TreeNode) -> Dict[str, List[TreeNode]]:
    """Node lists a template may splice in place of its `body` and `fields` slots"""
    splices: Dict[str, List[TreeNode]] = {"body": [], "fields": []}
    if source.kind == NodeKind.TYPE_DECL:
        members = source.child_of_kind(NodeKind.STMT_LIST)
        fields = source.child_of_kind(NodeKind.REC_LIST)
        splices["body"] = list(members.children) if members else []
        splices["fields"] = list(fields.children) if fields else []
    elif source.kind == NodeKind.PROC_DEF:
        body = source.child_of_kind(NodeKind.STMT_LIST)
        splices["body"] = list(body.children) if body else []
    elif source.kind in (NodeKind.STMT_LIST, NodeKind.MODULE):
        splices["body"] = list(source.children)
    return splices


def needs_module_scope(template: TreeNode) -> bool:
    """Template adds several top-level statements, so it can only replace a module-level one"""
    if template.kind != NodeKind.MODULE:
        return False
    return sum(1 for child in template.children if child.kind != NodeKind.IMPORT) > 1


def _splice_key(candidate: TreeNode, splices: Mapping[str, Sequence[TreeNode]]) -> Optional[str]:
    if candidate.kind == NodeKind.PLACEHOLDER and (candidate.name in splices or candidate.name in SPLICE_KEYS):
        return candidate.name
    if candidate.kind == NodeKind.IDENT and candidate.name:
        for key in set(splices) | set(SPLICE_KEYS):
            if candidate.name == slot(key):
                return key
    return None


def _declared_name(candidate: TreeNode) -> Optional[str]:
    if candidate.kind in (NodeKind.FIELD, NodeKind.PROC_DEF, NodeKind.TYPE_DECL):
        return candidate.name
    return None


def substitute_tree(template: TreeNode, bindings: Mapping[str, str],
                    splices: Optional[Mapping[str, Sequence[TreeNode]]] = None) -> TreeNode:
    """Fresh copy of `template` with every slot filled.

    Spliced nodes whose declared name already exists among their new
    siblings are dropped, so template members win over matched members.
    """
    splices = splices or {}

    def rebuild(current: TreeNode) -> List[TreeNode]:
        key = _splice_key(current, splices)
        if key is not None:
            return list(splices.get(key, ()))

        if current.kind == NodeKind.PLACEHOLDER:
            value = bindings.get(current.name)
            if value is None:
                logger.warning(f"Template slot '{current.name}' has no binding")
            return [TreeNode(kind=NodeKind.IDENT, name=value if value is not None else current.name,
                             location=current.location)]

        parts = [(_splice_key(child, splices) is not None, rebuild(child)) for child in current.children]
        declared = {_declared_name(c) for spliced, nodes in parts if not spliced for c in nodes} - {None}
        children = []
        for spliced, nodes in parts:
            children.extend(c for c in nodes if not (spliced and _declared_name(c) in declared))

        return [TreeNode(
            kind=current.kind,
            children=tuple(children),
            name=substitute_slots(current.name, bindings),
            type_text=substitute_slots(current.type_text, bindings),
            visible=current.visible,
            location=current.location,
            properties={k: substitute_slots(v, bindings) for k, v in current.properties.items()},
        )]

    result = rebuild(template)
    if len(result) != 1:
        raise TransformError("Template root must not be a splice slot", pattern=template.name)
    return result[0]


def singleton_template_tree() -> TreeNode:
    """Language-neutral Singleton: a static instance and a guarded accessor"""
    instance_check = node(NodeKind.EXPR, node(NodeKind.IDENT, name="_instance"), name="_instance is None")
    accessor = node(
        NodeKind.PROC_DEF,
        node(NodeKind.IDENT, name="get_instance"),
        node(NodeKind.PARAMS),
        node(NodeKind.STMT_LIST,
             node(NodeKind.IF_STMT, instance_check,
                  node(NodeKind.STMT_LIST,
                       node(NodeKind.ASSIGN, node(NodeKind.IDENT, name="_instance"),
                            node(NodeKind.CALL, name=slot("name")), name="_instance"))),
             node(NodeKind.RETURN_STMT, node(NodeKind.IDENT, name="_instance"))),
        name="get_instance",
        type_text=slot("name"),
        visible=True,
        properties={"static": "true"},
    )
    return node(
        NodeKind.TYPE_DECL,
        node(NodeKind.PLACEHOLDER, name="name"),
        node(NodeKind.REC_LIST,
             node(NodeKind.FIELD, node(NodeKind.IDENT, name="_instance"), name="_instance",
                  type_text=slot("name"), visible=False, properties={"static": "true"}),
             node(NodeKind.PLACEHOLDER, name="fields")),
        node(NodeKind.STMT_LIST, accessor, node(NodeKind.PLACEHOLDER, name="body")),
        name=slot("name"),
        type_text=slot("type"),
    )


def factory_template_tree() -> TreeNode:
    """Language-neutral Factory: dispatch on a key through a creator table"""
    lookup = node(NodeKind.EXPR, node(NodeKind.IDENT, name="key"), node(NodeKind.IDENT, name="_creators"),
                  name="key not in _creators")
    return node(
        NodeKind.PROC_DEF,
        node(NodeKind.IDENT, name=slot("name")),
        node(NodeKind.PARAMS, node(NodeKind.FIELD, node(NodeKind.IDENT, name="key"), name="key")),
        node(NodeKind.STMT_LIST,
             node(NodeKind.IF_STMT, lookup,
                  node(NodeKind.STMT_LIST, node(NodeKind.RAISE_STMT, node(NodeKind.CALL, name="ValueError")))),
             node(NodeKind.RETURN_STMT, node(NodeKind.CALL, name="_creators[key]"))),
        name=slot("name"),
        type_text=slot("type"),
        visible=True,
        properties={"static": "false"},
    )


def default_templates(processor: Optional[LanguageProcessor] = None) -> Dict[str, TreeNode]:
    """Templates registered by a default transformer, keyed by pattern name.

    With a processor the templates are parsed from its source text so the
    result can be rendered back to that language; without one the
    language-neutral trees are used.
    """
    if processor is None:
        return {
            "Singleton": singleton_template_tree(),
            "Factory": factory_template_tree(),
        }
    return {
        "Singleton": processor.parse_source(SINGLETON_TEMPLATE_SOURCE, "<template:Singleton>"),
        "Factory": processor.parse_source(FACTORY_TEMPLATE_SOURCE, "<template:Factory>"),
    }
