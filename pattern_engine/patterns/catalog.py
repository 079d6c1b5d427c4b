# pattern_engine/patterns/catalog.py

"""Built-in pattern definitions.

Each definition is written against the generic node kinds, so any language
processor that maps types to TYPE_DECL (with IDENT / REC_LIST / STMT_LIST
children) and procedures to PROC_DEF (with IDENT / PARAMS / STMT_LIST
children) can reuse them.
"""

from typing import List

from ..core.tree import CONDITIONAL_KINDS, NodeKind, TreeNode
from .heuristics import Heuristic, body_of, fields_of, methods_of, name_contains
from .pattern import PatternDefinition
from .signature import Signature

COLLECTION_TYPE_HINTS = ("list", "set", "dict", "deque", "queue", "tuple", "seq", "array", "sequence")


def _is_collection_type(type_text) -> bool:
    if not type_text:
        return False
    lowered = type_text.lower()
    return any(hint in lowered for hint in COLLECTION_TYPE_HINTS)


def _is_type(node: TreeNode) -> bool:
    return node.kind == NodeKind.TYPE_DECL


def _calls_into(statement: TreeNode, *fragments: str) -> bool:
    """Statement is (or returns) a call whose callee mentions one of the fragments"""
    candidates = [statement]
    if statement.kind == NodeKind.RETURN_STMT:
        candidates.extend(statement.children)
    return any(c.kind == NodeKind.CALL and name_contains(c, *fragments, ignore_case=True)
               for c in candidates)


def singleton_definition() -> PatternDefinition:
    """Singleton pattern ensures a class has only one instance"""
    instance_field = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.FIELD, r"[Ii]nstance").with_property("static", "true")
    )
    guarded_accessor = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.PROC_DEF, r"[Ii]nstance|^__new__$|^shared$").with_child(
            Signature(NodeKind.STMT_LIST).with_children(
                Signature(NodeKind.IF_STMT),      # Check for missing instance
                Signature(NodeKind.RETURN_STMT),  # Return instance
            )
        )
    )
    class_level_accessor = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.PROC_DEF, r"[Ii]nstance").with_property("static", "true")
    )

    def controls_construction(node: TreeNode) -> bool:
        if not _is_type(node):
            return False
        for method in methods_of(node):
            if method.name == "__new__":
                return True
            for stmt in body_of(method):
                if stmt.kind == NodeKind.IF_STMT and stmt.children and \
                        name_contains(stmt.children[0], "instance", ignore_case=True):
                    return True
        return False

    return PatternDefinition(
        name="Singleton",
        description="Singleton pattern ensures a class has only one instance",
        signatures=(instance_field, guarded_accessor, class_level_accessor),
        heuristics=(
            Heuristic("Class name suggests Singleton", 0.2,
                      lambda n: _is_type(n) and name_contains(n, "Singleton")),
            Heuristic("Controls instance construction", 0.3, controls_construction),
            Heuristic("Has static instance field", 0.3,
                      lambda n: any(f.prop("static") == "true" and name_contains(f, "instance", ignore_case=True)
                                    for f in fields_of(n))),
        ),
        minimum_confidence=0.7,
    )


def factory_definition() -> PatternDefinition:
    """Factory pattern creates objects without specifying exact class"""
    factory_method = Signature(NodeKind.PROC_DEF, r"[Cc]reate|[Mm]ake|[Bb]uild|^new|[Ff]actory").with_child(
        Signature(NodeKind.STMT_LIST).with_children(
            Signature(NodeKind.IF_STMT).as_optional(),    # Conditional creation
            Signature(NodeKind.CASE_STMT).as_optional(),
            Signature(NodeKind.RETURN_STMT),              # Return created object
        )
    )

    return PatternDefinition(
        name="Factory",
        description="Factory pattern creates objects without specifying exact class",
        signatures=(factory_method,),
        heuristics=(
            Heuristic("Name suggests Factory", 0.3,
                      lambda n: n.kind in (NodeKind.TYPE_DECL, NodeKind.PROC_DEF)
                      and name_contains(n, "factory", "create", "make", "build", ignore_case=True)),
            Heuristic("Returns a declared product type", 0.3,
                      lambda n: n.kind == NodeKind.PROC_DEF and bool(n.type_text) and n.type_text != "None"),
            Heuristic("Uses conditional creation logic", 0.4,
                      lambda n: any(stmt.kind in CONDITIONAL_KINDS for stmt in body_of(n))),
        ),
        minimum_confidence=0.6,
    )


def observer_definition() -> PatternDefinition:
    """Observer pattern defines one-to-many dependency between objects"""
    observer_collection = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.FIELD, r"[Oo]bservers|[Ll]isteners|[Ss]ubscribers")
    )
    register_method = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.PROC_DEF, r"[Aa]dd|[Rr]egister|[Ss]ubscribe|[Aa]ttach")
    )
    notify_method = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.PROC_DEF, r"[Nn]otify|[Pp]ublish|[Ee]mit|[Bb]roadcast|[Uu]pdate").with_child(
            Signature(NodeKind.STMT_LIST).with_child(Signature(NodeKind.FOR_STMT))  # Loop through observers
        )
    )

    def has_observer_collection(node: TreeNode) -> bool:
        return any(name_contains(f, "observers", "listeners", "subscribers", ignore_case=True)
                   and _is_collection_type(f.type_text)
                   for f in fields_of(node))

    def has_notification_loop(node: TreeNode) -> bool:
        for method in methods_of(node):
            if name_contains(method, "notify", "publish", "emit", "broadcast", "update", ignore_case=True):
                if any(stmt.kind in (NodeKind.FOR_STMT, NodeKind.WHILE_STMT) for stmt in body_of(method)):
                    return True
        return False

    return PatternDefinition(
        name="Observer",
        description="Observer pattern defines one-to-many dependency between objects",
        signatures=(observer_collection, register_method, notify_method),
        heuristics=(
            Heuristic("Class name suggests Subject", 0.2,
                      lambda n: _is_type(n) and name_contains(n, "Subject", "Observable", "Publisher")),
            Heuristic("Class name suggests Observer", 0.2,
                      lambda n: _is_type(n) and name_contains(n, "Observer", "Listener", "Subscriber")),
            Heuristic("Has collection of observers", 0.3, has_observer_collection),
            Heuristic("Has notification loop", 0.3, has_notification_loop),
        ),
        minimum_confidence=0.6,
    )


def strategy_definition() -> PatternDefinition:
    """Strategy pattern defines a family of algorithms, encapsulates each one"""
    strategy_field = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.FIELD, r"[Ss]trategy|[Aa]lgorithm")
    )
    strategy_setter = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.PROC_DEF, r"[Ss]et_?[Ss]trategy|[Cc]hange_?[Ss]trategy|[Ss]et_?[Aa]lgorithm")
    )
    strategy_use = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.PROC_DEF).with_child(
            Signature(NodeKind.STMT_LIST).with_child(
                Signature(NodeKind.CALL, r"(?i)strategy|algorithm")  # strategy.execute()
            )
        )
    )

    def delegates_to_strategy(node: TreeNode) -> bool:
        return any(_calls_into(stmt, "strategy", "algorithm")
                   for method in methods_of(node)
                   for stmt in body_of(method))

    return PatternDefinition(
        name="Strategy",
        description="Strategy pattern defines a family of algorithms, encapsulates each one",
        signatures=(strategy_field, strategy_setter, strategy_use),
        heuristics=(
            Heuristic("Class name suggests Context", 0.2,
                      lambda n: _is_type(n) and name_contains(n, "Context")),
            Heuristic("Interface/class name suggests Strategy", 0.2,
                      lambda n: _is_type(n) and name_contains(n, "Strategy", "Algorithm")),
            Heuristic("Has strategy field", 0.3,
                      lambda n: any(name_contains(f, "strategy", "algorithm", ignore_case=True)
                                    for f in fields_of(n))),
            Heuristic("Delegates work to strategy", 0.3, delegates_to_strategy),
        ),
        minimum_confidence=0.6,
    )


def command_definition() -> PatternDefinition:
    """Command pattern encapsulates a request as an object"""
    command_type = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.IDENT, r"Command|Action|Operation")
    )
    execute_method = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.PROC_DEF, r"[Ee]xecute|^run$|[Pp]erform|^__call__$")
    )
    invoker = Signature(NodeKind.TYPE_DECL).with_child(
        Signature(NodeKind.FIELD, r"[Cc]ommands?|[Hh]istory")
    )

    def has_command_collection(node: TreeNode) -> bool:
        return any(name_contains(f, "command", ignore_case=True) and _is_collection_type(f.type_text)
                   for f in fields_of(node))

    return PatternDefinition(
        name="Command",
        description="Command pattern encapsulates a request as an object",
        signatures=(command_type, execute_method, invoker),
        heuristics=(
            Heuristic("Class name suggests Command", 0.3,
                      lambda n: _is_type(n) and name_contains(n, "Command", "Action", "Operation")),
            Heuristic("Has execute method", 0.3,
                      lambda n: any(name_contains(m, "execute", "run", "perform", ignore_case=True)
                                    for m in methods_of(n))),
            Heuristic("Has command collection", 0.3, has_command_collection),
            Heuristic("Has invoker role", 0.1,
                      lambda n: _is_type(n) and name_contains(n, "Invoker", "Executor", "Dispatcher")),
        ),
        minimum_confidence=0.6,
    )


def default_definitions() -> List[PatternDefinition]:
    """The standard catalog, in registration order"""
    return [
        singleton_definition(),
        factory_definition(),
        observer_definition(),
        strategy_definition(),
        command_definition(),
    ]
