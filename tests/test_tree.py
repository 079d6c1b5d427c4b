from pattern_engine.core.tree import (
    NodeKind,
    SourceLocation,
    TreeNode,
    format_tree,
    node,
    replace_node,
    walk,
    walk_with_depth,
)


def _sample():
    return node(
        NodeKind.MODULE,
        node(NodeKind.TYPE_DECL,
             node(NodeKind.IDENT, name="A"),
             node(NodeKind.REC_LIST, node(NodeKind.FIELD, name="x")),
             name="A"),
        node(NodeKind.PROC_DEF, node(NodeKind.IDENT, name="f"), name="f"),
        name="mod",
    )


def test_walk_is_pre_order_left_to_right():
    names = [n.name for n in walk(_sample())]
    assert names == ["mod", "A", "A", None, "x", "f", "f"]


def test_walk_with_depth_respects_max_depth():
    visited = list(walk_with_depth(_sample(), max_depth=1))
    assert [depth for _, depth in visited] == [0, 1, 1]
    assert all(depth <= 1 for _, depth in visited)


def test_walk_handles_very_deep_trees():
    deep = node(NodeKind.IDENT, name="leaf")
    for _ in range(5000):
        deep = node(NodeKind.STMT_LIST, deep)
    assert sum(1 for _ in walk(deep)) == 5001


def test_walk_of_none_yields_nothing():
    assert list(walk(None)) == []


def test_equality_ignores_location_and_origin():
    first = TreeNode(NodeKind.IDENT, name="x", location=SourceLocation("a.py", 1, 0), origin=object())
    second = TreeNode(NodeKind.IDENT, name="x", location=SourceLocation("b.py", 9, 4))
    assert first == second
    assert hash(first) == hash(second)


def test_replace_node_rebuilds_only_the_path():
    tree = _sample()
    type_decl, proc = tree.children
    replacement = node(NodeKind.PROC_DEF, name="g")

    rebuilt = replace_node(tree, proc, replacement)

    assert rebuilt.children[1] is replacement
    assert rebuilt.children[0] is type_decl
    # The original tree is untouched
    assert tree.children[1] is proc


def test_replace_node_returns_root_when_target_missing():
    tree = _sample()
    assert replace_node(tree, node(NodeKind.IDENT, name="A"), node(NodeKind.OTHER)) is tree


def test_child_helpers():
    type_decl = _sample().children[0]
    assert type_decl.child_of_kind(NodeKind.REC_LIST).children[0].name == "x"
    assert type_decl.child_of_kind(NodeKind.STMT_LIST) is None
    assert len(type_decl.children_of_kind(NodeKind.IDENT)) == 1
    assert type_decl.is_name_bearing
    assert not type_decl.children[1].is_name_bearing


def test_format_tree_indents_by_depth():
    text = format_tree(_sample())
    lines = text.splitlines()
    assert lines[0] == "MODULE 'mod'"
    assert lines[1] == "  TYPE_DECL 'A'"
    assert lines[4] == "      FIELD 'x'"
