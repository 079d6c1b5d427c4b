import re

import pytest

from pattern_engine.core.tree import NodeKind, node
from pattern_engine.patterns.matcher import SignatureMatcher, matches
from pattern_engine.patterns.signature import Signature, known_properties, register_property_extractor

from .samples import generic_field, generic_proc, generic_type


class TestLeafSignatures:

    @pytest.mark.parametrize("kind", [NodeKind.TYPE_DECL, NodeKind.FIELD, NodeKind.STMT_LIST])
    def test_leaf_without_pattern_only_checks_kind(self, kind):
        signature = Signature(kind)
        assert matches(node(kind, name="anything"), signature)
        assert matches(node(kind, node(NodeKind.IDENT)), signature)
        assert not matches(node(NodeKind.OTHER), signature)

    def test_name_pattern_is_a_search(self):
        signature = Signature(NodeKind.TYPE_DECL, r"Singleton")
        assert matches(node(NodeKind.TYPE_DECL, name="ConfigSingleton"), signature)
        assert not matches(node(NodeKind.TYPE_DECL, name="Config"), signature)

    def test_name_pattern_fails_closed_on_unnamed_kinds(self):
        signature = Signature(NodeKind.STMT_LIST, r".*")
        assert not matches(node(NodeKind.STMT_LIST, name="body"), signature)

    def test_name_pattern_fails_on_missing_name(self):
        assert not matches(node(NodeKind.TYPE_DECL), Signature(NodeKind.TYPE_DECL, r".*"))

    def test_invalid_pattern_rejected_at_definition_time(self):
        with pytest.raises(re.error):
            Signature(NodeKind.TYPE_DECL, r"(")


class TestOptionalSignatures:

    def test_missing_node_satisfies_only_optional_signatures(self):
        assert matches(None, Signature(NodeKind.FIELD).as_optional())
        assert not matches(None, Signature(NodeKind.FIELD))

    def test_optional_child_presence_does_not_change_result(self):
        signature = Signature(NodeKind.PROC_DEF).with_child(
            Signature(NodeKind.STMT_LIST).with_children(
                Signature(NodeKind.IF_STMT).as_optional(),
                Signature(NodeKind.RETURN_STMT),
            )
        )
        with_if = generic_proc("create", node(NodeKind.IF_STMT), node(NodeKind.RETURN_STMT))
        without_if = generic_proc("create", node(NodeKind.RETURN_STMT))
        missing_required = generic_proc("create", node(NodeKind.IF_STMT))

        assert matches(with_if, signature)
        assert matches(without_if, signature)
        assert not matches(missing_required, signature)


class TestChildSearch:

    def test_grandchildren_searched_through_transparent_kinds(self):
        signature = Signature(NodeKind.TYPE_DECL).with_child(Signature(NodeKind.FIELD, r"instance"))
        type_decl = generic_type("Config", fields=[generic_field("_instance")])
        assert SignatureMatcher().matches(type_decl, signature)

    def test_no_descent_without_transparent_kinds(self):
        signature = Signature(NodeKind.TYPE_DECL).with_child(Signature(NodeKind.FIELD, r"instance"))
        type_decl = generic_type("Config", fields=[generic_field("_instance")])
        assert not SignatureMatcher(transparent_kinds=frozenset()).matches(type_decl, signature)

    def test_descent_is_limited_to_one_extra_level(self):
        signature = Signature(NodeKind.TYPE_DECL).with_child(Signature(NodeKind.RETURN_STMT))
        type_decl = generic_type("Config", members=[generic_proc("get", node(NodeKind.RETURN_STMT))])
        assert not matches(type_decl, signature)

    def test_every_child_signature_must_be_satisfied(self):
        signature = Signature(NodeKind.TYPE_DECL).with_children(
            Signature(NodeKind.FIELD, r"observers"),
            Signature(NodeKind.PROC_DEF, r"notify"),
        )
        partial = generic_type("Subject", fields=[generic_field("observers")])
        complete = generic_type("Subject", fields=[generic_field("observers")],
                                members=[generic_proc("notify")])
        assert not matches(partial, signature)
        assert matches(complete, signature)


class TestProperties:

    def test_builtin_extractors_are_registered(self):
        assert {"private", "public", "type", "static", "arity", "children"} <= set(known_properties())

    def test_static_property(self):
        signature = Signature(NodeKind.FIELD).with_property("static", "true")
        assert matches(generic_field("_instance", static=True), signature)
        assert not matches(generic_field("_instance"), signature)

    def test_visibility_properties(self):
        assert matches(generic_field("_hidden"), Signature(NodeKind.FIELD).with_property("private", "true"))
        assert matches(generic_field("shown"), Signature(NodeKind.FIELD).with_property("public", "true"))

    def test_arity_counts_parameters(self):
        proc = node(NodeKind.PROC_DEF,
                    node(NodeKind.PARAMS, node(NodeKind.FIELD, name="a"), node(NodeKind.FIELD, name="b")),
                    name="f")
        assert matches(proc, Signature(NodeKind.PROC_DEF).with_property("arity", "2"))

    def test_unknown_property_falls_back_to_node_properties(self):
        signature = Signature(NodeKind.PROC_DEF).with_property("async", "true")
        assert matches(node(NodeKind.PROC_DEF, name="f", properties={"async": "true"}), signature)
        assert not matches(node(NodeKind.PROC_DEF, name="f"), signature)

    def test_registered_extractor_is_used(self):
        register_property_extractor("named", lambda n: "true" if n.name else "false")
        assert matches(node(NodeKind.IDENT, name="x"), Signature(NodeKind.IDENT).with_property("named", "true"))
        assert not matches(node(NodeKind.IDENT), Signature(NodeKind.IDENT).with_property("named", "true"))


def test_describe_is_readable():
    signature = Signature(NodeKind.TYPE_DECL, r"Singleton").with_child(
        Signature(NodeKind.FIELD).with_property("static", "true").as_optional()
    )
    assert signature.describe() == "TYPE_DECL /Singleton/(FIELD static=true ?)"
