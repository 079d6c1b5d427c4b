import ast

import pytest

from pattern_engine.core.errors import TransformError
from pattern_engine.core.tree import NodeKind, node
from pattern_engine.patterns.pattern_detector import PatternDetector
from pattern_engine.patterns.pattern_transformer import PatternTransformer
from pattern_engine.patterns.templates import (
    default_templates,
    extract_bindings,
    needs_module_scope,
    singleton_template_tree,
    substitute_tree,
)

from .samples import (
    BROKEN_SOURCE,
    BUILDER_FUNCTION_SOURCE,
    FACTORY_SOURCE,
    LEGACY_SINGLETON_SOURCE,
    METHOD_FACTORY_SOURCE,
    OBSERVER_SOURCE,
    PLAIN_SOURCE,
    generic_field,
    generic_proc,
    generic_type,
)


def _clock_singleton():
    accessor = generic_proc(
        "instance",
        node(NodeKind.IF_STMT, node(NodeKind.EXPR, name="instance is None")),
        static=True,
    )
    return generic_type("ClockSingleton", fields=[generic_field("instance", static=True)],
                        members=[accessor, generic_proc("tick")])


def _best(detector, tree, pattern):
    return next(m for m in detector.detect(tree) if m.pattern_name == pattern)


class TestSubstitution:

    def test_bindings_from_matched_node(self):
        bindings = extract_bindings(node(NodeKind.PROC_DEF, name="make", properties={"static": "true"}))
        assert bindings == {"name": "make", "type": "object", "kind": "proc_def", "static": "true"}

    def test_markers_and_placeholders_are_filled(self):
        template = node(
            NodeKind.TYPE_DECL,
            node(NodeKind.PLACEHOLDER, name="name"),
            name="__slot_name__Impl",
            type_text="Base[__slot_type__]",
            properties={"doc": "Wraps __slot_name__", "note": "__slot_unknown__"},
        )
        result = substitute_tree(template, {"name": "Clock", "type": "int"})

        assert result.name == "ClockImpl"
        assert result.type_text == "Base[int]"
        assert result.children[0] == node(NodeKind.IDENT, name="Clock")
        assert result.properties == {"doc": "Wraps Clock", "note": "__slot_unknown__"}

    def test_template_members_win_over_spliced_members(self):
        source = generic_type("Clock", members=[generic_proc("get_instance"), generic_proc("tick")])
        result = substitute_tree(singleton_template_tree(), extract_bindings(source),
                                 {"body": list(source.children[2].children)})

        members = result.child_of_kind(NodeKind.STMT_LIST).children
        assert [m.name for m in members] == ["get_instance", "tick"]
        assert members[0].prop("static") == "true"

    def test_unfilled_splice_slots_disappear(self):
        result = substitute_tree(singleton_template_tree(), {"name": "Clock", "type": "object"})
        assert all(n.kind != NodeKind.PLACEHOLDER for n in result.children[1].children)
        assert [f.name for f in result.children[1].children] == ["_instance"]

    def test_splice_slot_cannot_be_the_root(self):
        with pytest.raises(TransformError):
            substitute_tree(node(NodeKind.PLACEHOLDER, name="body"), {}, {"body": []})

    def test_module_scope_templates(self, processor):
        parsed = default_templates(processor)
        assert needs_module_scope(parsed["Factory"])
        assert not needs_module_scope(parsed["Singleton"])
        assert not any(needs_module_scope(t) for t in default_templates().values())


class TestApplyTemplate:

    def test_unknown_template_returns_original_node(self, instrumentation):
        transformer = PatternTransformer(instrumentation=instrumentation)
        target = generic_type("Widget")

        assert transformer.apply_pattern(target, "Observer") is target
        assert instrumentation.metrics.counter("templates.missing") == 1

    def test_unknown_template_result_carries_error(self, processor):
        transformer = PatternTransformer()
        match = _best(transformer.detector, processor.parse_source(OBSERVER_SOURCE), "Observer")

        result = transformer.apply_template(match, "Observer")
        assert not result.success
        assert result.tree is match.node
        assert "Observer" in result.error

    def test_generic_singleton_round_trip(self):
        transformer = PatternTransformer(templates=default_templates())
        detector = transformer.detector
        match = _best(detector, _clock_singleton(), "Singleton")

        result = transformer.apply_template(match, "Singleton")
        assert result.success

        again = _best(detector, result.tree, "Singleton")
        assert again.node.name == "ClockSingleton"
        assert again.confidence >= 0.7

    def test_generic_factory_round_trip(self):
        transformer = PatternTransformer(templates=default_templates())
        source = generic_proc("make_part", node(NodeKind.IF_STMT), node(NodeKind.RETURN_STMT), type_text="Part")
        match = _best(transformer.detector, source, "Factory")

        result = transformer.apply_template(match, "Factory")
        assert result.tree.name == "make_part"
        assert result.tree.type_text == "Part"
        assert _best(transformer.detector, result.tree, "Factory").confidence >= 0.6

    def test_python_singleton_round_trip(self, processor):
        transformer = PatternTransformer()
        tree = processor.parse_source(LEGACY_SINGLETON_SOURCE, "legacy.py")
        match = _best(transformer.detector, tree, "Singleton")

        result = transformer.apply_template(match, "Singleton")
        assert result.success

        again = _best(transformer.detector, result.tree, "Singleton")
        assert again.node.name == "AppConfig"
        assert again.confidence >= 0.7

        members = again.node.child_of_kind(NodeKind.STMT_LIST).children_of_kind(NodeKind.PROC_DEF)
        assert [m.name for m in members] == ["get_instance", "__init__", "instance", "get"]

    def test_python_factory_round_trip(self, processor):
        transformer = PatternTransformer()
        match = _best(transformer.detector, processor.parse_source(FACTORY_SOURCE), "Factory")

        result = transformer.apply_template(match, "Factory")
        again = _best(transformer.detector, result.tree, "Factory")
        assert again.node.name == "create_shape"
        assert again.node.type_text == "Shape"
        assert again.confidence >= 0.6

    def test_repeated_application_gives_equal_trees(self, processor):
        transformer = PatternTransformer()
        tree = processor.parse_source(LEGACY_SINGLETON_SOURCE)
        match = _best(transformer.detector, tree, "Singleton")

        first = transformer.apply_template(match, "Singleton").tree
        second = transformer.apply_template(match, "Singleton").tree
        assert first == second
        assert first is not second
        # Source tree and its syntax stay untouched
        assert "_lock" not in processor.render(tree)

    def test_python_template_falls_back_for_generic_sources(self):
        module = PatternTransformer().apply_pattern(_clock_singleton(), "Singleton")
        assert module.kind == NodeKind.MODULE
        result = module.child_of_kind(NodeKind.TYPE_DECL)
        assert result.name == "ClockSingleton"
        assert result.origin is None
        members = result.child_of_kind(NodeKind.STMT_LIST).children_of_kind(NodeKind.PROC_DEF)
        assert [m.name for m in members] == ["get_instance", "instance", "tick"]

    def test_register_template(self):
        transformer = PatternTransformer(templates={})
        transformer.register_template("Marker", node(NodeKind.IDENT, name="__slot_name__Marker"))
        assert transformer.apply_pattern(node(NodeKind.IDENT, name="Clock"), "Marker").name == "ClockMarker"

    def test_applied_counter_and_event(self, instrumentation):
        transformer = PatternTransformer(templates=default_templates(), instrumentation=instrumentation)
        transformer.apply_pattern(_clock_singleton(), "Singleton")
        assert instrumentation.metrics.counter("templates.applied") == 1
        assert "template.applied" in instrumentation.monitor.event_names()


class TestApplyToFile:

    def test_singleton_written_to_output_path(self, tmp_path, processor):
        source = tmp_path / "legacy.py"
        source.write_text(LEGACY_SINGLETON_SOURCE)
        output = tmp_path / "out.py"

        assert PatternTransformer().apply_to_file(source, "Singleton", output)

        text = output.read_text()
        assert "def get_instance(cls)" in text
        assert isinstance(ast.parse(text).body[0], ast.Import)
        assert source.read_text() == LEGACY_SINGLETON_SOURCE
        matches = PatternDetector().detect(processor.parse_source(text))
        assert [m.pattern_name for m in matches] == ["Singleton"]

    def test_default_output_is_the_input_file(self, tmp_path):
        source = tmp_path / "shapes.py"
        source.write_text(FACTORY_SOURCE)

        assert PatternTransformer().apply_to_file(source, "Factory")

        text = source.read_text()
        assert "_creators" in text
        assert "def register_product(key, creator)" in text
        assert "class Circle(Shape)" in text

    def test_factory_output_runs(self, tmp_path):
        source = tmp_path / "shapes.py"
        source.write_text(FACTORY_SOURCE)
        assert PatternTransformer().apply_to_file(source, "Factory")

        namespace = {}
        exec(compile(source.read_text(), str(source), "exec"), namespace)
        namespace["register_product"]("circle", namespace["Circle"])
        assert isinstance(namespace["create_shape"]("circle"), namespace["Circle"])
        with pytest.raises(ValueError):
            namespace["create_shape"]("hexagon")

    def test_factory_method_is_not_rewritten(self, tmp_path):
        source = tmp_path / "factory.py"
        source.write_text(METHOD_FACTORY_SOURCE)
        assert not PatternTransformer().apply_to_file(source, "Factory")
        assert source.read_text() == METHOD_FACTORY_SOURCE

    def test_factory_prefers_module_level_function(self, tmp_path):
        source = tmp_path / "factory.py"
        source.write_text(METHOD_FACTORY_SOURCE + BUILDER_FUNCTION_SOURCE)
        assert PatternTransformer().apply_to_file(source, "Factory")

        namespace = {}
        exec(compile(source.read_text(), str(source), "exec"), namespace)
        circle = namespace["Circle"]
        assert isinstance(namespace["ShapeFactory"]().create("circle"), circle)
        namespace["register_product"]("circle", circle)
        assert isinstance(namespace["build_shape"]("circle"), circle)

    def test_no_match_leaves_file_alone(self, tmp_path):
        source = tmp_path / "point.py"
        source.write_text(PLAIN_SOURCE)
        assert not PatternTransformer().apply_to_file(source, "Singleton")
        assert source.read_text() == PLAIN_SOURCE

    def test_unparseable_file(self, tmp_path, instrumentation):
        source = tmp_path / "broken.py"
        source.write_text(BROKEN_SOURCE)
        transformer = PatternTransformer(instrumentation=instrumentation)
        assert not transformer.apply_to_file(source, "Singleton")
        assert instrumentation.metrics.counter("files.failed") == 1

    def test_unknown_template(self, tmp_path, instrumentation):
        source = tmp_path / "subject.py"
        source.write_text(OBSERVER_SOURCE)
        transformer = PatternTransformer(instrumentation=instrumentation)
        assert not transformer.apply_to_file(source, "Observer")
        assert instrumentation.metrics.counter("templates.missing") == 1

    def test_write_failure_is_reported(self, tmp_path, instrumentation):
        source = tmp_path / "legacy.py"
        source.write_text(LEGACY_SINGLETON_SOURCE)
        output = tmp_path / "missing" / "out.py"

        transformer = PatternTransformer(instrumentation=instrumentation)
        assert not transformer.apply_to_file(source, "Singleton", output)
        assert instrumentation.metrics.counter("writes.failed") == 1
        assert not output.exists()
