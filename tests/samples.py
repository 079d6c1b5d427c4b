"""Python sources and generic trees that implement the catalog patterns."""
import textwrap

from pattern_engine.core.tree import NodeKind, node

SINGLETON_SOURCE = textwrap.dedent('''
    import threading


    class ConfigSingleton:
        _instance = None
        _lock = threading.Lock()

        def __init__(self):
            self.settings = {}

        @classmethod
        def get_instance(cls):
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance
''')

LEGACY_SINGLETON_SOURCE = textwrap.dedent('''
    class AppConfig:
        _instance = None

        def __init__(self):
            self.values = {}

        @staticmethod
        def instance():
            if AppConfig._instance is None:
                AppConfig._instance = AppConfig()
            return AppConfig._instance

        def get(self, key):
            return self.values.get(key)
''')

FACTORY_SOURCE = textwrap.dedent('''
    class Shape:
        pass


    class Circle(Shape):
        pass


    class Square(Shape):
        pass


    def create_shape(kind: str) -> Shape:
        if kind == "circle":
            shape = Circle()
        else:
            shape = Square()
        return shape
''')

OBSERVER_SOURCE = textwrap.dedent('''
    class WeatherSubject:
        def __init__(self):
            self.observers = []

        def attach(self, observer):
            self.observers.append(observer)

        def notify(self, event):
            for observer in self.observers:
                observer.update(event)
''')

STRATEGY_SOURCE = textwrap.dedent('''
    class SortContext:
        def __init__(self, strategy):
            self.strategy = strategy

        def set_strategy(self, strategy):
            self.strategy = strategy

        def sort(self, data):
            return self.strategy.sort(data)
''')

COMMAND_SOURCE = textwrap.dedent('''
    class LightOnCommand:
        def __init__(self, light):
            self.light = light

        def execute(self):
            self.light.on()
''')

PLAIN_SOURCE = textwrap.dedent('''
    class Point:
        def __init__(self, x, y):
            self.x = x
            self.y = y

        def norm(self):
            return abs(self.x) + abs(self.y)
''')

BROKEN_SOURCE = "def broken(:\n    pass\n"


def generic_type(name, fields=(), members=()):
    """TYPE_DECL laid out the way language processors build types"""
    return node(
        NodeKind.TYPE_DECL,
        node(NodeKind.IDENT, name=name),
        node(NodeKind.REC_LIST, *fields),
        node(NodeKind.STMT_LIST, *members),
        name=name,
    )


def generic_field(name, static=False, type_text=None):
    return node(NodeKind.FIELD, node(NodeKind.IDENT, name=name), name=name, type_text=type_text,
                visible=not name.startswith("_"),
                properties={"static": "true" if static else "false"})


def generic_proc(name, *statements, static=False, type_text=None):
    return node(
        NodeKind.PROC_DEF,
        node(NodeKind.IDENT, name=name),
        node(NodeKind.PARAMS),
        node(NodeKind.STMT_LIST, *statements),
        name=name,
        type_text=type_text,
        visible=not name.startswith("_"),
        properties={"static": "true" if static else "false"},
    )


METHOD_FACTORY_SOURCE = textwrap.dedent('''
    class Circle:
        pass


    class ShapeFactory:
        def create(self, kind):
            if kind == "circle":
                return Circle()
            return None
''')

BUILDER_FUNCTION_SOURCE = textwrap.dedent('''


    def build_shape(kind):
        if kind == "circle":
            return Circle()
        return None
''')


def deeply_nested_source(terms=3000):
    """An operator chain nested far beyond the interpreter's recursion limit"""
    return "total = " + " + ".join(["1"] * terms) + "\n"
