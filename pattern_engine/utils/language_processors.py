# pattern_engine/utils/language_processors.py

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union
import ast
import copy
import logging

import astunparse

from ..core.errors import ParseFailure, TransformError
from ..core.slots import slot, substitute_slots
from ..core.tree import NodeKind, SourceLocation, TreeNode, format_tree, replace_node

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class LanguageProcessor(ABC):
    """Base class for the parsers that feed trees into the detector"""

    extensions: Tuple[str, ...] = ()

    @abstractmethod
    def parse_source(self, code: str, path: Optional[str] = None) -> TreeNode:
        """Build a tree from source text, raising ParseFailure on bad input"""
        pass

    def parse_file(self, path: PathLike) -> TreeNode:
        try:
            code = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseFailure(str(path), str(e)) from e
        return self.parse_source(code, str(path))

    def handles(self, path: PathLike) -> bool:
        return Path(path).suffix.lower() in self.extensions

    def render(self, tree: TreeNode) -> str:
        """Text for a tree; processors without a printer fall back to a tree dump"""
        return format_tree(tree)

    def render_replacement(self, file_tree: TreeNode, target: TreeNode,
                           replacement: TreeNode) -> str:
        """Text for `file_tree` with `target` swapped for `replacement`"""
        return self.render(replace_node(file_tree, target, replacement))

    def instantiate_template(self, template: TreeNode, bindings: Mapping[str, str],
                             source: TreeNode) -> Optional[TreeNode]:
        """Native template instantiation.

        Returns None when the processor cannot instantiate this template
        natively; callers then fall back to generic tree substitution.
        """
        return None


class PythonProcessor(LanguageProcessor):
    """Python processor built on the standard ast module"""

    extensions = (".py", ".pyw")

    def parse_source(self, code: str, path: Optional[str] = None) -> TreeNode:
        try:
            module = ast.parse(code, filename=path or "<string>")
            return _PythonTreeBuilder(path).build(module)
        except SyntaxError as e:
            raise ParseFailure(path or "<string>", f"line {e.lineno}: {e.msg}") from e
        except ValueError as e:
            # Null bytes and similar input the tokenizer refuses
            raise ParseFailure(path or "<string>", str(e)) from e
        except (RecursionError, MemoryError) as e:
            # Expressions nested too deeply to walk
            raise ParseFailure(path or "<string>", f"source nested too deeply: {type(e).__name__}") from e

    def render(self, tree: TreeNode) -> str:
        statements = _statements_of(tree)
        if statements is None:
            return super().render(tree)
        module = ast.Module(body=copy.deepcopy(statements), type_ignores=[])
        ast.fix_missing_locations(module)
        return astunparse.unparse(module)

    def render_replacement(self, file_tree: TreeNode, target: TreeNode,
                           replacement: TreeNode) -> str:
        module = file_tree.origin
        if not isinstance(module, ast.Module) or not isinstance(target.origin, ast.stmt):
            raise TransformError(f"Cannot render a replacement for a {target.kind.name} node "
                                 "without a Python statement behind it")

        new_statements = _statements_of(replacement)
        if new_statements is None:
            raise TransformError("Replacement tree has no Python source behind it")

        memo: Dict[int, Any] = {}
        copied = copy.deepcopy(module, memo)
        copied_target = memo.get(id(target.origin))
        if copied_target is None:
            raise TransformError("Target node does not belong to the file tree")

        new_statements = copy.deepcopy(new_statements)
        imports = [stmt for stmt in new_statements if isinstance(stmt, (ast.Import, ast.ImportFrom))]
        body = [stmt for stmt in new_statements if not isinstance(stmt, (ast.Import, ast.ImportFrom))]

        _StatementReplacer(copied_target, body).visit(copied)
        _hoist_imports(copied, imports)
        ast.fix_missing_locations(copied)
        return astunparse.unparse(copied)

    def instantiate_template(self, template: TreeNode, bindings: Mapping[str, str],
                             source: TreeNode) -> Optional[TreeNode]:
        """Rewrite the template's Python source with the bindings and re-parse it.

        Statements of the matched class or function replace the
        `__slot_body__` marker, skipping names the template already defines.
        A template class without bases inherits the bases of the matched
        class.
        """
        if not isinstance(template.origin, ast.Module) or not isinstance(source.origin, ast.AST):
            return None

        instance = _SlotRewriter(bindings).visit(copy.deepcopy(template.origin))
        _splice_body_slots(instance, source.origin)
        ast.fix_missing_locations(instance)

        code = astunparse.unparse(instance)
        logger.debug(f"Instantiated template {template.name} for {source.name}")
        return self.parse_source(code, template.location.file)


class LanguageProcessorRegistry:
    """Registry of language processors, looked up by file extension"""

    def __init__(self):
        self.processors: List[LanguageProcessor] = [
            PythonProcessor(),
            # Add more processors here
        ]

    def get_processor(self, path: PathLike) -> Optional[LanguageProcessor]:
        """Get appropriate processor for the file"""
        for processor in self.processors:
            if processor.handles(path):
                return processor
        return None

    def add_processor(self, processor: LanguageProcessor):
        """Add a new language processor; later additions take precedence"""
        self.processors.insert(0, processor)

    def parse_file(self, path: PathLike) -> TreeNode:
        processor = self.get_processor(path)
        if processor is None:
            raise ParseFailure(str(path), "no language processor for this file type")
        return processor.parse_file(path)

    def extensions(self) -> List[str]:
        seen: List[str] = []
        for processor in self.processors:
            for ext in processor.extensions:
                if ext not in seen:
                    seen.append(ext)
        return seen


# Python source -> generic tree

def _text(expr: Optional[ast.AST]) -> Optional[str]:
    if expr is None:
        return None
    return ast.unparse(expr)


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _is_public(name: str) -> bool:
    return not name.startswith("_") or _is_dunder(name)


def _infer_type(value: Optional[ast.expr]) -> Optional[str]:
    """Best-effort type text for an initializer"""
    if value is None:
        return None
    if isinstance(value, (ast.List, ast.ListComp)):
        return "list"
    if isinstance(value, (ast.Dict, ast.DictComp)):
        return "dict"
    if isinstance(value, (ast.Set, ast.SetComp)):
        return "set"
    if isinstance(value, ast.Tuple):
        return "tuple"
    if isinstance(value, ast.Constant):
        return "None" if value.value is None else type(value.value).__name__
    if isinstance(value, ast.Call):
        return _text(value.func)
    return None


_OPERATOR_EXPRS = (ast.Compare, ast.BoolOp, ast.BinOp, ast.UnaryOp, ast.IfExp, ast.Subscript)


class _PythonTreeBuilder:
    """Converts one parsed module into the generic tree"""

    def __init__(self, path: Optional[str]):
        self.path = path

    def _loc(self, node: ast.AST) -> SourceLocation:
        return SourceLocation(self.path, getattr(node, "lineno", 0), getattr(node, "col_offset", 0))

    def _node(self, kind: NodeKind, origin: Optional[ast.AST], children=(), **attrs) -> TreeNode:
        return TreeNode(
            kind=kind,
            children=tuple(c for c in children if c is not None),
            location=self._loc(origin) if origin is not None else SourceLocation(self.path),
            origin=origin,
            **attrs,
        )

    def build(self, module: ast.Module) -> TreeNode:
        name = Path(self.path).stem if self.path else None
        return self._node(NodeKind.MODULE, module, self._statements(module.body, module_scope=True),
                          name=name)

    def _statements(self, statements: List[ast.stmt], module_scope: bool = False) -> List[TreeNode]:
        return [self._statement(stmt, module_scope) for stmt in statements]

    def _block(self, statements: List[ast.stmt]) -> TreeNode:
        converted = self._statements(statements)
        location = self._loc(statements[0]) if statements else SourceLocation(self.path)
        return TreeNode(kind=NodeKind.STMT_LIST, children=tuple(converted), location=location)

    def _statement(self, stmt: ast.stmt, module_scope: bool = False) -> TreeNode:
        if isinstance(stmt, ast.ClassDef):
            return self._class(stmt)
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            return self._function(stmt)
        if isinstance(stmt, ast.If):
            children = [self._expr(stmt.test), self._block(stmt.body)]
            if stmt.orelse:
                children.append(self._block(stmt.orelse))
            return self._node(NodeKind.IF_STMT, stmt, children)
        if _MATCH is not None and isinstance(stmt, _MATCH):
            children = [self._expr(stmt.subject)]
            children.extend(self._block(case.body) for case in stmt.cases)
            return self._node(NodeKind.CASE_STMT, stmt, children)
        if isinstance(stmt, (ast.For, ast.AsyncFor)):
            children = [self._expr(stmt.target), self._expr(stmt.iter), self._block(stmt.body)]
            if stmt.orelse:
                children.append(self._block(stmt.orelse))
            return self._node(NodeKind.FOR_STMT, stmt, children, name=_text(stmt.target))
        if isinstance(stmt, ast.While):
            return self._node(NodeKind.WHILE_STMT, stmt, [self._expr(stmt.test), self._block(stmt.body)])
        if isinstance(stmt, ast.Return):
            return self._node(NodeKind.RETURN_STMT, stmt, [self._expr(stmt.value)])
        if isinstance(stmt, ast.Raise):
            return self._node(NodeKind.RAISE_STMT, stmt, [self._expr(stmt.exc)])
        if isinstance(stmt, _TRY):
            children = [self._block(stmt.body)]
            children.extend(self._block(handler.body) for handler in stmt.handlers)
            if stmt.orelse:
                children.append(self._block(stmt.orelse))
            if stmt.finalbody:
                children.append(self._block(stmt.finalbody))
            return self._node(NodeKind.TRY_STMT, stmt, children)
        if isinstance(stmt, (ast.With, ast.AsyncWith)):
            children = [self._expr(item.context_expr) for item in stmt.items]
            children.append(self._block(stmt.body))
            return self._node(NodeKind.WITH_STMT, stmt, children)
        if isinstance(stmt, (ast.Assign, ast.AnnAssign)):
            if module_scope and _simple_targets(stmt):
                return self._var_section(stmt)
            return self._assign(stmt)
        if isinstance(stmt, ast.AugAssign):
            return self._node(NodeKind.ASSIGN, stmt, [self._expr(stmt.target), self._expr(stmt.value)],
                              name=_text(stmt.target),
                              properties={"op": type(stmt.op).__name__})
        if isinstance(stmt, ast.Expr):
            converted = self._expr(stmt.value)
            # Keep the statement as origin so it can be located and replaced
            return TreeNode(kind=converted.kind, children=converted.children, name=converted.name,
                            type_text=converted.type_text, location=converted.location,
                            properties=converted.properties, origin=stmt)
        if isinstance(stmt, ast.Import):
            return self._node(NodeKind.IMPORT, stmt, name=", ".join(alias.name for alias in stmt.names))
        if isinstance(stmt, ast.ImportFrom):
            return self._node(NodeKind.IMPORT, stmt, name=stmt.module or "",
                              properties={"names": ", ".join(alias.name for alias in stmt.names)})

        # Unhandled statement kinds (pass, global, del, ...)
        children = [self._expr(child) for child in ast.iter_child_nodes(stmt) if isinstance(child, ast.expr)]
        return self._node(NodeKind.OTHER, stmt, children, name=type(stmt).__name__)

    def _class(self, cls: ast.ClassDef) -> TreeNode:
        fields: List[TreeNode] = []
        members: List[TreeNode] = []
        seen_fields = set()

        for stmt in cls.body:
            if isinstance(stmt, (ast.Assign, ast.AnnAssign)) and _simple_targets(stmt):
                for field_node in self._fields(stmt, static=True):
                    if field_node.name not in seen_fields:
                        seen_fields.add(field_node.name)
                        fields.append(field_node)
                continue
            members.append(self._statement(stmt))

        # Instance attributes assigned in the initializer
        for stmt in cls.body:
            if isinstance(stmt, ast.FunctionDef) and stmt.name == "__init__":
                for inner in ast.walk(stmt):
                    for field_node in self._instance_fields(inner):
                        if field_node.name not in seen_fields:
                            seen_fields.add(field_node.name)
                            fields.append(field_node)

        bases = [_text(base) for base in cls.bases]
        decorators = [_text(d) for d in cls.decorator_list]
        metaclass = next((_text(kw.value) for kw in cls.keywords if kw.arg == "metaclass"), None)
        abstract = (
            any(b in ("ABC", "abc.ABC", "Protocol", "typing.Protocol") for b in bases)
            or metaclass in ("ABCMeta", "abc.ABCMeta")
        )

        properties = {
            "decorators": ", ".join(decorators),
            "abstract": "true" if abstract else "false",
        }
        if metaclass:
            properties["metaclass"] = metaclass

        children = [
            self._node(NodeKind.IDENT, cls, name=cls.name),
            TreeNode(kind=NodeKind.REC_LIST, children=tuple(fields), location=self._loc(cls)),
            TreeNode(kind=NodeKind.STMT_LIST, children=tuple(members), location=self._loc(cls)),
        ]
        return self._node(NodeKind.TYPE_DECL, cls, children, name=cls.name,
                          type_text=", ".join(bases) or None,
                          visible=not cls.name.startswith("_"),
                          properties=properties)

    def _fields(self, stmt: Union[ast.Assign, ast.AnnAssign], static: bool) -> List[TreeNode]:
        if isinstance(stmt, ast.AnnAssign):
            targets = [stmt.target]
            type_text = _text(stmt.annotation)
        else:
            targets = stmt.targets
            type_text = _infer_type(stmt.value)

        result = []
        for target in targets:
            result.append(self._field(target.id, stmt, stmt.value, type_text, static))
        return result

    def _field(self, name: str, origin: ast.AST, value: Optional[ast.expr],
               type_text: Optional[str], static: bool) -> TreeNode:
        properties = {"static": "true" if static else "false"}
        if value is not None:
            properties["value"] = _text(value)
        children = [self._node(NodeKind.IDENT, origin, name=name)]
        if value is not None:
            children.append(self._expr(value))
        return self._node(NodeKind.FIELD, origin, children, name=name, type_text=type_text,
                          visible=not name.startswith("_"), properties=properties)

    def _instance_fields(self, stmt: ast.AST) -> List[TreeNode]:
        if isinstance(stmt, ast.Assign):
            targets, value, type_text = stmt.targets, stmt.value, _infer_type(stmt.value)
        elif isinstance(stmt, ast.AnnAssign):
            targets, value, type_text = [stmt.target], stmt.value, _text(stmt.annotation)
        else:
            return []

        result = []
        for target in targets:
            if (isinstance(target, ast.Attribute) and isinstance(target.value, ast.Name)
                    and target.value.id == "self"):
                result.append(self._field(target.attr, stmt, value, type_text, static=False))
        return result

    def _var_section(self, stmt: Union[ast.Assign, ast.AnnAssign]) -> TreeNode:
        return self._node(NodeKind.VAR_SECTION, stmt, self._fields(stmt, static=True))

    def _assign(self, stmt: Union[ast.Assign, ast.AnnAssign]) -> TreeNode:
        targets = stmt.targets if isinstance(stmt, ast.Assign) else [stmt.target]
        children = [self._expr(target) for target in targets]
        children.append(self._expr(stmt.value))
        type_text = _text(stmt.annotation) if isinstance(stmt, ast.AnnAssign) else _infer_type(stmt.value)
        return self._node(NodeKind.ASSIGN, stmt, children,
                          name=", ".join(_text(target) for target in targets),
                          type_text=type_text)

    def _function(self, func: Union[ast.FunctionDef, ast.AsyncFunctionDef]) -> TreeNode:
        decorators = [_text(d) for d in func.decorator_list]
        static = any(d in ("staticmethod", "classmethod") for d in decorators)

        args = func.args
        params = []
        for arg in list(args.posonlyargs) + list(args.args) + list(args.kwonlyargs):
            params.append(self._param(arg))
        if args.vararg is not None:
            params.append(self._param(args.vararg, variadic="*"))
        if args.kwarg is not None:
            params.append(self._param(args.kwarg, variadic="**"))

        properties = {
            "static": "true" if static else "false",
            "async": "true" if isinstance(func, ast.AsyncFunctionDef) else "false",
            "decorators": ", ".join(decorators),
            "abstract": "true" if any(d.endswith("abstractmethod") for d in decorators) else "false",
        }
        children = [
            self._node(NodeKind.IDENT, func, name=func.name),
            TreeNode(kind=NodeKind.PARAMS, children=tuple(params), location=self._loc(func)),
            self._block(func.body),
        ]
        return self._node(NodeKind.PROC_DEF, func, children, name=func.name,
                          type_text=_text(func.returns), visible=_is_public(func.name),
                          properties=properties)

    def _param(self, arg: ast.arg, variadic: str = "") -> TreeNode:
        properties = {"variadic": variadic} if variadic else {}
        return self._node(NodeKind.FIELD, arg, [self._node(NodeKind.IDENT, arg, name=arg.arg)],
                          name=arg.arg, type_text=_text(arg.annotation),
                          visible=_is_public(arg.arg), properties=properties)

    def _expr(self, expr: Optional[ast.expr], operand: bool = False) -> Optional[TreeNode]:
        if expr is None:
            return None
        if isinstance(expr, ast.Name):
            return self._node(NodeKind.IDENT, expr, name=expr.id)
        if isinstance(expr, ast.Attribute):
            value = self._expr(expr.value)
            if value.kind in (NodeKind.IDENT, NodeKind.DOT_EXPR) and value.name:
                name = f"{value.name}.{expr.attr}"
            else:
                name = _text(expr)
            return self._node(NodeKind.DOT_EXPR, expr,
                              [value, self._node(NodeKind.IDENT, expr, name=expr.attr)], name=name)
        if isinstance(expr, ast.Call):
            callee = self._expr(expr.func)
            children = [callee]
            children.extend(self._expr(arg) for arg in expr.args)
            children.extend(self._expr(kw.value) for kw in expr.keywords)
            if callee.kind in (NodeKind.IDENT, NodeKind.DOT_EXPR) and callee.name:
                name = callee.name
            else:
                name = _text(expr.func)
            return self._node(NodeKind.CALL, expr, children, name=name)
        if isinstance(expr, ast.Constant):
            return self._node(NodeKind.LITERAL, expr, name=repr(expr.value),
                              type_text=type(expr.value).__name__)
        if isinstance(expr, (ast.List, ast.Tuple, ast.Set)):
            return self._node(NodeKind.COLLECTION, expr, [self._expr(e) for e in expr.elts],
                              type_text=type(expr).__name__.lower())
        if isinstance(expr, ast.Dict):
            children = [self._expr(k) for k in expr.keys] + [self._expr(v) for v in expr.values]
            return self._node(NodeKind.COLLECTION, expr, children, type_text="dict")
        if isinstance(expr, _OPERATOR_EXPRS):
            # Only the outermost expression of an operator chain carries its text
            children = [self._expr(c, operand=True) for c in ast.iter_child_nodes(expr)
                        if isinstance(c, ast.expr)]
            return self._node(NodeKind.EXPR, expr, children, name=None if operand else _text(expr))

        children = [self._expr(c) for c in ast.iter_child_nodes(expr) if isinstance(c, ast.expr)]
        return self._node(NodeKind.OTHER, expr, children, name=type(expr).__name__)


_MATCH = getattr(ast, "Match", None)
_TRY = tuple(t for t in (getattr(ast, "Try", None), getattr(ast, "TryStar", None)) if t is not None)


def _simple_targets(stmt: Union[ast.Assign, ast.AnnAssign]) -> bool:
    targets = stmt.targets if isinstance(stmt, ast.Assign) else [stmt.target]
    return all(isinstance(target, ast.Name) for target in targets)


def _statements_of(tree: TreeNode) -> Optional[List[ast.stmt]]:
    origin = tree.origin
    if isinstance(origin, ast.Module):
        return list(origin.body)
    if isinstance(origin, ast.stmt):
        return [origin]
    if tree.kind == NodeKind.STMT_LIST:
        statements = []
        for child in tree.children:
            if not isinstance(child.origin, ast.stmt):
                return None
            statements.append(child.origin)
        return statements
    return None


class _StatementReplacer(ast.NodeTransformer):
    """Swaps one statement (by identity) for a list of statements"""

    def __init__(self, target: ast.AST, replacement: List[ast.stmt]):
        self.target = target
        self.replacement = replacement

    def visit(self, node):
        if node is self.target:
            return self.replacement
        return super().visit(node)


def _is_docstring(stmt: ast.stmt) -> bool:
    return isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant) \
        and isinstance(stmt.value.value, str)


def _hoist_imports(module: ast.Module, imports: List[ast.stmt]):
    """Add imports missing from the module after its leading import block"""
    existing = {ast.dump(stmt) for stmt in module.body if isinstance(stmt, (ast.Import, ast.ImportFrom))}
    position = 0
    while position < len(module.body) and (_is_docstring(module.body[position]) or
                                         isinstance(module.body[position], (ast.Import, ast.ImportFrom))):
        position += 1
    for stmt in imports:
        if ast.dump(stmt) not in existing:
            existing.add(ast.dump(stmt))
            module.body.insert(position, stmt)
            position += 1


def _defined_names(stmt: ast.stmt) -> Set[str]:
    if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
        return {stmt.name}
    if isinstance(stmt, ast.Assign):
        return {target.id for target in stmt.targets if isinstance(target, ast.Name)}
    if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
        return {stmt.target.id}
    return set()


def _is_body_slot(stmt: ast.stmt) -> bool:
    return isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Name) \
        and stmt.value.id == slot("body")


def _members_of(origin: ast.AST) -> List[ast.stmt]:
    if isinstance(origin, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef, ast.Module)):
        return list(origin.body)
    if isinstance(origin, ast.stmt):
        return [origin]
    return []


def _splice(body: List[ast.stmt], members: List[ast.stmt]) -> List[ast.stmt]:
    defined = set()
    for stmt in body:
        defined |= _defined_names(stmt)

    docstring = []
    spliced = []
    for index, member in enumerate(members):
        if index == 0 and _is_docstring(member):
            docstring.append(copy.deepcopy(member))
            continue
        if _defined_names(member) & defined:
            continue
        spliced.append(copy.deepcopy(member))

    result = []
    for stmt in body:
        if _is_body_slot(stmt):
            result.extend(spliced)
        else:
            result.append(stmt)
    return docstring + result or [ast.Pass()]


def _splice_body_slots(tree: ast.Module, source: ast.AST):
    members = _members_of(source)
    owners = [owner for owner in ast.walk(tree)
              if isinstance(getattr(owner, "body", None), list)
              and any(_is_body_slot(stmt) for stmt in owner.body)]

    for owner in owners:
        owner.body = _splice(owner.body, members)
        if isinstance(owner, ast.ClassDef) and isinstance(source, ast.ClassDef) and not owner.bases:
            owner.bases = copy.deepcopy(source.bases)
            owner.keywords = copy.deepcopy(source.keywords)


class _SlotRewriter(ast.NodeTransformer):
    """Substitutes __slot_key__ markers inside identifiers and string constants"""

    def __init__(self, bindings: Mapping[str, str]):
        self.bindings = bindings

    def _sub(self, text):
        return substitute_slots(text, self.bindings)

    def visit_Name(self, node: ast.Name):
        node.id = self._sub(node.id)
        return node

    def visit_Attribute(self, node: ast.Attribute):
        node.attr = self._sub(node.attr)
        self.generic_visit(node)
        return node

    def visit_ClassDef(self, node: ast.ClassDef):
        node.name = self._sub(node.name)
        self.generic_visit(node)
        return node

    def visit_FunctionDef(self, node: ast.FunctionDef):
        node.name = self._sub(node.name)
        self.generic_visit(node)
        return node

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef):
        node.name = self._sub(node.name)
        self.generic_visit(node)
        return node

    def visit_arg(self, node: ast.arg):
        node.arg = self._sub(node.arg)
        self.generic_visit(node)
        return node

    def visit_Constant(self, node: ast.Constant):
        if isinstance(node.value, str):
            node.value = self._sub(node.value)
        return node
