"""
基于 Tree-sitter 的 TypeScript / JavaScript 源码模型

- Tree-sitter: 解析语法结构（变量、函数、类、方法、调用、实参）
- 词法作用域解析：标识符 -> 声明（支持提升、参数、import，相对路径 import 会跟随到目标文件的导出声明）
- 引用查找：声明 -> 所有已加载文件中解析到它的标识符

构造体以 (文件, 节点类型, 起止字节, 角色) 为身份；实参位置与实参表达式是不同的构造体。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from loguru import logger
from tree_sitter_language_pack import get_parser

from ..utils.errors import StructuralError
from .source_model import ConstructKind, SourceModel


ROLE_NODE = "node"
ROLE_ARGUMENT = "argument"
# `export default function () {...}`：按函数声明处理的默认导出函数表达式
ROLE_DEFAULT_EXPORT = "default_export"

# 扩展名 -> Tree-sitter 语言
EXTENSION_LANGUAGES = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

# 相对 import 的候选扩展名（按优先级）
RESOLVE_EXTENSIONS = (".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs")

NODE_KINDS = {
    "variable_declarator": ConstructKind.VARIABLE_DECLARATION,
    "function_declaration": ConstructKind.FUNCTION_DECLARATION,
    "generator_function_declaration": ConstructKind.FUNCTION_DECLARATION,
    "method_definition": ConstructKind.METHOD_DECLARATION,
    "class_declaration": ConstructKind.CLASS_DECLARATION,
    "abstract_class_declaration": ConstructKind.CLASS_DECLARATION,
    "function_expression": ConstructKind.FUNCTION_EXPRESSION,
    "function": ConstructKind.FUNCTION_EXPRESSION,
    "generator_function": ConstructKind.FUNCTION_EXPRESSION,
    "arrow_function": ConstructKind.ARROW_FUNCTION,
    "call_expression": ConstructKind.CALL_EXPRESSION,
    "identifier": ConstructKind.IDENTIFIER,
    "member_expression": ConstructKind.PROPERTY_ACCESS,
}

VARIABLE_STATEMENTS = {"lexical_declaration", "variable_declaration"}
FUNCTION_DECLARATIONS = {"function_declaration", "generator_function_declaration"}
CLASS_DECLARATIONS = {"class_declaration", "abstract_class_declaration"}
FUNCTION_SCOPES = {
    "function_declaration", "generator_function_declaration", "function_expression", "function",
    "generator_function", "arrow_function", "method_definition",
}
BLOCK_SCOPES = {"program", "statement_block", "switch_body"}
LOOP_SCOPES = {"for_statement", "for_in_statement"}
IMPORT_BINDINGS = {"import_specifier", "namespace_import"}
DEFAULT_EXPORT_FUNCTIONS = {"function_expression", "function", "generator_function"}
ACCESSOR_TOKENS = {"get", "set"}


@dataclass(frozen=True)
class TSConstruct:
    """语法元素句柄：只按身份字段比较，不比较底层节点对象"""
    path: str
    node_type: str
    start_byte: int
    end_byte: int
    role: str = ROLE_NODE
    node: Any = field(default=None, compare=False, hash=False, repr=False)


@dataclass
class TSSourceFile:
    """已解析的源文件"""
    path: str
    language: str
    source: bytes
    tree: Any

    @property
    def root(self):
        return self.tree.root_node

    def node_text(self, node) -> str:
        return self.source[node.start_byte: node.end_byte].decode(errors="ignore")


class TSSourceModel(SourceModel):
    """基于 Tree-sitter 的 TypeScript / JavaScript 源码模型"""

    def __init__(self) -> None:
        self._parsers: Dict[str, Any] = {}
        self._files: Dict[str, TSSourceFile] = {}

        # 解析缓存
        self._scope_bindings: Dict[Tuple[str, int, int, str], Dict[str, List[Any]]] = {}
        self._definitions: Dict[TSConstruct, List[TSConstruct]] = {}
        self._identifier_index: Optional[Dict[str, List[Tuple[TSSourceFile, Any]]]] = None

    # --------------------------
    # 文件加载
    # --------------------------

    def _get_parser(self, language: str):
        parser = self._parsers.get(language)
        if parser is None:
            parser = get_parser(language)
            self._parsers[language] = parser
            logger.debug(f"Tree-sitter {language} 解析器初始化完成")
        return parser

    @staticmethod
    def detect_language(file_path: Path) -> Optional[str]:
        """检测文件语言（声明文件 .d.ts 不参与分析）"""
        if file_path.name.endswith(".d.ts"):
            return None
        return EXTENSION_LANGUAGES.get(file_path.suffix.lower())

    def add_file(self, file_path: Path) -> Optional[TSSourceFile]:
        """读取并解析文件，不支持的扩展名返回 None"""
        file_path = Path(file_path).resolve()
        if self.detect_language(file_path) is None:
            logger.debug(f"跳过不支持的文件: {file_path}")
            return None
        return self.add_source(file_path, file_path.read_bytes())

    def add_source(self, file_path: Path, source) -> TSSourceFile:
        """解析源码文本；file_path 决定语言和节点位置"""
        file_path = Path(file_path)
        language = self.detect_language(file_path)
        if language is None:
            raise ValueError(f"不支持的源文件类型: {file_path}")
        if isinstance(source, str):
            source = source.encode("utf-8")

        tree = self._get_parser(language).parse(source)
        if tree.root_node.has_error:
            # Tree-sitter 可以容错，继续处理
            logger.debug(f"Tree-sitter 解析包含错误 {file_path}")

        source_file = TSSourceFile(path=str(file_path), language=language, source=source, tree=tree)
        self._files[source_file.path] = source_file
        self._reset_caches()
        return source_file

    def _reset_caches(self) -> None:
        self._scope_bindings.clear()
        self._definitions.clear()
        self._identifier_index = None

    def _file_of(self, construct: TSConstruct) -> TSSourceFile:
        return self._files[construct.path]

    def _wrap(self, path: str, node, role: str = ROLE_NODE) -> TSConstruct:
        return TSConstruct(path, node.type, node.start_byte, node.end_byte, role, node)

    # --------------------------
    # 声明枚举
    # --------------------------

    def source_files(self) -> List[TSSourceFile]:
        return list(self._files.values())

    def file_name(self, source_file: TSSourceFile) -> str:
        return source_file.path

    def _top_level_statements(self, source_file: TSSourceFile) -> Iterator[Any]:
        """顶层语句，export 语句展开为其中的声明"""
        for child in source_file.root.named_children:
            if child.type != "export_statement":
                yield child
                continue
            declaration = child.child_by_field_name("declaration")
            if declaration is None:
                declaration = self._default_export_function(child)
            if declaration is not None:
                yield declaration

    def variable_declarations(self, source_file: TSSourceFile) -> List[TSConstruct]:
        declarations = []
        for statement in self._top_level_statements(source_file):
            if statement.type in VARIABLE_STATEMENTS:
                declarations.extend(
                    self._wrap(source_file.path, d) for d in self._named_declarators(statement)
                )
        return declarations

    def function_declarations(self, source_file: TSSourceFile) -> List[TSConstruct]:
        declarations = []
        for statement in self._top_level_statements(source_file):
            if statement.type in FUNCTION_DECLARATIONS:
                declarations.append(self._wrap(source_file.path, statement))
            elif statement.type in DEFAULT_EXPORT_FUNCTIONS:
                declarations.append(self._wrap(source_file.path, statement, ROLE_DEFAULT_EXPORT))
        return declarations

    @staticmethod
    def _default_export_function(statement):
        """`export default function () {...}` 中的函数表达式，其他情况返回 None"""
        if not any(child.type == "default" for child in statement.children):
            return None
        value = statement.child_by_field_name("value")
        if value is not None and value.type in DEFAULT_EXPORT_FUNCTIONS:
            return value
        return None

    def class_declarations(self, source_file: TSSourceFile) -> List[TSConstruct]:
        return [
            self._wrap(source_file.path, statement)
            for statement in self._top_level_statements(source_file)
            if statement.type in CLASS_DECLARATIONS
        ]

    def methods(self, class_declaration: TSConstruct) -> List[TSConstruct]:
        body = class_declaration.node.child_by_field_name("body")
        if body is None:
            return []
        return [
            self._wrap(class_declaration.path, member)
            for member in body.named_children
            if member.type == "method_definition" and not self._is_accessor(member)
        ]

    @staticmethod
    def _is_accessor(member) -> bool:
        # get / set 访问器不是方法
        return any(child.type in ACCESSOR_TOKENS for child in member.children)

    @staticmethod
    def _named_declarators(statement) -> List[Any]:
        # 解构绑定（`const { a } = b`）不作为数据流起点
        declarators = []
        for child in statement.named_children:
            if child.type != "variable_declarator":
                continue
            name = child.child_by_field_name("name")
            if name is not None and name.type == "identifier":
                declarators.append(child)
        return declarators

    # --------------------------
    # 结构查询
    # --------------------------

    def kind(self, construct: TSConstruct) -> ConstructKind:
        if construct.role == ROLE_ARGUMENT:
            return ConstructKind.ARGUMENT
        if construct.role == ROLE_DEFAULT_EXPORT:
            return ConstructKind.FUNCTION_DECLARATION
        return NODE_KINDS.get(construct.node_type, ConstructKind.OTHER)

    def parent(self, construct: TSConstruct) -> TSConstruct:
        parent = construct.node.parent
        if parent is None:
            raise StructuralError("节点没有父节点", self._location(construct))
        return self._wrap(construct.path, parent)

    def enclosing_statement(self, declaration: TSConstruct) -> TSConstruct:
        statement = declaration.node.parent
        if statement is None or statement.type not in VARIABLE_STATEMENTS:
            raise StructuralError("变量声明缺少外层声明语句", self._location(declaration))
        return self._wrap(declaration.path, statement)

    def statement_declarations(self, statement: TSConstruct) -> List[TSConstruct]:
        return [self._wrap(statement.path, d) for d in self._named_declarators(statement.node)]

    def initializer(self, declaration: TSConstruct) -> TSConstruct:
        value = declaration.node.child_by_field_name("value")
        if value is None:
            raise StructuralError(
                f"变量 {self.symbol_name(declaration)} 缺少初始化表达式", self._location(declaration)
            )
        return self._wrap(declaration.path, value)

    def is_exported(self, declaration: TSConstruct) -> bool:
        statement = declaration.node.parent
        if statement is not None and statement.parent is not None and statement.parent.type == "export_statement":
            return True
        # `export { foo }` 形式
        if statement is None or statement.parent is None or statement.parent.type != "program":
            return False
        source_file = self._file_of(declaration)
        return self.symbol_name(declaration) in self._export_clause_names(source_file)

    def body(self, function_like: TSConstruct) -> TSConstruct:
        body = function_like.node.child_by_field_name("body")
        if body is None:
            raise StructuralError("函数缺少函数体", self._location(function_like))
        return self._wrap(function_like.path, body)

    def nested_calls(self, construct: TSConstruct) -> List[TSConstruct]:
        calls = []
        # 前序遍历，保持文档顺序
        stack = list(reversed(construct.node.named_children))
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                calls.append(self._wrap(construct.path, node))
            stack.extend(reversed(node.named_children))
        return calls

    def callee(self, call: TSConstruct) -> TSConstruct:
        function = call.node.child_by_field_name("function")
        if function is None:
            raise StructuralError("调用表达式缺少被调用部分", self._location(call))
        return self._wrap(call.path, function)

    def arguments(self, call: TSConstruct) -> List[TSConstruct]:
        args = call.node.child_by_field_name("arguments")
        # 标签模板调用的 arguments 是 template_string，没有实参列表
        if args is None or args.type != "arguments":
            return []
        return [
            self._wrap(call.path, arg, ROLE_ARGUMENT)
            for arg in args.named_children
            if arg.type != "comment"
        ]

    def argument_expression(self, argument: TSConstruct) -> TSConstruct:
        return self._wrap(argument.path, argument.node)

    # --------------------------
    # 名称解析
    # --------------------------

    def definitions(self, identifier: TSConstruct) -> List[TSConstruct]:
        cached = self._definitions.get(identifier)
        if cached is not None:
            return cached

        source_file = self._file_of(identifier)
        name = source_file.node_text(identifier.node)
        resolved: List[TSConstruct] = []
        for binding in self._lookup(source_file, identifier.node, name):
            if self._is_import_binding(binding):
                resolved.extend(self._follow_import(source_file, binding, name))
            else:
                resolved.append(self._wrap(source_file.path, binding))

        self._definitions[identifier] = resolved
        return resolved

    @staticmethod
    def _is_import_binding(node) -> bool:
        if node.type in IMPORT_BINDINGS:
            return True
        # 默认导入的标识符
        return node.type == "identifier" and node.parent is not None and node.parent.type == "import_clause"

    def _lookup(self, source_file: TSSourceFile, node, name: str) -> List[Any]:
        """沿词法作用域向外查找名称的绑定"""
        scope = node.parent
        while scope is not None:
            if self._is_scope(scope):
                bindings = self._bindings_of(source_file, scope).get(name)
                if bindings:
                    return bindings
            scope = scope.parent
        return []

    @staticmethod
    def _is_scope(node) -> bool:
        return node.type in BLOCK_SCOPES or node.type in FUNCTION_SCOPES \
            or node.type in LOOP_SCOPES or node.type == "catch_clause"

    def _bindings_of(self, source_file: TSSourceFile, scope) -> Dict[str, List[Any]]:
        key = (source_file.path, scope.start_byte, scope.end_byte, scope.type)
        cached = self._scope_bindings.get(key)
        if cached is not None:
            return cached

        bindings: Dict[str, List[Any]] = {}

        def bind(name_node, declaration) -> None:
            if name_node is None:
                return
            declarations = bindings.setdefault(source_file.node_text(name_node), [])
            if not any(self._same_node(d, declaration) for d in declarations):
                declarations.append(declaration)

        if scope.type in FUNCTION_SCOPES:
            for name_node, declaration in self._parameter_bindings(scope):
                bind(name_node, declaration)
            body = scope.child_by_field_name("body")
            if body is not None:
                for name_node, declaration in self._hoisted_var_bindings(body):
                    bind(name_node, declaration)
        elif scope.type in LOOP_SCOPES:
            for field_name in ("initializer", "left"):
                head = scope.child_by_field_name(field_name)
                if head is None:
                    continue
                if head.type == "identifier":
                    bind(head, head)
                else:
                    for name_node, declaration in self._statement_bindings(head):
                        bind(name_node, declaration)
        elif scope.type == "catch_clause":
            parameter = scope.child_by_field_name("parameter")
            if parameter is not None and parameter.type == "identifier":
                bind(parameter, parameter)
        else:
            statements = scope.named_children
            if scope.type == "switch_body":
                statements = [s for case in scope.named_children for s in case.named_children]
            for statement in statements:
                for name_node, declaration in self._statement_bindings(statement):
                    bind(name_node, declaration)
            if scope.type == "program":
                for name_node, declaration in self._hoisted_var_bindings(scope):
                    bind(name_node, declaration)

        self._scope_bindings[key] = bindings
        return bindings

    @staticmethod
    def _same_node(a, b) -> bool:
        return a.type == b.type and a.start_byte == b.start_byte and a.end_byte == b.end_byte

    def _hoisted_var_bindings(self, root) -> Iterator[Tuple[Any, Any]]:
        """嵌套块中的 `var` 声明提升到外层函数（或程序）作用域；不进入嵌套函数"""
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type in FUNCTION_SCOPES:
                continue
            if node.type == "variable_declaration":
                for declarator in self._named_declarators(node):
                    yield declarator.child_by_field_name("name"), declarator
            stack.extend(reversed(node.named_children))

    def _statement_bindings(self, statement) -> Iterator[Tuple[Any, Any]]:
        """语句引入的 (名称节点, 声明节点)"""
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
            if declaration is not None:
                yield from self._statement_bindings(declaration)
        elif statement.type in VARIABLE_STATEMENTS:
            for declarator in self._named_declarators(statement):
                yield declarator.child_by_field_name("name"), declarator
        elif statement.type in FUNCTION_DECLARATIONS or statement.type in CLASS_DECLARATIONS:
            yield statement.child_by_field_name("name"), statement
        elif statement.type == "import_statement":
            yield from self._import_bindings(statement)

    @staticmethod
    def _parameter_bindings(function_node) -> Iterator[Tuple[Any, Any]]:
        single = function_node.child_by_field_name("parameter")
        if single is not None and single.type == "identifier":
            yield single, single
        parameters = function_node.child_by_field_name("parameters")
        if parameters is None:
            return
        for param in parameters.named_children:
            if param.type == "identifier":
                yield param, param
            elif param.type in ("required_parameter", "optional_parameter"):
                pattern = param.child_by_field_name("pattern")
                if pattern is not None and pattern.type == "identifier":
                    yield pattern, param
            elif param.type == "assignment_pattern":
                left = param.child_by_field_name("left")
                if left is not None and left.type == "identifier":
                    yield left, param
            elif param.type == "rest_pattern":
                for child in param.named_children:
                    if child.type == "identifier":
                        yield child, param

    @staticmethod
    def _import_bindings(statement) -> Iterator[Tuple[Any, Any]]:
        for clause in statement.named_children:
            if clause.type != "import_clause":
                continue
            for part in clause.named_children:
                if part.type == "identifier":
                    # 默认导入
                    yield part, part
                elif part.type == "namespace_import":
                    for child in part.named_children:
                        if child.type == "identifier":
                            yield child, part
                elif part.type == "named_imports":
                    for specifier in part.named_children:
                        if specifier.type != "import_specifier":
                            continue
                        local = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
                        yield local, specifier

    # --------------------------
    # import / export 跟随
    # --------------------------

    def _follow_import(self, source_file: TSSourceFile, binding, local_name: str) -> List[TSConstruct]:
        """相对路径 import 跟随到目标文件的导出声明，找不到时以 import 本身为定义"""
        statement = binding.parent
        while statement is not None and statement.type != "import_statement":
            statement = statement.parent
        target = self._resolve_module(source_file, statement) if statement is not None else None

        if target is not None and binding.type != "namespace_import":
            if binding.type == "import_specifier":
                imported = source_file.node_text(binding.child_by_field_name("name"))
            else:
                imported = "default"
            found = self._exported_declarations(target, imported, set())
            if found:
                return found
        return [self._wrap(source_file.path, binding)]

    def _resolve_module(self, source_file: TSSourceFile, statement) -> Optional[TSSourceFile]:
        module_node = statement.child_by_field_name("source")
        if module_node is None:
            return None
        specifier = source_file.node_text(module_node).strip("'\"`")
        if not specifier.startswith("."):
            return None

        base = Path(source_file.path).parent / specifier
        candidates = [base]
        # TS 惯例：`./foo.js` 指向 foo.ts
        if base.suffix in (".js", ".jsx", ".mjs", ".cjs"):
            candidates.append(base.with_suffix(""))
        for stem in list(candidates):
            candidates.extend(Path(f"{stem}{ext}") for ext in RESOLVE_EXTENSIONS)
            candidates.extend(stem / f"index{ext}" for ext in RESOLVE_EXTENSIONS)

        for candidate in candidates:
            target = self._files.get(str(candidate.resolve()))
            if target is not None:
                return target
        return None

    def _exported_declarations(self, target: TSSourceFile, name: str, seen: set) -> List[TSConstruct]:
        key = (target.path, name)
        if key in seen:
            return []
        seen.add(key)

        root = target.root
        for statement in root.named_children:
            if statement.type != "export_statement":
                continue
            is_default = any(child.type == "default" for child in statement.children)
            declaration = statement.child_by_field_name("declaration")
            value = statement.child_by_field_name("value")

            if name == "default" and is_default:
                if declaration is not None:
                    return [self._wrap(target.path, declaration)]
                if value is None:
                    return []
                if value.type == "identifier":
                    return [self._wrap(target.path, b) for b in self._lookup(target, value, target.node_text(value))]
                if value.type in DEFAULT_EXPORT_FUNCTIONS:
                    return [self._wrap(target.path, value, ROLE_DEFAULT_EXPORT)]
                return [self._wrap(target.path, value)]

            if declaration is not None and not is_default:
                for name_node, declared in self._statement_bindings(declaration):
                    if name_node is not None and target.node_text(name_node) == name:
                        return [self._wrap(target.path, declared)]

            for local, exported in self._export_specifiers(target, statement):
                if exported != name:
                    continue
                if statement.child_by_field_name("source") is not None:
                    # `export { x } from './y'`
                    module = self._resolve_module(target, statement)
                    return self._exported_declarations(module, local, seen) if module else []
                return [self._wrap(target.path, b) for b in self._bindings_of(target, root).get(local, [])]
        return []

    @staticmethod
    def _export_specifiers(source_file: TSSourceFile, statement) -> Iterator[Tuple[str, str]]:
        """export 子句中的 (本地名, 导出名)"""
        for clause in statement.named_children:
            if clause.type != "export_clause":
                continue
            for specifier in clause.named_children:
                if specifier.type != "export_specifier":
                    continue
                local = source_file.node_text(specifier.child_by_field_name("name"))
                alias = specifier.child_by_field_name("alias")
                yield local, source_file.node_text(alias) if alias is not None else local

    def _export_clause_names(self, source_file: TSSourceFile) -> set:
        names = set()
        for statement in source_file.root.named_children:
            if statement.type == "export_statement" and statement.child_by_field_name("source") is None:
                names.update(local for local, _ in self._export_specifiers(source_file, statement))
        return names

    # --------------------------
    # 引用查找
    # --------------------------

    def _build_identifier_index(self) -> Dict[str, List[Tuple[TSSourceFile, Any]]]:
        index: Dict[str, List[Tuple[TSSourceFile, Any]]] = {}
        for source_file in self._files.values():
            stack = [source_file.root]
            while stack:
                node = stack.pop()
                if node.type == "identifier":
                    index.setdefault(source_file.node_text(node), []).append((source_file, node))
                stack.extend(reversed(node.named_children))
        return index

    def references(self, declaration: TSConstruct) -> List[TSConstruct]:
        if self._identifier_index is None:
            self._identifier_index = self._build_identifier_index()

        references = []
        for source_file, node in self._identifier_index.get(self.symbol_name(declaration), []):
            identifier = self._wrap(source_file.path, node)
            if declaration in self.definitions(identifier):
                references.append(identifier)
        return references

    # --------------------------
    # 文本与位置
    # --------------------------

    def text(self, construct: TSConstruct) -> str:
        return self._file_of(construct).node_text(construct.node)

    def file_path(self, construct: TSConstruct) -> str:
        return construct.path

    def start_line(self, construct: TSConstruct) -> int:
        return construct.node.start_point[0] + 1

    def symbol_name(self, construct: TSConstruct) -> str:
        name = construct.node.child_by_field_name("name")
        if name is None:
            if construct.role == ROLE_DEFAULT_EXPORT:
                return "default"
            raise StructuralError(f"{construct.node_type} 缺少名称", self._location(construct))
        return self._file_of(construct).node_text(name)

    def _location(self, construct: TSConstruct) -> str:
        return f"{construct.path}:{self.start_line(construct)}"
