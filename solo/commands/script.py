#!/usr/bin/env python3
# solo/commands/script.py
from __future__ import annotations

"""
Safe expression language for user-authored commands.

A custom command body is a single expression, parsed with `ast` in eval mode
and evaluated by a small tree walker. Nothing from the host runtime is
reachable: names, attributes, functions and methods are all allow-listed, and
each evaluation runs under a step budget.

Accepted conveniences for bodies written in a C-like style:
- an optional leading `return` and trailing `;`
- `&&`, `||`, `!`, `===`, `!==` (rewritten outside string literals)
- `true`, `false`, `null`, `undefined`
- `args.length`, `args.join(" ")`, `s.toUpperCase()` ...

Example:
    >>> script = compile_script('return "hello " + args[0];')
    >>> script(["world"], SessionContext()).result
    'hello world'
"""

import ast
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Sequence

from solo.commands.command_types import (
    CommandResult,
    CompileError,
    ScriptError,
    ScriptTimeout,
    SessionContext,
)
from solo.ui import escape_markup

DEFAULT_STEP_BUDGET = 10_000
DEFAULT_MAX_OUTPUT = 4_096
MAX_SOURCE_LENGTH = 4_000
MAX_NESTING = 200

_RETURN_RE = re.compile(r"^\s*return\b\s*")

_CONSTANT_NAMES: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}
_BOUND_NAMES = {"args", "context", "user"}

_READABLE_ATTRS = {
    "user", "current_view", "currentView",
    "id", "username", "is_admin", "isAdmin", "status", "bio", "contact",
    "length",
}

_ALLOWED_NODES: tuple[type, ...] = (
    ast.Expression, ast.Constant, ast.Name, ast.Load,
    ast.BinOp, ast.Add, ast.Sub, ast.Mult, ast.Div, ast.FloorDiv, ast.Mod,
    ast.UnaryOp, ast.Not, ast.USub, ast.UAdd,
    ast.BoolOp, ast.And, ast.Or,
    ast.Compare, ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE, ast.In, ast.NotIn,
    ast.IfExp, ast.List, ast.Tuple, ast.Subscript, ast.Slice,
    ast.Attribute, ast.Call, ast.JoinedStr, ast.FormattedValue,
)


# ---------------- Source normalization ----------------

def _rewrite_operators(source: str) -> str:
    """Translate C-style logical operators to Python, leaving string literals alone."""
    out: list[str] = []
    i = 0
    quote: str | None = None
    while i < len(source):
        ch = source[i]
        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < len(source):
                out.append(source[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in ("'", '"'):
            quote = ch
            out.append(ch)
            i += 1
            continue
        pair = source[i:i + 2]
        triple = source[i:i + 3]
        if triple in ("===", "!=="):
            out.append("==" if triple == "===" else "!=")
            i += 3
        elif pair == "&&":
            out.append(" and ")
            i += 2
        elif pair == "||":
            out.append(" or ")
            i += 2
        elif ch == "!" and pair != "!=":
            out.append(" not ")
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def normalize_source(source: str) -> str:
    """Strip `return`/`;` wrappers and rewrite C-style operators."""
    text = (source or "").strip()
    text = _RETURN_RE.sub("", text, count=1)
    text = text.rstrip().rstrip(";").rstrip()
    return _rewrite_operators(text)


# ---------------- Validation ----------------

def _depth(root: ast.AST) -> int:
    deepest = 0
    stack = [(root, 0)]
    while stack:
        node, level = stack.pop()
        deepest = max(deepest, level)
        stack.extend((child, level + 1) for child in ast.iter_child_nodes(node))
    return deepest


def _validate(tree: ast.Expression) -> None:
    if _depth(tree) > MAX_NESTING:
        raise CompileError("expression is nested too deeply")

    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise CompileError(f"'{type(node).__name__}' is not allowed in commands")

        if isinstance(node, ast.Constant):
            if not isinstance(node.value, (str, int, float, bool, type(None))):
                raise CompileError(f"literal of type {type(node.value).__name__} is not allowed")

        elif isinstance(node, ast.Name):
            if node.id not in _BOUND_NAMES and node.id not in _CONSTANT_NAMES \
                    and not _is_function(node.id):
                raise CompileError(f"unknown name '{node.id}'")

        elif isinstance(node, ast.Call):
            if node.keywords or any(isinstance(a, ast.Starred) for a in node.args):
                raise CompileError("keyword and star arguments are not allowed")
            func = node.func
            if isinstance(func, ast.Name):
                if not _is_function(func.id):
                    raise CompileError(f"unknown function '{func.id}'")
            elif isinstance(func, ast.Attribute):
                if func.attr not in METHODS:
                    raise CompileError(f"unknown method '{func.attr}'")
            else:
                raise CompileError("only named functions can be called")

        elif isinstance(node, ast.Attribute):
            if node.attr.startswith("_"):
                raise CompileError(f"attribute '{node.attr}' is not allowed")
            # Method names are checked on the Call node
            if node.attr not in _READABLE_ATTRS and node.attr not in METHODS:
                raise CompileError(f"attribute '{node.attr}' is not allowed")

        elif isinstance(node, ast.FormattedValue):
            if node.format_spec is not None or node.conversion not in (-1, ord("s")):
                raise CompileError("format specs are not allowed in f-strings")


# ---------------- Runtime values ----------------

class _Record:
    """Read-only attribute bag exposed to scripts in place of host objects."""

    __slots__ = ("_fields", "_kind")

    def __init__(self, kind: str, fields: dict[str, Any]) -> None:
        self._kind = kind
        self._fields = fields

    def read(self, attr: str) -> Any:
        if attr not in self._fields:
            raise ScriptError(f"{self._kind} has no field '{attr}'")
        return self._fields[attr]

    def __repr__(self) -> str:
        return f"[{self._kind}]"


def _user_record(user: Any) -> _Record | None:
    if user is None:
        return None
    is_admin = bool(getattr(user, "is_admin", False))
    return _Record("user", {
        "id": getattr(user, "id", None),
        "username": getattr(user, "username", ""),
        "is_admin": is_admin,
        "isAdmin": is_admin,
        "status": getattr(user, "status", "") or "",
        "bio": getattr(user, "bio", "") or "",
        "contact": getattr(user, "contact", "") or "",
    })


def _context_record(context: SessionContext | None) -> _Record:
    user = _user_record(getattr(context, "user", None))
    view = getattr(context, "current_view", "main")
    return _Record("context", {"user": user, "current_view": view, "currentView": view})


def to_text(value: Any) -> str:
    """Render a script value the way string concatenation shows it."""
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else to_text(v) for v in value)
    if isinstance(value, _Record):
        return repr(value)
    return str(value)


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ScriptError(f"not a number: {to_text(value)!r}") from exc


def _join(seq: Any, sep: Any = " ") -> str:
    if not isinstance(seq, (list, tuple)):
        raise ScriptError("join expects a list")
    return to_text(sep).join("" if v is None else to_text(v) for v in seq)


def _reverse(value: Any) -> Any:
    if isinstance(value, str):
        return value[::-1]
    if isinstance(value, (list, tuple)):
        return list(reversed(value))
    raise ScriptError("reverse expects text or a list")


def _default(value: Any, fallback: Any) -> Any:
    return fallback if value is None or value == "" else value


def _is_function(name: str) -> bool:
    return name in FUNCTIONS or name in _INLINE_FUNCTIONS


def _len(value: Any) -> int:
    if isinstance(value, (str, list, tuple)):
        return len(value)
    raise ScriptError("len expects text or a list")


FUNCTIONS: dict[str, Callable[..., Any]] = {
    "len": _len,
    "str": to_text,
    "int": _as_int,
    "upper": lambda s: to_text(s).upper(),
    "lower": lambda s: to_text(s).lower(),
    "title": lambda s: to_text(s).title(),
    "join": _join,
    "reverse": _reverse,
    "replace": lambda s, old, new: to_text(s).replace(to_text(old), to_text(new)),
    "default": _default,
    "now": lambda: datetime.now().strftime("%Y-%m-%d %H:%M"),
}
# Evaluated inline so the output cap applies before the string is built
_INLINE_FUNCTIONS = {"repeat"}

METHODS = {
    "upper", "toUpperCase", "lower", "toLowerCase", "strip", "trim", "title",
    "join", "split", "startswith", "startsWith", "endswith", "endsWith", "includes",
}


# ---------------- Evaluator ----------------

class _Evaluator:
    def __init__(self, names: dict[str, Any], step_budget: int, max_output: int) -> None:
        self._names = names
        self._steps_left = step_budget
        self._step_budget = step_budget
        self._max_output = max_output

    def _check_size(self, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            # Lists are measured by the text they render to
            size = len(to_text(value))
        elif isinstance(value, str):
            size = len(value)
        else:
            return value
        if size > self._max_output:
            raise ScriptError(f"output exceeds {self._max_output} characters")
        return value

    def eval(self, node: ast.AST) -> Any:
        self._steps_left -= 1
        if self._steps_left < 0:
            raise ScriptTimeout(f"step budget of {self._step_budget} exhausted")
        method = getattr(self, f"_eval_{type(node).__name__}", None)
        if method is None:  # pragma: no cover - validation rejects these
            raise ScriptError(f"cannot evaluate {type(node).__name__}")
        return method(node)

    def _eval_Expression(self, node: ast.Expression) -> Any:
        return self.eval(node.body)

    def _eval_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def _eval_Name(self, node: ast.Name) -> Any:
        if node.id in self._names:
            return self._names[node.id]
        if node.id in _CONSTANT_NAMES:
            return _CONSTANT_NAMES[node.id]
        raise ScriptError(f"'{node.id}' is a function, not a value")

    def _eval_List(self, node: ast.List) -> list[Any]:
        return self._check_size([self.eval(e) for e in node.elts])

    _eval_Tuple = _eval_List

    def _eval_JoinedStr(self, node: ast.JoinedStr) -> str:
        parts = []
        for value in node.values:
            if isinstance(value, ast.Constant):
                parts.append(str(value.value))
            else:
                parts.append(to_text(self.eval(value)))
        return self._check_size("".join(parts))

    def _eval_FormattedValue(self, node: ast.FormattedValue) -> Any:
        return self.eval(node.value)

    def _eval_BoolOp(self, node: ast.BoolOp) -> Any:
        value: Any = None
        for operand in node.values:
            value = self.eval(operand)
            if isinstance(node.op, ast.And) and not value:
                return value
            if isinstance(node.op, ast.Or) and value:
                return value
        return value

    def _eval_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.eval(node.operand)
        if isinstance(node.op, ast.Not):
            return not operand
        if not isinstance(operand, (int, float)) or isinstance(operand, bool):
            raise ScriptError("unary minus/plus expects a number")
        return -operand if isinstance(node.op, ast.USub) else +operand

    def _eval_BinOp(self, node: ast.BinOp) -> Any:
        left = self.eval(node.left)
        right = self.eval(node.right)
        op = node.op

        if isinstance(op, ast.Add):
            if isinstance(left, str) or isinstance(right, str):
                return self._check_size(to_text(left) + to_text(right))
            if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
                return self._check_size(list(left) + list(right))

        if isinstance(op, ast.Mult):
            if isinstance(left, str) and isinstance(right, int) and not isinstance(right, bool):
                return self._repeat(left, right)
            if isinstance(right, str) and isinstance(left, int) and not isinstance(left, bool):
                return self._repeat(right, left)

        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (left, right)):
            raise ScriptError(
                f"unsupported operands for {type(op).__name__}: {to_text(left)!r}, {to_text(right)!r}")
        try:
            if isinstance(op, ast.Add):
                return left + right
            if isinstance(op, ast.Sub):
                return left - right
            if isinstance(op, ast.Mult):
                return left * right
            if isinstance(op, ast.Div):
                return left / right
            if isinstance(op, ast.FloorDiv):
                return left // right
            if isinstance(op, ast.Mod):
                return left % right
        except ZeroDivisionError as exc:
            raise ScriptError("division by zero") from exc
        raise ScriptError(f"unsupported operator {type(op).__name__}")  # pragma: no cover

    def _repeat(self, text: str, times: int) -> str:
        if times < 0:
            times = 0
        if len(text) * times > self._max_output:
            raise ScriptError(f"output exceeds {self._max_output} characters")
        return text * times

    def _eval_Compare(self, node: ast.Compare) -> bool:
        left = self.eval(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.eval(comparator)
            try:
                if isinstance(op, ast.Eq):
                    ok = left == right
                elif isinstance(op, ast.NotEq):
                    ok = left != right
                elif isinstance(op, ast.Lt):
                    ok = left < right
                elif isinstance(op, ast.LtE):
                    ok = left <= right
                elif isinstance(op, ast.Gt):
                    ok = left > right
                elif isinstance(op, ast.GtE):
                    ok = left >= right
                elif isinstance(op, ast.In):
                    ok = left in right
                else:
                    ok = left not in right
            except TypeError as exc:
                raise ScriptError(f"cannot compare {to_text(left)!r} and {to_text(right)!r}") from exc
            if not ok:
                return False
            left = right
        return True

    def _eval_IfExp(self, node: ast.IfExp) -> Any:
        return self.eval(node.body) if self.eval(node.test) else self.eval(node.orelse)

    def _eval_Subscript(self, node: ast.Subscript) -> Any:
        target = self.eval(node.value)
        if not isinstance(target, (str, list, tuple)):
            raise ScriptError("only text and lists can be indexed")
        if isinstance(node.slice, ast.Slice):
            parts = [None if p is None else self.eval(p)
                     for p in (node.slice.lower, node.slice.upper, node.slice.step)]
            lower, upper, step = (None if p is None else _as_int(p) for p in parts)
            if step == 0:
                raise ScriptError("slice step cannot be zero")
            return target[lower:upper:step]
        index = _as_int(self.eval(node.slice))
        if -len(target) <= index < len(target):
            return target[index]
        return None

    def _eval_Attribute(self, node: ast.Attribute) -> Any:
        target = self.eval(node.value)
        if node.attr == "length" and isinstance(target, (str, list, tuple)):
            return len(target)
        if isinstance(target, _Record):
            return target.read(node.attr)
        if target is None:
            raise ScriptError(f"cannot read '{node.attr}' of undefined")
        raise ScriptError(f"cannot read '{node.attr}' of {to_text(target)!r}")

    def _eval_Call(self, node: ast.Call) -> Any:
        args = [self.eval(a) for a in node.args]
        func = node.func
        if isinstance(func, ast.Name):
            if func.id == "repeat":
                if len(args) != 2:
                    raise ScriptError("repeat expects 2 arguments")
                return self._repeat(to_text(args[0]), _as_int(args[1]))
            try:
                return self._check_size(FUNCTIONS[func.id](*args))
            except TypeError as exc:
                raise ScriptError(f"bad arguments for {func.id}()") from exc
        assert isinstance(func, ast.Attribute)
        receiver = self.eval(func.value)
        return self._check_size(self._call_method(receiver, func.attr, args))

    def _call_method(self, receiver: Any, name: str, args: list[Any]) -> Any:
        if name == "join":
            if isinstance(receiver, (list, tuple)):
                return _join(receiver, args[0] if args else ",")
            if isinstance(receiver, str) and len(args) == 1:
                return _join(args[0], receiver)
            raise ScriptError("join expects a list")
        if name == "includes":
            if len(args) != 1 or not isinstance(receiver, (str, list, tuple)):
                raise ScriptError("includes expects one argument")
            return (to_text(args[0]) in receiver) if isinstance(receiver, str) else (args[0] in receiver)
        if not isinstance(receiver, str):
            raise ScriptError(f"'{name}' expects text, got {to_text(receiver)!r}")
        if name in ("upper", "toUpperCase"):
            return receiver.upper()
        if name in ("lower", "toLowerCase"):
            return receiver.lower()
        if name in ("strip", "trim"):
            return receiver.strip()
        if name == "title":
            return receiver.title()
        if name == "split":
            sep = to_text(args[0]) if args and args[0] is not None else None
            return receiver.split(sep) if sep != "" else list(receiver)
        if name in ("startswith", "startsWith"):
            return bool(args) and receiver.startswith(to_text(args[0]))
        if name in ("endswith", "endsWith"):
            return bool(args) and receiver.endswith(to_text(args[0]))
        raise ScriptError(f"unknown method '{name}'")  # pragma: no cover


# ---------------- Public API ----------------

@dataclass(slots=True)
class CompiledScript:
    """A validated command body, invocable as a command handler."""
    source: str
    tree: ast.Expression = field(repr=False)
    name: str = "<command>"
    step_budget: int = DEFAULT_STEP_BUDGET
    max_output: int = DEFAULT_MAX_OUTPUT

    def run(self, args: Sequence[str], context: SessionContext | None) -> Any:
        """Evaluate the body and return the raw script value."""
        record = _context_record(context)
        names = {
            "args": [str(a) for a in args],
            "context": record,
            "user": record.read("user"),
        }
        return _Evaluator(names, self.step_budget, self.max_output).eval(self.tree)

    def __call__(self, args: Sequence[str], context: SessionContext) -> CommandResult:
        value = self.run(args, context)
        text = "" if value is None else to_text(value)
        if len(text) > self.max_output:
            raise ScriptError(f"output exceeds {self.max_output} characters")
        return CommandResult.ok(escape_markup(text))


def compile_script(
    source: str,
    *,
    name: str = "<command>",
    step_budget: int = DEFAULT_STEP_BUDGET,
    max_output: int = DEFAULT_MAX_OUTPUT,
) -> CompiledScript:
    """Parse and validate a command body without evaluating any of it."""
    if source is None or not str(source).strip():
        raise CompileError("command body is empty")
    if len(source) > MAX_SOURCE_LENGTH:
        raise CompileError(f"command body is longer than {MAX_SOURCE_LENGTH} characters")

    text = normalize_source(str(source))
    if not text:
        raise CompileError("command body is empty")
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as exc:
        raise CompileError(f"syntax error: {exc.msg} (column {exc.offset or 0})") from exc
    except (ValueError, RecursionError) as exc:
        raise CompileError(f"invalid command body: {exc}") from exc

    _validate(tree)
    return CompiledScript(
        source=str(source),
        tree=tree,
        name=name,
        step_budget=step_budget,
        max_output=max_output,
    )
