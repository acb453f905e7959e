from __future__ import annotations

import pytest

from solo.commands import (
    CompileError,
    ScriptError,
    ScriptTimeout,
    SessionContext,
    User,
    compile_script,
)
from solo.commands.script import normalize_source, to_text


def run(source, args=(), user=None, **kwargs):
    script = compile_script(source, **kwargs)
    return script(list(args), SessionContext(user=user)).result


def test_hello_world():
    assert run('return "hello " + args[0];', ["world"]) == "hello world"


def test_missing_argument_renders_as_undefined():
    assert run('return "hello " + args[0];') == "hello undefined"


def test_c_style_operators():
    assert run('return "Hello, " + (args[0] || "world") + "!";') == "Hello, world!"
    assert run('return "Hello, " + (args[0] || "world") + "!";', ["ann"]) == "Hello, ann!"
    assert run("args.length === 2 && !false", ["a", "b"]) == "true"
    assert run('args[0] !== "x"', ["y"]) == "true"


def test_operators_inside_strings_are_left_alone():
    assert run('"a && b || !c"') == "a && b || !c"
    assert normalize_source('return "x;";') == '"x;"'


def test_functions_and_methods():
    assert run('upper(args[0]) + "-" + args[1].toLowerCase()', ["ab", "CD"]) == "AB-cd"
    assert run('args.join("+")', ["1", "2", "3"]) == "1+2+3"
    assert run('join(args, ",")', ["x", "y"]) == "x,y"
    assert run('default(args[0], "fallback")') == "fallback"
    assert run('replace("a-b-c", "-", "")') == "abc"
    assert run('len(args)', ["a", "b"]) == "2"
    assert run('repeat("ab", 3)') == "ababab"
    assert run('"  padded ".trim()') == "padded"
    assert run('"a b c".split(" ")') == "a,b,c"


def test_arithmetic_and_conditionals():
    assert run("int(args[0]) * 2 + 1", ["20"]) == "41"
    assert run('"big" if int(args[0]) > 10 else "small"', ["3"]) == "small"
    assert run("7 / 2") == "3.5"
    assert run("6 / 2") == "3"


def test_user_fields_are_readable():
    alice = User(id=5, username="alice", is_admin=True, status="coding")

    assert run('"hi " + user.username', user=alice) == "hi alice"
    assert run("context.user.isAdmin", user=alice) == "true"
    assert run('"in" if user else "out"') == "out"


def test_none_result_is_empty_output():
    assert run("null") == ""


@pytest.mark.parametrize(
    "source",
    [
        "__import__('os').system('true')",
        "open('/etc/passwd')",
        "args.__class__",
        "(lambda: 1)()",
        "[x for x in args]",
        "eval('1')",
        "x := 1",
        "",
        "   ;  ",
        'return "unterminated',
    ],
)
def test_unsafe_or_malformed_bodies_do_not_compile(source):
    with pytest.raises(CompileError):
        compile_script(source)


def test_overlong_body_does_not_compile():
    with pytest.raises(CompileError):
        compile_script('"' + "a" * 5000 + '"')


def test_step_budget_raises_timeout():
    script = compile_script("args[0] + args[0] + args[0] + args[0]", step_budget=3)

    with pytest.raises(ScriptTimeout):
        script.run(["x"], SessionContext())


def test_output_cap():
    with pytest.raises(ScriptError):
        run('repeat("x", 1000)', max_output=100)
    with pytest.raises(ScriptError):
        run('"ab" * 1000', max_output=100)


def test_output_cap_counts_rendered_list_text():
    with pytest.raises(ScriptError):
        run("[args[0], args[0], args[0]]", ["z" * 60], max_output=64)
    with pytest.raises(ScriptError):
        run('[repeat("a", 200), repeat("b", 200), repeat("c", 200)]', max_output=256)
    assert run("[args[0], args[0]]", ["ab"], max_output=64) == "ab,ab"


def test_runtime_errors_are_script_errors():
    with pytest.raises(ScriptError):
        run("1 / 0")
    with pytest.raises(ScriptError):
        run("int(args[0])", ["not-a-number"])
    with pytest.raises(ScriptError):
        run("user.username")


def test_to_text_formats_like_concatenation():
    assert to_text(None) == "undefined"
    assert to_text(True) == "true"
    assert to_text([1, None, "a"]) == "1,,a"
    assert to_text(2.0) == "2"
