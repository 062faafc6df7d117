"""Type checker tests: scoping, signatures, expression typing."""

from pathlib import Path

import pytest
from casefile import discover

from chalk.ast import Literal, Return
from chalk.check import (
    Analysis,
    Checker,
    Context,
    FunctionSymbol,
    Scope,
    VariableSymbol,
    binary_result,
    check,
    is_assignable,
)
from chalk.errors import SemanticError
from chalk.parse import parse
from chalk.tokens import Token

CHECK_DIR = Path(__file__).parent / "check_cases"


def pytest_generate_tests(metafunc):
    """Parametrize tests over check test files."""
    if "check_input" in metafunc.fixturenames:
        params = [
            pytest.param(input_code, expected, id=test_id)
            for test_id, input_code, expected in discover(CHECK_DIR)
        ]
        metafunc.parametrize("check_input,check_expected", params)


def test_check(check_input: str, check_expected: str):
    """Verify checker produces expected result."""
    program = parse(check_input)
    if check_expected == "ok":
        check(program)
    elif check_expected.startswith("error:"):
        expected_msg = check_expected[6:].strip()
        with pytest.raises(SemanticError) as exc:
            check(program)
        assert expected_msg in str(exc.value)
    else:
        pytest.fail(f"Unknown expected format: {check_expected}")


def _typed(expr_source: str) -> str:
    """Resolved type of an expression printed inside main."""
    program = parse("func main(): int { print(" + expr_source + "); return 0; }")
    analysis = check(program)
    return analysis.type_of(program.functions[0].body.stmts[0].value)


# ============================================================
# Typing rules
# ============================================================


@pytest.mark.parametrize(
    "source,expected",
    [
        ('"a" + 1', "string"),
        ("1 + 2", "int"),
        ("1 + 2.0", "float"),
        ("2.0 * 3", "float"),
        ("7 % 2", "int"),
        ("-1.5", "float"),
        ("-1", "int"),
        ("!true", "bool"),
        ("1 < 2.5", "bool"),
        ("'a' == 'b'", "bool"),
        ("true || false && true", "bool"),
        ("'c' + \"s\"", "string"),
    ],
)
def test_expression_types(source: str, expected: str):
    assert _typed(source) == expected


def test_logical_and_rejects_int():
    with pytest.raises(SemanticError, match="operator '&&'"):
        _typed("true && 1")


def test_assignability():
    assert is_assignable("int", "float")
    assert is_assignable("char", "char")
    assert not is_assignable("float", "int")
    assert not is_assignable("bool", "int")
    assert not is_assignable("string", "int")
    assert not is_assignable("int", "char")
    assert not is_assignable("int", "bool")


def test_binary_result_table():
    assert binary_result("+", "bool", "string") == "string"
    assert binary_result("+", "bool", "int") is None
    assert binary_result("/", "int", "int") == "int"
    assert binary_result("==", "bool", "bool") == "bool"
    assert binary_result("!=", "char", "string") is None
    assert binary_result(">=", "float", "int") == "bool"
    assert binary_result("||", "bool", "int") is None


def test_every_expression_is_annotated():
    program = parse(
        "func f(a: int, b: int): int { return a; }"
        " func main(): int { var x: int = (1 + 2) * f(3, -4); return x; }"
    )
    analysis = Checker().analyze(program)
    # a; then *, +, 1, 2, f(...), 3, -4, 4, and x in main
    assert len(analysis.types) == 10


def test_input_type_recorded():
    program = parse("func main(): int { var s: string; var f: float; input(s); input(f); return 0; }")
    analysis = check(program)
    stmts = program.functions[0].body.stmts
    assert analysis.type_of(stmts[2]) == "string"
    assert analysis.type_of(stmts[3]) == "float"


def test_tree_is_not_modified():
    program = parse("func main(): int { return 1 + 2; }")
    before = program.functions[0].body.stmts[0]
    check(program)
    assert program.functions[0].body.stmts[0] is before


def test_signatures_registered():
    program = parse("func f(a: int, b: char): bool { return true; }")
    analysis = check(program)
    assert analysis.functions["f"] == FunctionSymbol("f", ("int", "char"), "bool", "f")


# ============================================================
# Failure scenario
# ============================================================


def test_bool_operand_error_points_at_plus():
    program = parse(
        "func main(): int {\n"
        "    var a: int = 10;\n"
        "    var b: float = 5.5;\n"
        "    var c: int = a + true;\n"
        "    return 0;\n"
        "}"
    )
    with pytest.raises(SemanticError) as exc:
        check(program)
    err = exc.value
    assert err.token.lexeme == "+"
    assert (err.line, err.col) == (4, 20)
    assert "int" in err.msg and "bool" in err.msg
    assert str(err).startswith("semantic error: ")


def test_type_mismatch_names_both_types():
    program = parse("func main(): int { var i: int = 2.5; return i; }")
    with pytest.raises(SemanticError) as exc:
        check(program)
    assert "int" in exc.value.msg and "float" in exc.value.msg


# ============================================================
# Scopes and context
# ============================================================


def test_scope_resolution_walks_parents():
    root = Scope()
    root.define(VariableSymbol("a", "int", "a"))
    child = Scope(root)
    child.define(VariableSymbol("a", "string", "a_1"))
    grandchild = Scope(child)
    assert grandchild.resolve("a").typ == "string"
    assert root.resolve("a").typ == "int"
    assert grandchild.resolve("missing") is None
    assert grandchild.lookup_local("a") is None


def test_scope_rejects_same_scope_redefinition():
    scope = Scope()
    assert scope.define(VariableSymbol("a", "int", "a"))
    assert not scope.define(VariableSymbol("a", "float", "a"))
    assert scope.resolve("a").typ == "int"


def test_context_enter_leaves_outer_untouched():
    outer = Context(Scope())
    inner = outer.enter()
    inner.scope.define(VariableSymbol("t", "int", "t"))
    assert inner.scope.parent is outer.scope
    assert outer.scope.resolve("t") is None


def test_return_outside_function():
    tok = Token("RETURN", "return", 1, 1)
    stmt = Return(tok, Literal(Token("INT_LITERAL", "1", 1, 8), "int", 1))
    with pytest.raises(SemanticError, match="return outside of a function"):
        Checker().check_stmt(stmt, Context(Scope()))


# ============================================================
# Lowered names
# ============================================================


def _names(source: str) -> tuple[list, Analysis]:
    program = parse(source)
    return program.functions, check(program)


def test_shadowed_locals_get_unique_names():
    functions, analysis = _names(
        "func main(): int {"
        " var x: int = 1;"
        " if (true) { var x: int = x + 1; print(x); }"
        " while (false) { var x: bool = true; }"
        " return x; }"
    )
    stmts = functions[0].body.stmts
    inner_decl = stmts[1].then_block.stmts[0]
    assert analysis.name_of(stmts[0]) == "x"
    assert analysis.name_of(inner_decl) == "x_1"
    # The initializer still reads the outer variable
    assert analysis.name_of(inner_decl.value.left) == "x"
    assert analysis.name_of(stmts[1].then_block.stmts[1].value) == "x_1"
    assert analysis.name_of(stmts[2].body.stmts[0]) == "x_2"
    assert analysis.name_of(stmts[3].value) == "x"


def test_lowered_names_restart_per_function():
    functions, analysis = _names(
        "func f(a: int): int { return a; } func g(a: int): int { return a; }"
    )
    assert analysis.name_of(functions[0].params[0]) == "a"
    assert analysis.name_of(functions[1].params[0]) == "a"


def test_locals_never_take_function_names():
    functions, analysis = _names(
        "func f(): int { return 0; } func main(): int { if (true) { var f: int = 1; } return 0; }"
    )
    decl = functions[1].body.stmts[0].then_block.stmts[0]
    assert analysis.name_of(decl) == "f_1"


def test_reserved_names_are_avoided():
    program = parse("func main(): int { var args: int = 1; var x_1: int = 2; var x: int = args; return x; }")
    analysis = check(program, frozenset({"args", "x"}))
    stmts = program.functions[0].body.stmts
    assert analysis.name_of(stmts[0]) == "args_1"
    assert analysis.name_of(stmts[1]) == "x_1"
    assert analysis.name_of(stmts[2]) == "x_2"


def test_reserved_function_names_are_lowered():
    program = parse(
        "func Console(): int { return 1; }"
        " func Main(): int { return 2; }"
        " func Main_1(): int { return 3; }"
        " func main(): int { return Console() + Main(); }"
    )
    analysis = check(program, frozenset({"Console", "Main"}))
    console, main_upper, main_1, main = program.functions
    assert analysis.name_of(console) == "Console_1"
    assert analysis.name_of(main_upper) == "Main_2"
    assert analysis.name_of(main_1) == "Main_1"
    assert analysis.name_of(main) == "main"
    call = main.body.stmts[0].value
    assert analysis.name_of(call.left) == "Console_1"
    assert analysis.name_of(call.right) == "Main_2"
    assert analysis.functions["Main"].lowered == "Main_2"


def test_locals_avoid_lowered_function_names():
    program = parse(
        "func Main(): int { return 0; } func main(): int { var Main_1: int = 1; return Main_1; }"
    )
    analysis = check(program, frozenset({"Main"}))
    decl = program.functions[1].body.stmts[0]
    assert analysis.name_of(program.functions[0]) == "Main_1"
    assert analysis.name_of(decl) == "Main_1_1"
