import pytest

from sable.sable_runtime import ScriptRunner, ExecutionResult, SableHost, sable_api_method
from sable.sable_values import Number, String, Boolean, NULL


def assert_ok(res, expected=None):
    assert res.status == "success", f"expected success, got {res}"
    if expected is not None:
        assert res.value == expected, f"expected {expected!r}, got {res.value!r}"


def stdout_messages(res):
    return [e['message'] for e in res.side_effects if e['topics'] == ['stdout']]


class Game(SableHost):
    def __init__(self):
        self.hp = 100

    @sable_api_method
    def take_damage(self, amount):
        self.hp -= amount
        return self.hp

    @sable_api_method
    def greet(self, *names):
        return "hello " + ", ".join(names)

    @sable_api_method
    def status(self):
        return {"hp": self.hp, "alive": self.hp > 0}

    def reset(self):
        self.hp = 100


# --- execution -------------------------------------------------------------

def test_script_value():
    runner = ScriptRunner()
    assert_ok(runner.handle_script("let a = 2; a * 21;"), Number(42))


def test_root_scope_persists_between_runs():
    runner = ScriptRunner()
    assert_ok(runner.handle_script("let counter = 1;"))
    assert_ok(runner.handle_script("counter += 1;"))
    assert_ok(runner.handle_expression("counter"), Number(2))


def test_expression_value():
    runner = ScriptRunner()
    assert_ok(runner.handle_expression("1 + 2 == 3"), Boolean(True))


# --- standard library ------------------------------------------------------

def test_log_writes_stdout_effect():
    runner = ScriptRunner()
    res = runner.handle_script('log("hp is", 10, true);')
    assert_ok(res, NULL)
    assert stdout_messages(res) == ["hp is 10 true"]


def test_side_effects_are_cleared_per_run():
    runner = ScriptRunner()
    runner.handle_script('log("first");')
    res = runner.handle_script('log("second");')
    assert stdout_messages(res) == ["second"]


def test_emit_to_topic():
    runner = ScriptRunner()
    res = runner.handle_script('emit("metrics", "hits", 3);')
    assert_ok(res)
    assert res.side_effects == [{'topics': ['metrics'], 'message': 'hits 3'}]


def test_emit_needs_a_topic():
    runner = ScriptRunner()
    res = runner.handle_script("emit();")
    assert res.status == "error"
    assert res.error_message.startswith("InvalidArgumentsError: Incorrect number of arguments: expected at least 1")


@pytest.mark.parametrize("code, expected", [
    ("type_of(1)", String("number")),
    ("type_of('x')", String("string")),
    ("type_of(null)", String("null")),
    ("type_of(log)", String("function")),
    ("to_string(true)", String("true")),
    ("to_string(12)", String("12")),
    ("length('abcd')", Number(4)),
])
def test_stdlib_functions(code, expected):
    assert_ok(ScriptRunner().handle_expression(code), expected)


def test_stdlib_arity_is_checked():
    res = ScriptRunner().handle_expression("type_of(1, 2)")
    assert res.error_message.startswith("InvalidArgumentsError: Incorrect number of arguments: expected 1, got 2")


def test_length_needs_a_string():
    res = ScriptRunner().handle_expression("length(5)")
    assert res.error_message.startswith("TypeError: Expected string")


def test_throw():
    res = ScriptRunner().handle_script('throw("boom");')
    assert res.status == "error"
    assert res.error_message.startswith("Uncaught exception: boom")


def test_stdlib_can_be_disabled():
    res = ScriptRunner(load_stdlib=False).handle_expression("log('x')")
    assert res.status == "error"
    assert res.error_message.startswith("ReferenceError: 'log' does not exist")


def test_stdlib_bindings_are_constant():
    res = ScriptRunner().handle_script("function log() {}")
    assert res.error_message.startswith("DoubleDefinitionError")


# --- host binding ----------------------------------------------------------

def test_host_methods_are_callable():
    host = Game()
    runner = ScriptRunner(host_object=host)
    assert_ok(runner.handle_script("take_damage(5);"), Number(95))
    assert host.hp == 95


def test_host_variadic_method():
    runner = ScriptRunner(host_object=Game())
    assert_ok(runner.handle_expression("greet('ann', 'bob')"), String("hello ann, bob"))
    assert_ok(runner.handle_expression("greet()"), String("hello "))


def test_host_results_are_converted():
    runner = ScriptRunner(host_object=Game())
    assert_ok(runner.handle_script("take_damage(30); const s = status(); s.hp;"), Number(70))
    assert_ok(runner.handle_expression("s.alive"), Boolean(True))
    assert runner.handle_expression("s.hp = 1").error_message.startswith("TypeError")


def test_host_arity_from_signature():
    res = ScriptRunner(host_object=Game()).handle_expression("take_damage()")
    assert res.error_message.startswith("InvalidArgumentsError")


def test_undecorated_methods_are_hidden():
    res = ScriptRunner(host_object=Game()).handle_expression("reset()")
    assert res.error_message.startswith("ReferenceError: 'reset' does not exist")


def test_define_globals():
    runner = ScriptRunner()
    runner.define_globals({"LIMIT": Number(3)})
    assert_ok(runner.handle_expression("LIMIT * 2"), Number(6))
    assert runner.handle_expression("LIMIT = 4").error_message.startswith("TypeError")


# --- error reporting -------------------------------------------------------

def test_error_has_location_and_source_context():
    runner = ScriptRunner()
    res = runner.handle_script("let a = 1;\nlet b = a + true;")
    assert res.status == "error"
    msg = res.error_message
    assert msg.startswith("TypeError: Expected number")
    assert "(line" not in msg
    assert "> 2 | let b = a + true;" in msg
    assert "|         ^" in msg
    assert res.error_token['line'] == 2
    assert res.side_effects[-1] == {'topics': ['stderr'], 'message': msg}


def test_format_error_prefixes_location():
    res = ScriptRunner().handle_script("nope;")
    assert res.format_error().startswith("Error on line 1, col 1: ReferenceError: 'nope' does not exist")
    assert res.format_error().count("line 1") == 1


def test_format_error_on_success_is_empty():
    assert ExecutionResult(status='success').format_error() == ""


def test_parse_errors_are_results():
    res = ScriptRunner().handle_script("let = ;")
    assert res.status == "error"
    assert res.error_message.startswith("ParseError")


def test_stacktrace_lists_calls_outermost_first():
    runner = ScriptRunner()
    res = runner.handle_script("""
        function inner(x) { return x + true; }
        function outer(f, n) { return f(n); }
        outer(inner, 1);
    """)
    assert res.status == "error"
    assert "Sable stacktrace: (outer function inner(x) 1) (inner 1)" in res.error_message
    assert res.error_token['line'] == 4
    assert "> 4 |         outer(inner, 1);" in res.error_message


def test_error_in_function_from_earlier_run_points_at_call():
    runner = ScriptRunner()
    assert_ok(runner.handle_script("function f(x) {\n\n\n  return x + true;\n}"))
    res = runner.handle_script("f(1);")
    assert res.status == "error"
    assert res.error_token['line'] == 1
    assert res.error_token['col'] == 1
    assert res.error_message == "TypeError: Expected number\n> 1 | f(1);\n    | ^\nSable stacktrace: (f 1)"
    assert res.format_error().startswith("Error on line 1, col 1: TypeError: Expected number")


def test_not_implemented_operator():
    res = ScriptRunner().handle_expression("4 / 2")
    assert res.status == "error"
    assert res.error_message == "NotImplementedError: Unimplemented operator: /"


def test_runaway_recursion_is_internal_error():
    runner = ScriptRunner()
    res = runner.handle_script("function loop(f) { return f(f); }\nloop(loop);")
    assert res.status == "error"
    assert res.error_message.startswith("InternalError")


def test_host_exception_is_internal_error(monkeypatch, capsys):
    class Broken(SableHost):
        @sable_api_method
        def explode(self):
            raise RuntimeError("kaboom")

    monkeypatch.delenv("SABLE_DEBUG", raising=False)
    runner = ScriptRunner(host_object=Broken())
    res = runner.handle_expression("explode()")
    assert res.error_message == "InternalError: kaboom"
    assert "Traceback" not in capsys.readouterr().err

    monkeypatch.setenv("SABLE_DEBUG", "1")
    runner.handle_expression("explode()")
    assert "Traceback" in capsys.readouterr().err
