import pytest

from roux import (
    Runtime, RouxIO, RouxConfig, RouxRuntimeError, PathNotFound,
    LibraryBinder, NativeClass, RouxInstance, roux_api_method
)
from roux.roux_datatypes import RouxFunction


def output(res):
    return [e['message'] for e in res.side_effects if e['topics'] == ['stdout']]


def assert_ok(res):
    assert res.status == 'success', f"expected success, got {res.status}: {res.format_error()}"


SANDWICH = """
class Sandwich {
    construct(bread, filling) {
        this.bread = bread;
        this.filling = filling;
    }
    describe() { return this.filling + " on " + this.bread; }
    static kinds() { return 2; }
}
fun add(a, b) { return a + b; }
var foo = 1;
"""


@pytest.fixture
def runtime():
    rt = Runtime()
    assert_ok(rt.run(SANDWICH))
    return rt


# --- Host calls ---

def test_call_function_by_name_widens_ints(runtime):
    result = runtime.call_function("add", 1, 2)
    assert result == 3.0
    assert type(result) is float


def test_call_function_with_callable(runtime):
    fn = runtime.get_value("add")
    assert isinstance(fn, RouxFunction)
    assert runtime.call_function(fn, 2, 3) == 5.0


def test_call_function_arity_error_reaches_host(runtime):
    with pytest.raises(RouxRuntimeError) as excinfo:
        runtime.call_function("add", 1)
    assert excinfo.value.message == "Expected 2 arguments but got 1."
    assert excinfo.value.token is None


def test_call_function_on_non_callable(runtime):
    with pytest.raises(RouxRuntimeError, match="Can only call functions and classes."):
        runtime.call_function("foo")


def test_create_instance_by_name(runtime):
    sandwich = runtime.create_instance("Sandwich", "rye", "swiss")
    assert isinstance(sandwich, RouxInstance)
    assert sandwich.fields == {"bread": "rye", "filling": "swiss"}
    runtime.define_value("lunch", sandwich)
    assert runtime.call_function("lunch.describe") == "swiss on rye"


def test_create_instance_with_class_object(runtime):
    klass = runtime.get_value("Sandwich")
    sandwich = runtime.create_instance(klass, "wheat", "ham")
    assert sandwich.fields["bread"] == "wheat"


def test_create_instance_rejects_non_class(runtime):
    with pytest.raises(RouxRuntimeError, match="is not a class"):
        runtime.create_instance("add")


def test_static_method_by_path(runtime):
    assert runtime.call_function("Sandwich.kinds") == 2.0


# --- Path access ---

def test_get_and_set_global(runtime):
    assert runtime.get_value("foo") == 1.0
    runtime.set_value("foo", 123)
    assert runtime.get_value("foo") == 123.0
    res = runtime.run("print foo;")
    assert output(res) == ["123"]


def test_set_value_defines_new_global(runtime):
    runtime.set_value("fresh", "yes")
    assert output(runtime.run("print fresh;")) == ["yes"]


def test_dotted_paths_walk_instances(runtime):
    assert_ok(runtime.run('var lunch = Sandwich("rye", "pastrami");'))
    assert runtime.get_value("lunch.bread") == "rye"
    runtime.set_value("lunch.bread", "sourdough")
    assert output(runtime.run("print lunch.describe();")) == ["pastrami on sourdough"]


@pytest.mark.parametrize("address", ["nope", "foo.bar", "Sandwich.nope", "nope.deeper"])
def test_missing_paths_raise_path_not_found(runtime, address):
    with pytest.raises(PathNotFound):
        runtime.get_value(address)


def test_define_value_wraps_python_callables(runtime):
    runtime.define_value("double", lambda x: x * 2)
    assert output(runtime.run("print double(4);")) == ["8"]


def test_define_value_rejects_unsupported_values(runtime):
    with pytest.raises(TypeError):
        runtime.define_value("bad", object())


def test_runtimes_are_independent():
    first, second = Runtime(), Runtime()
    assert_ok(first.run("var x = 1;"))
    with pytest.raises(PathNotFound):
        second.get_value("x")


# --- Native classes through binders ---

class Counter:
    def __init__(self, start):
        self._n = start

    @roux_api_method
    def increment_by(self, amount):
        if amount < 0:
            raise ValueError("amount must not be negative")
        self._n += amount
        return self._n

    def hidden(self):
        return self._n


class CounterLibrary(LibraryBinder):
    def bind(self, runtime):
        runtime.define_value("Counter", NativeClass("Counter", Counter))


def test_binder_defines_native_class():
    rt = Runtime(binders=[CounterLibrary()])
    res = rt.run("var c = Counter(10); print c.incrementBy(5); print c.incrementBy(1); print c;")
    assert_ok(res)
    assert output(res) == ["15", "16", "<Counter instance>"]


def test_undecorated_backing_methods_are_hidden():
    rt = Runtime(binders=[CounterLibrary()])
    res = rt.run("var c = Counter(1); print c.hidden;")
    assert res.error_message == "Undefined property 'hidden'."


def test_native_errors_become_runtime_errors():
    rt = Runtime(binders=[CounterLibrary()])
    res = rt.run("var c = Counter(1);\nc.incrementBy(-1);")
    assert res.status == 'error'
    assert res.error_message == "amount must not be negative"
    assert res.error_token.line == 2


def test_native_class_arity():
    rt = Runtime(binders=[CounterLibrary()])
    res = rt.run("Counter();")
    assert res.error_message == "Expected 1 arguments but got 0."


def test_bind_after_construction():
    rt = Runtime()
    rt.bind(CounterLibrary())
    assert rt.create_instance("Counter", 3).backing._n == 3


def test_stdlib_can_be_disabled():
    rt = Runtime(config=RouxConfig(load_stdlib=False))
    with pytest.raises(PathNotFound):
        rt.get_value("List")


# --- Results, I/O hooks and the error system ---

def test_evaluate_returns_value():
    res = Runtime().evaluate("1 + 2")
    assert res.status == 'success'
    assert res.value == 3.0
    assert res.format_error() == ""


def test_evaluate_parse_error():
    res = Runtime().evaluate("1 +")
    assert res.status == 'error'
    assert res.error_message == "Expect expression."


def test_io_hooks_receive_output_and_diagnostics():
    outputs, errors = [], []
    rt = Runtime(io=RouxIO(on_output=outputs.append, on_error=errors.append))
    rt.run('print "hi";')
    rt.run("print nope;")
    assert outputs == ["hi"]
    assert errors == ["Undefined variable 'nope'.\n[line 1]"]


def test_side_effects_are_per_run():
    rt = Runtime()
    rt.run("print 1;")
    res = rt.run("print 2;")
    assert output(res) == ["2"]


def test_output_before_runtime_error_is_kept():
    res = Runtime().run("print 1;\nprint nope;\nprint 2;")
    assert output(res) == ["1"]
    assert res.error_token.line == 2


def test_parse_error_prevents_execution():
    res = Runtime().run("print 1; print ;")
    assert res.status == 'error'
    assert output(res) == []


def test_resolve_error_prevents_execution():
    res = Runtime().run("print 1; return 2;")
    assert res.error_message == "Can't return from top-level code."
    assert output(res) == []


def test_warnings_do_not_fail_a_run():
    res = Runtime().run("{ var unused = 1; } print 2;")
    assert_ok(res)
    assert output(res) == ["2"]
    assert [e['topics'] for e in res.side_effects if e['topics'] != ['stdout']] == [['warning']]


def test_failed_run_must_be_reset():
    rt = Runtime()
    assert rt.run("print nope;").status == 'error'
    refused = rt.run("print 1;")
    assert refused.status == 'error'
    assert "reset_error_system" in refused.error_message
    rt.reset_error_system()
    res = rt.run("print 1;")
    assert_ok(res)
    assert output(res) == ["1"]


def test_globals_survive_across_runs():
    rt = Runtime()
    rt.run("var n = 1;")
    rt.run("n = n + 1;")
    assert rt.evaluate("n").value == 2.0


def test_warnings_are_per_run():
    rt = Runtime()
    rt.run("{ var unused = 1; }")
    assert len(rt.reporter.warnings) == 1
    rt.run("print 1;")
    assert rt.reporter.warnings == []


@pytest.mark.parametrize("depth", [40, 500])
def test_deep_nesting_is_reported_not_raised(depth):
    rt = Runtime()
    res = rt.run("print " + "(" * depth + "1" + ")" * depth + ";")
    assert res.status == 'error'
    assert res.error_message == "Expression nested too deeply."
    assert rt.reporter.had_error

    rt.reset_error_system()
    res = rt.evaluate("(" * depth + "1" + ")" * depth)
    assert res.status == 'error'
    assert res.error_message == "Expression nested too deeply."


def test_shallow_nesting_still_runs():
    res = Runtime().evaluate("(" * 10 + "1" + ")" * 10)
    assert res.status == 'success'
    assert res.value == 1.0
