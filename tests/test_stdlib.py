import pytest

from roux.roux_runtime import Runtime
from roux.roux_stdlib import ListBacking, MapBacking


def run(src: str):
    return Runtime().run(src)


def output(res):
    return [e['message'] for e in res.side_effects if e['topics'] == ['stdout']]


def assert_error(res, message):
    assert res.status == 'error', f"expected error, got {res.status}"
    assert res.error_message == message


# --- List ---

def test_list_operations():
    src = """
    var l = List();
    l.add(1);
    l.add("two");
    print l.count();
    print l.at(1);
    l.setAt(0, 5);
    print l[0];
    print l.removeAt(0);
    print l.count();
    """
    res = run(src)
    assert res.status == 'success', res.format_error()
    assert output(res) == ["2", "two", "5", "5", "1"]


def test_list_index_assignment():
    res = run("var l = List(); l.add(1); l[0] = 9; print l[0];")
    assert output(res) == ["9"]


def test_lists_are_independent():
    res = run("var a = List(); var b = List(); a.add(1); print a.count(); print b.count();")
    assert output(res) == ["1", "0"]


@pytest.mark.parametrize("src, message", [
    ("var l = List(); l.at(0);", "List index out of range."),
    ("var l = List(); l.add(1); l.at(0.5);", "List index must be an integer."),
    ('var l = List(); l.add(1); l["0"];', "List index must be an integer."),
    ("var l = List(); l.removeAt(-1);", "List index out of range."),
    ("List(1);", "Expected 0 arguments but got 1."),
])
def test_list_errors(src, message):
    assert_error(run(src), message)


def test_list_methods_look_like_functions():
    res = run("print List().add; print List; print List();")
    assert output(res) == ["<native fn add>", "List", "<List instance>"]


def test_native_instances_accept_fields():
    res = run('var l = List(); l.tag = "x"; print l.tag;')
    assert output(res) == ["x"]


# --- Map ---

def test_map_operations():
    src = """
    var m = Map();
    m.add("a", 1);
    m.setAt("b", 2);
    print m.at("a");
    print m["b"];
    print m.has("c");
    m["c"] = 3;
    print m.has("c");
    print m.count();
    """
    res = run(src)
    assert res.status == 'success', res.format_error()
    assert output(res) == ["1", "2", "false", "true", "3"]


def test_map_keeps_bool_and_number_keys_apart():
    src = """
    var m = Map();
    m.setAt(1, "one");
    m.setAt(true, "yes");
    print m.at(1);
    print m.at(true);
    print m.count();
    """
    assert output(run(src)) == ["one", "yes", "2"]


def test_map_missing_key():
    assert_error(run('var m = Map(); m.at("zz");'), "Map has no key zz.")


def test_map_add_rejects_duplicates():
    assert_error(run('var m = Map(); m.add("a", 1); m.add("a", 2);'), "Map already contains key a.")


# --- clock and the backing classes themselves ---

def test_clock_returns_seconds():
    assert output(run("print clock() > 0;")) == ["true"]


def test_backing_classes_work_on_their_own():
    items = ListBacking()
    items.add("x")
    assert items.count() == 1
    assert items.at(0.0) == "x"

    entries = MapBacking()
    entries.set_at("k", 1.0)
    assert entries.has("k")
    assert not entries.has(1.0)
