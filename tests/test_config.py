import pytest

from roux.roux_config import DEFAULT_TEMPLATES, RouxConfig, load_config
from roux.roux_runtime import Runtime


def test_defaults():
    config = RouxConfig()
    assert config.max_parameters == 255
    assert config.warnings is True
    assert config.debug is False
    assert config.load_stdlib is True
    assert config.templates == DEFAULT_TEMPLATES


def test_templates_are_not_shared_between_configs():
    a, b = RouxConfig(), RouxConfig()
    a.templates["error"] = "changed"
    assert b.templates["error"] == DEFAULT_TEMPLATES["error"]


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "roux.yaml"
    path.write_text(
        "max_parameters: 3\n"
        "warnings: false\n"
        "templates:\n"
        "  error: \"E{{line}}: {{message}}\"\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.max_parameters == 3
    assert config.warnings is False
    assert config.templates["error"] == "E{{line}}: {{message}}"
    # Templates not mentioned keep their defaults.
    assert config.templates["warning"] == DEFAULT_TEMPLATES["warning"]


def test_empty_config_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == RouxConfig()


INVALID_CASES = [
    ("unknown_key", "colour: blue\n"),
    ("unknown_template", "templates:\n  fatal: \"x\"\n"),
    ("templates_not_mapping", "templates: [1, 2]\n"),
    ("negative_max_parameters", "max_parameters: -1\n"),
    ("bool_max_parameters", "max_parameters: true\n"),
    ("not_a_mapping", "- 1\n- 2\n"),
]


@pytest.mark.parametrize(
    "test_id, text",
    INVALID_CASES,
    ids=[t[0] for t in INVALID_CASES]
)
def test_invalid_config_is_rejected(tmp_path, test_id, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_custom_error_template_is_used():
    config = RouxConfig.from_mapping({"templates": {"error": "E{{line}}: {{message}}"}})
    res = Runtime(config=config).run("print ;")
    errors = [e['message'] for e in res.side_effects if e['topics'] == ['stderr']]
    assert errors == ["E1: Expect expression."]


def test_rendered_messages_are_not_html_escaped():
    res = Runtime().run("print 1")
    errors = [e['message'] for e in res.side_effects if e['topics'] == ['stderr']]
    assert errors == ["[line 1] Error at end: Expect ';' after value."]


def test_disabling_warnings():
    res = Runtime(config=RouxConfig(warnings=False)).run("{ var unused = 1; }")
    assert res.status == 'success'
    assert res.side_effects == []


def test_debug_trace_goes_to_stderr(capsys):
    Runtime(config=RouxConfig(debug=True)).evaluate("1 + 2")
    err = capsys.readouterr().err
    assert "[DBG] ast: (+ 1 2)" in err
