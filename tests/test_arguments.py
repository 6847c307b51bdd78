"""Tests for argument escaping and templates."""

# Standard library imports
import shlex
import subprocess

# Third-party imports
import pytest

# Local/package imports
from cmdpipe.core.exceptions import BuilderError, TemplateArityError
from cmdpipe.shell.arguments import (
    Argument,
    ArgumentKind,
    count_placeholders,
    escape,
    fill_template,
    fill_template_multiple,
)

TRICKY_VALUES = [
    "",
    "plain",
    "with space",
    "it's",
    '"double"',
    "$HOME",
    "`id`",
    "$(id)",
    "a;b|c&d",
    "back\\slash",
    "new\nline",
    "tab\there",
    "*?[glob]",
    "-rf",
    "ünïcödé",
]


class TestEscape:
    """Escaping turns any string into exactly one shell word."""

    @pytest.mark.parametrize("value", TRICKY_VALUES)
    def test_shlex_round_trip(self, value):
        assert shlex.split(escape(value)) == [value]

    def test_real_shell_round_trip(self):
        values = [value for value in TRICKY_VALUES if value]
        script = "printf '%s\x1f' " + " ".join(escape(value) for value in values)
        output = subprocess.run(
            ["/bin/sh", "-c", script], stdout=subprocess.PIPE, check=True
        ).stdout
        assert output.decode("utf-8").split("\x1f")[:-1] == values

    def test_empty_string(self):
        assert escape("") == "''"

    def test_safe_value_unchanged(self):
        assert escape("--single-transaction") == "--single-transaction"


class TestTemplates:
    def test_count_placeholders_ignores_percent_escape(self):
        assert count_placeholders("%s %% %s") == 2
        assert count_placeholders("100%%") == 0

    def test_fill_template_escapes_each_value(self):
        assert fill_template("-u%s", ["root"]) == "-uroot"
        assert fill_template("--ignore-table=%s", ["db.it's"]) == (
            "--ignore-table='db.it'\"'\"'s'"
        )

    def test_fill_template_percent_escape(self):
        assert fill_template("--format=%%d %s", ["x y"]) == "--format=%d 'x y'"

    def test_placeholder_in_value_is_not_expanded(self):
        assert fill_template("%s %s", ["%s", "b"]) == "%s b"

    def test_too_few_values(self):
        with pytest.raises(TemplateArityError) as exc_info:
            fill_template("%s:%s", ["a"])
        assert exc_info.value.expected == 2
        assert exc_info.value.given == 1

    def test_too_many_values(self):
        with pytest.raises(TemplateArityError):
            fill_template("-e %s", ["a", "b"])

    def test_arity_error_is_builder_error(self):
        with pytest.raises(BuilderError):
            fill_template("plain", ["value"])

    def test_fill_template_multiple(self):
        assert fill_template_multiple("--ignore-table=%s", ["a.b", "a c"]) == [
            "--ignore-table=a.b",
            "--ignore-table='a c'",
        ]


class TestArgument:
    def test_literal_is_verbatim(self):
        argument = Argument.literal("-o BatchMode=yes")
        assert argument.kind is ArgumentKind.LITERAL
        assert argument.render() == "-o BatchMode=yes"

    def test_value_is_escaped(self):
        assert Argument.value("a b").render() == "'a b'"

    def test_template_validates_arity_at_build_time(self):
        with pytest.raises(TemplateArityError):
            Argument.template("-h%s")

    def test_sensitive_value_masked_only_for_display(self):
        argument = Argument.template("-p%s", "supersecret", sensitive=True)
        assert argument.render() == "-psupersecret"
        assert "supersecret" not in argument.render(masked=True)
        assert "supersecret" not in str(argument)

    def test_arguments_are_immutable(self):
        argument = Argument.value("x")
        with pytest.raises(AttributeError):
            argument.text = "y"
