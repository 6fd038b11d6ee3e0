"""
Unit tests for the JavaScript and CSS minifiers.
"""

import pytest

from bundler.errors import ProcessingError, ProcessingErrorKind
from bundler.processors import (
    CodeSettings,
    CssMinifier,
    CssSettings,
    JavaScriptMinifier,
    ProcessingContext,
    check_css,
    check_javascript,
)


JS = ProcessingContext(route="/bundle.js", content_type="application/javascript")
CSS = ProcessingContext(route="/site.css", content_type="text/css")

SCRIPT = """
// greeting helper
function greet(name) {
    var message = "Hello, " + name;   /* inline */
    return message;
}
var re = /ab+c/g;
var half = total / 2;
"""

STYLESHEET = """
/* base */
body {
    color: red;
    margin: 0 auto;
}
a[href^="http"]::after { content: " ->"; }
"""


class TestJavaScriptMinifier:
    """Tests for JavaScriptMinifier."""

    def test_minifies(self):
        output = JavaScriptMinifier().process("var a = 1;\nvar b = 2;\n", JS)

        assert "var a=1;" in output
        assert "var b=2;" in output
        assert len(output) < len("var a = 1;\nvar b = 2;\n")

    def test_strips_comments(self):
        output = JavaScriptMinifier().process(SCRIPT, JS)

        assert "greeting helper" not in output
        assert "inline" not in output
        assert "Hello, " in output

    def test_deterministic(self):
        minifier = JavaScriptMinifier()

        assert minifier.process(SCRIPT, JS) == minifier.process(SCRIPT, JS)

    @pytest.mark.parametrize("text", [
        SCRIPT,
        "var a=1;\nvar b=2;",
        "(function(){ return {a: [1, 2, 3]}; })();",
    ])
    def test_idempotent(self, text):
        minifier = JavaScriptMinifier()
        once = minifier.process(text, JS)

        assert minifier.process(once, JS) == once

    def test_keep_bang_comments(self):
        text = "/*! MIT License */\nvar a = 1;"

        assert "MIT License" not in JavaScriptMinifier().process(text, JS)
        assert "MIT License" in JavaScriptMinifier(CodeSettings(keep_bang_comments=True)).process(text, JS)

    def test_syntax_error_kind_and_step(self):
        with pytest.raises(ProcessingError) as exc_info:
            JavaScriptMinifier().process("var a=1;\nfunction f( {", JS)

        error = exc_info.value
        assert error.kind == ProcessingErrorKind.SYNTAX_ERROR
        assert error.step == "JavaScriptMinifier"
        assert error.line == 2

    def test_validation_can_be_disabled(self):
        minifier = JavaScriptMinifier(CodeSettings(validate=False))

        assert isinstance(minifier.process("function f( {", JS), str)

    def test_settings_key_differs(self):
        assert JavaScriptMinifier().settings_key() != \
            JavaScriptMinifier(CodeSettings(keep_bang_comments=True)).settings_key()


class TestJavaScriptCheck:
    """The structural scan run before minification."""

    @pytest.mark.parametrize("text, message", [
        ("function f() { return [1, 2;", "Unclosed '['"),
        ('var s = "abc\nvar t = 1;', "Unterminated string"),
        ("/* license", "Unterminated comment"),
        ("if (x)) {}", "Unexpected ')'"),
        ("var r = /ab[c/;", "Unterminated regular expression"),
        ("var t = `abc", "Unterminated string"),
    ])
    def test_rejects(self, text, message):
        with pytest.raises(ProcessingError) as exc_info:
            check_javascript(text)

        assert message in exc_info.value.message
        assert exc_info.value.kind == ProcessingErrorKind.SYNTAX_ERROR

    @pytest.mark.parametrize("text", [
        SCRIPT,
        "var x = a / b / c;",
        "var s = 'it\\'s';",
        "return /[)]/.test(s);",
        "var o = {a: '}'};  // }",
        "var re = /a[/]b/g;",
        "var tpl = `line one\nline two ${x}`;",
        "",
    ])
    def test_accepts(self, text):
        check_javascript(text)


class TestCssMinifier:
    """Tests for CssMinifier."""

    def test_minifies(self):
        output = CssMinifier().process(STYLESHEET, CSS)

        assert "color:red" in output
        assert "base" not in output
        assert "\n" not in output.strip()

    def test_idempotent(self):
        minifier = CssMinifier()
        once = minifier.process(STYLESHEET, CSS)

        assert minifier.process(once, CSS) == once

    def test_keep_bang_comments(self):
        text = "/*! license */ a { color: blue; }"

        assert "license" in CssMinifier(CssSettings(keep_bang_comments=True)).process(text, CSS)

    @pytest.mark.parametrize("text", [
        "body { color: red;",
        "a { content: \"x }",
        "/* open",
        "a { color: red; } }",
    ])
    def test_syntax_errors(self, text):
        with pytest.raises(ProcessingError) as exc_info:
            CssMinifier().process(text, CSS)

        assert exc_info.value.kind == ProcessingErrorKind.SYNTAX_ERROR
        assert exc_info.value.step == "CssMinifier"

    def test_check_accepts_valid(self):
        check_css(STYLESHEET)
