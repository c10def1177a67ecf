"""Tests for the output formatter."""

import io
import json

from rich.console import Console

from pydbx.output import OutputFormatter


def make_formatter(quiet=False):
    out_file = io.StringIO()
    err_file = io.StringIO()
    formatter = OutputFormatter(
        quiet=quiet,
        console=Console(file=out_file, highlight=False, emoji=False),
        err_console=Console(file=err_file, highlight=False, emoji=False),
    )
    return formatter, out_file, err_file


class TestOutputFormatter:
    """Tests for OutputFormatter."""

    def test_print_keeps_tabs(self):
        formatter, out_file, _ = make_formatter()
        formatter.print("15\t/R")
        assert out_file.getvalue() == "15\t/R\n"

    def test_quiet_suppresses_info_but_not_print(self):
        formatter, out_file, _ = make_formatter(quiet=True)
        formatter.info("download dropbox:/a -> /tmp/a")
        formatter.print("/a")
        assert out_file.getvalue() == "/a\n"

    def test_errors_go_to_stderr(self):
        formatter, out_file, err_file = make_formatter()
        formatter.error("Access token not configured.")
        formatter.warning("Warning: skipped")
        assert out_file.getvalue() == ""
        assert "Error: Access token not configured." in err_file.getvalue()
        assert "Warning: skipped" in err_file.getvalue()

    def test_markup_is_not_interpreted(self):
        formatter, out_file, _ = make_formatter()
        formatter.info("upload /tmp/[bold]x -> dropbox:/x")
        assert "[bold]x" in out_file.getvalue()

    def test_output_json(self):
        formatter, out_file, _ = make_formatter()
        formatter.output_json([{"path": "/a.txt"}])
        assert json.loads(out_file.getvalue()) == [{"path": "/a.txt"}]
