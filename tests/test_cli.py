"""Command-line driver tests."""

import io
import json

import pytest

from umjunsik import compile_source
from umjunsik.cli import IR_HEADER, main, parse_args, to_json

SOURCE = "어떻게\n엄..\n식어!\n이 사람이름이냐ㅋㅋ\n"


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "prog.umm"
    path.write_text(SOURCE, encoding="utf-8")
    return path


def _stdin(monkeypatch, data: bytes) -> None:
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(data), encoding="utf-8"))


def test_help(capsys):
    assert main(["--help"]) == 0
    out = capsys.readouterr().out
    assert "--stop-at PHASE" in out
    assert "--no-verify" in out


def test_compile_prints_header_then_ir(source_file, capsys):
    assert main([str(source_file)]) == 0
    out = capsys.readouterr().out
    assert out == IR_HEADER + "\n" + compile_source(SOURCE)


def test_quiet_drops_header(source_file, capsys):
    assert main(["-q", str(source_file)]) == 0
    assert capsys.readouterr().out == compile_source(SOURCE)


def test_output_file(source_file, tmp_path, capsys):
    out_path = tmp_path / "prog.ir"
    assert main([str(source_file), "-o", str(out_path)]) == 0
    assert out_path.read_text(encoding="utf-8") == compile_source(SOURCE)
    assert capsys.readouterr().out == "umjunsik: output written to " + str(out_path) + "\n"


def test_output_file_quiet(source_file, tmp_path, capsys):
    out_path = tmp_path / "prog.ir"
    assert main(["--quiet", "--output", str(out_path), str(source_file)]) == 0
    assert out_path.exists()
    assert capsys.readouterr().out == ""


def test_stop_at_tokens(source_file, capsys):
    assert main(["--stop-at", "tokens", str(source_file)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("[\n")
    assert '"type": "PROGRAM_START"' in out
    assert '"value": "\\n"' in out
    assert '"count": 1' in out
    assert IR_HEADER not in out


def test_stop_at_parse(source_file, capsys):
    assert main(["--stop-at", "parse", str(source_file)]) == 0
    out = capsys.readouterr().out
    assert '"kind": "assign"' in out
    assert '"kind": "print_num"' in out
    assert '"line": 3' in out


def test_reads_stdin_without_file(monkeypatch, capsys):
    _stdin(monkeypatch, SOURCE.encode("utf-8"))
    assert main(["-q"]) == 0
    assert capsys.readouterr().out == compile_source(SOURCE)


def test_dash_reads_stdin(monkeypatch, capsys):
    _stdin(monkeypatch, SOURCE.encode("utf-8"))
    assert main(["-q", "-"]) == 0
    assert "fn @main() -> i64 {" in capsys.readouterr().out


def test_invalid_utf8(monkeypatch, capsys):
    _stdin(monkeypatch, b"\xff\xfe")
    assert main([]) == 1
    assert "invalid utf-8" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.umm")]) == 1
    assert "cannot read" in capsys.readouterr().err


def test_compile_error_exits_one(tmp_path, capsys):
    path = tmp_path / "bad.umm"
    path.write_text("어떻게\n식...\n", encoding="utf-8")
    assert main([str(path)]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("umjunsik: ")
    assert "line 2" in captured.err


def test_goto_error_exits_one(tmp_path, capsys):
    path = tmp_path / "far.umm"
    path.write_text("어떻게\n준.....\n", encoding="utf-8")
    assert main(["-q", str(path)]) == 1
    assert "outside 1..2" in capsys.readouterr().err


@pytest.mark.parametrize(
    "args,message",
    [
        (["--bogus"], "unknown flag '--bogus'"),
        (["--stop-at"], "--stop-at requires an argument"),
        (["--stop-at", "link"], "unknown phase 'link'"),
        (["-o"], "-o requires an argument"),
        (["a.umm", "b.umm"], "unexpected argument 'b.umm'"),
    ],
)
def test_usage_errors_exit_two(args, message, capsys):
    assert main(args) == 2
    assert message in capsys.readouterr().err


def test_parse_args_defaults():
    opts = parse_args(["prog.umm"])
    assert opts is not None
    assert opts.input_file == "prog.umm"
    assert opts.output_file is None
    assert opts.stop_at == "ir"
    assert opts.verify
    assert not opts.quiet
    assert not opts.verbose


def test_parse_args_flags():
    opts = parse_args(["-v", "--no-verify", "--stop-at", "parse"])
    assert opts is not None
    assert opts.input_file is None
    assert opts.verbose
    assert not opts.verify
    assert opts.stop_at == "parse"


def test_to_json_escapes_and_nests():
    assert to_json({}) == "{}"
    assert to_json([]) == "[]"
    assert to_json({"a": [1, None, True], "b": 'q"\\'}) == (
        '{\n  "a": [\n    1,\n    null,\n    true\n  ],\n  "b": "q\\"\\\\"\n}'
    )


def test_to_json_keeps_hangul_readable():
    assert to_json({"value": "어떻게"}) == '{\n  "value": "어떻게"\n}'


def test_stop_at_tokens_is_valid_json(source_file, capsys):
    assert main(["--stop-at", "tokens", str(source_file)]) == 0
    tokens = json.loads(capsys.readouterr().out)
    assert tokens[0] == {"type": "PROGRAM_START", "value": "어떻게", "line": 1, "col": 1}
    assert tokens[-1]["type"] == "EOF"
