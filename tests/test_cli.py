import json
import os
import subprocess
import sys
from pathlib import Path

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from skiff import skiff_cli
from skiff.skiff_dialect import EXTENDED, STANDARD, Dialect

SRC_DIR = Path(__file__).resolve().parents[1] / "src"

GOOD_SOURCE = 'load("lib.sky", "rule")\n\nrule(name = "x", srcs = [s for s in glob("*.c")])\n'


def test_run_skiff_string_ok(capsys: pytest.CaptureFixture[str]) -> None:
    assert skiff_cli.run_skiff("x = 1", is_string=True) == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""


def test_run_skiff_file_input(tmp_path: Path) -> None:
    src_file = tmp_path / "BUILD.sky"
    src_file.write_text(GOOD_SOURCE)
    assert skiff_cli.run_skiff(str(src_file)) == 0


def test_run_skiff_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        skiff_cli.run_skiff(str(tmp_path / "missing.sky"))


def test_run_skiff_dump_prints_ast_json(capsys: pytest.CaptureFixture[str]) -> None:
    assert skiff_cli.run_skiff("x = 1 + 2", is_string=True, dump=True) == 0
    ast = json.loads(capsys.readouterr().out)
    assert ast["kind"] == "block"
    assert ast["span"] == [0, 9]
    stmt = ast["statements"][0]
    assert stmt["kind"] == "assign"
    assert stmt["op"] == "="
    assert stmt["value"]["op"] == "+"


def test_run_skiff_show_tokens(capsys: pytest.CaptureFixture[str]) -> None:
    assert skiff_cli.run_skiff("x = 1", is_string=True, show_tokens=True) == 0
    out = capsys.readouterr().out
    assert "IDENT" in out
    assert "ASSIGN" in out
    assert "EOF" in out


def test_run_skiff_reports_error_on_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    assert skiff_cli.run_skiff("x = [1,\n  +]\n", is_string=True) == 1
    err = capsys.readouterr().err.splitlines()
    assert err[0] == "<string>:2:4: error: Expected expression, got ']'"
    assert err[1] == "      +]"
    assert err[2] == "    " + "   ^"


def test_run_skiff_reports_lex_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    src_file = tmp_path / "bad.sky"
    src_file.write_text("x = 1\ny = $\n")
    assert skiff_cli.run_skiff(str(src_file)) == 1
    err = capsys.readouterr().err
    assert err.startswith(f"{src_file}:2:5: error: Unexpected character")


def test_run_skiff_json_errors(capsys: pytest.CaptureFixture[str]) -> None:
    code = skiff_cli.run_skiff(
        "f = lambda x: x",
        is_string=True,
        dialect=Dialect(enable_lambda=False),
        json_errors=True,
    )
    assert code == 1
    diagnostic = json.loads(capsys.readouterr().out)
    assert diagnostic["code"] == "dialect"
    assert diagnostic["file"] == "<string>"
    assert diagnostic["offsets"] == [4, 15]
    assert diagnostic["range"]["start"] == {"line": 0, "character": 4}


def test_run_skiff_dialect_decides(capsys: pytest.CaptureFixture[str]) -> None:
    source = "def f(x: int) -> int:\n    return x\n"
    assert skiff_cli.run_skiff(source, is_string=True, dialect=STANDARD) == 1
    assert "Type annotations" in capsys.readouterr().err
    assert skiff_cli.run_skiff(source, is_string=True, dialect=EXTENDED) == 0


def test_resolve_dialect(tmp_path: Path) -> None:
    assert skiff_cli.resolve_dialect("standard") is STANDARD
    assert skiff_cli.resolve_dialect("extended") is EXTENDED
    cfg = tmp_path / "dialect.json"
    cfg.write_text(json.dumps({"enable_def": False}))
    assert not skiff_cli.resolve_dialect(str(cfg)).permits_def()


def test_main_string_ok(capsys: pytest.CaptureFixture[str]) -> None:
    assert skiff_cli.main(["-s", "x = [1, 2]", "--dump"]) == 0
    assert json.loads(capsys.readouterr().out)["statements"][0]["kind"] == "assign"


def test_main_passes_arguments(monkeypatch: pytest.MonkeyPatch) -> None:
    called = {}

    def dummy_run(**kwargs: object) -> int:
        called.update(kwargs)
        return 0

    monkeypatch.setattr(skiff_cli, "run_skiff", dummy_run)
    monkeypatch.setattr(
        sys, "argv", ["skiff", "-s", "x = 5", "--dialect", "extended", "--tokens"]
    )
    assert skiff_cli.main() == 0
    assert called["source"] == "x = 5"
    assert called["is_string"] is True
    assert called["dialect"] is EXTENDED
    assert called["show_tokens"] is True
    assert called["dump"] is False
    assert called["json_errors"] is False


def test_main_parse_error_exit_code(capsys: pytest.CaptureFixture[str]) -> None:
    assert skiff_cli.main(["-s", "a < b < c"]) == 1
    assert "cannot be chained" in capsys.readouterr().err


def test_main_unknown_preset(capsys: pytest.CaptureFixture[str]) -> None:
    assert skiff_cli.main(["-s", "x = 1", "--dialect", "python"]) == 2
    err = capsys.readouterr().err
    assert "Unknown dialect preset: python" in err
    assert "  - standard" in err


def test_main_invalid_dialect_file(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cfg = tmp_path / "dialect.json"
    cfg.write_text(json.dumps({"enable_goto": True}))
    assert skiff_cli.main(["-s", "x = 1", "--dialect", str(cfg)]) == 2
    assert "'enable_goto' is not a dialect flag" in capsys.readouterr().err


def test_main_missing_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert skiff_cli.main([str(tmp_path / "nope.sky")]) == 2
    assert "cannot read" in capsys.readouterr().err


def test_main_verbose_enables_debug_logging(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    levels = {}

    def fake_basic_config(**kwargs: object) -> None:
        levels.update(kwargs)

    monkeypatch.setattr(skiff_cli.logging, "basicConfig", fake_basic_config)
    src_file = tmp_path / "ok.sky"
    src_file.write_text("pass\n")
    assert skiff_cli.main([str(src_file), "-v"]) == 0
    assert levels["level"] == skiff_cli.logging.DEBUG


def test_main_requires_source() -> None:
    with pytest.raises(SystemExit) as e:
        skiff_cli.main([])
    assert e.value.code == 2


@settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(
    source=st.text(
        alphabet=st.characters(min_codepoint=9, max_codepoint=126), max_size=20
    )
)
def test_run_skiff_random_input_does_not_crash(
    source: str, capsys: pytest.CaptureFixture[str]
) -> None:
    assert skiff_cli.run_skiff(source, is_string=True) in (0, 1)
    capsys.readouterr()


def test_skiff_cli_module_entrypoint_runs() -> None:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        p for p in (str(SRC_DIR), env.get("PYTHONPATH", "")) if p
    )
    result = subprocess.run(
        [sys.executable, "-m", "skiff.skiff_cli", "-s", "x = 1", "--dump"],
        capture_output=True,
        timeout=30,
        env=env,
    )
    assert result.returncode == 0
    assert json.loads(result.stdout)["kind"] == "block"
