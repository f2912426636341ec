import io
import json
from pathlib import Path

import pytest

from vxl import vxl_cli

SOURCE = "fun.sub(123, foo=321)"


def test_run_vxl_string_input_prints(capsys: pytest.CaptureFixture[str]) -> None:
    vxl_cli.run_vxl(source=SOURCE, is_string=True)
    out = capsys.readouterr().out
    (top,) = json.loads(out)
    assert top["token"]["function"]["name"]["token"] == {"identifier": "fun"}
    assert out.count("\n") > 1


def test_run_vxl_compact(capsys: pytest.CaptureFixture[str]) -> None:
    vxl_cli.run_vxl(source="47", is_string=True, compact=True)
    out = capsys.readouterr().out
    assert out.strip() == (
        '[{"offset": 0, "line": 1, "column": 1, "token": {"number": {"int": "47"}}}]'
    )


def test_run_vxl_file_input(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    file_path = tmp_path / "input.vxl"
    file_path.write_text("a\nb\n", encoding="utf-8")
    vxl_cli.run_vxl(source=str(file_path))
    assert len(json.loads(capsys.readouterr().out)) == 2


def test_run_vxl_rejects_other_suffix(tmp_path: Path) -> None:
    file_path = tmp_path / "input.txt"
    file_path.write_text("a", encoding="utf-8")
    with pytest.raises(ValueError, match=r"\.vxl"):
        vxl_cli.run_vxl(source=str(file_path))


def test_run_vxl_output_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output_path = tmp_path / "tree.json"
    vxl_cli.run_vxl(source=SOURCE, is_string=True, out=str(output_path))
    assert capsys.readouterr().out == ""
    assert json.loads(output_path.read_text(encoding="utf-8"))[0]["line"] == 1


def test_run_vxl_stdin(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("[1, 2]"))
    vxl_cli.run_vxl(source=None)
    (top,) = json.loads(capsys.readouterr().out)
    assert len(top["token"]["list"]) == 2


def test_run_vxl_profile(capsys: pytest.CaptureFixture[str]) -> None:
    vxl_cli.run_vxl(source=SOURCE, is_string=True, profile=True)
    err = capsys.readouterr().err
    assert "parse:" in err
    assert "serialize:" in err


def test_main_success(capsys: pytest.CaptureFixture[str]) -> None:
    assert vxl_cli.main(["-s", SOURCE, "--compact"]) == 0
    assert "fun" in capsys.readouterr().out


def test_main_parse_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert vxl_cli.main(["-s", "fun() fun2()"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.startswith("Parse error:")
    assert "line 1" in captured.err


def test_main_missing_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert vxl_cli.main([str(tmp_path / "missing.vxl")]) == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_main_stdin_dash(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr("sys.stdin", io.StringIO("true"))
    assert vxl_cli.main(["-"]) == 0
    assert json.loads(capsys.readouterr().out)[0]["token"] == {"boolean": True}


def test_main_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        vxl_cli.main(["-x"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.startswith("vxl ")


def test_main_trace_enables_debug_logging(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    configured: dict[str, object] = {}
    monkeypatch.setattr(
        "logging.basicConfig", lambda **kwargs: configured.update(kwargs)
    )
    with caplog.at_level("DEBUG", logger="vxl"):
        assert vxl_cli.main(["-s", "x", "--trace"]) == 0
    assert configured["level"] == 10
    assert any(r.getMessage().startswith("-> expr_term") for r in caplog.records)
