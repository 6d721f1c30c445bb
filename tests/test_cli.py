from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

from statsagg.cli import main


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("STATSAGG_DELIMITER", "STATSAGG_LIMIT", "STATSAGG_OUTFILE", "STATSAGG_SORT"):
        monkeypatch.delenv(name, raising=False)


def _write(path: Path, *lines: str) -> Path:
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    return path


def test_aggregates_files_to_outfile(tmp_path: Path) -> None:
    first = _write(tmp_path / "one.tsv", 'foo\t{"chips": 1, "drinks": 1, "frugal": false}', 'bar\t{"pizza": 2}')
    second = _write(tmp_path / "two.tsv", 'foo\t{"chips": 3, "frugal": true}', 'bar\t{"cheese": 3}')
    outfile = tmp_path / "out.tsv"

    status = main(["--sort", "--outfile", str(outfile), str(first), str(second)])

    assert status == 0
    assert outfile.read_text(encoding="utf-8") == (
        'bar\t{"cheese":3,"pizza":2}\nfoo\t{"chips":4,"drinks":1,"frugal":true}\n'
    )


def test_reads_stdin_and_writes_stdout(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr(sys, "stdin", io.StringIO('k|{"n": 1}\nk|{"n": 2}\n'))

    status = main(["--del", "|"])

    assert status == 0
    assert capsys.readouterr().out == 'k\t{"n":3}\n'


def test_missing_delimiter_exits_nonzero(tmp_path: Path) -> None:
    source = _write(tmp_path / "in.tsv", 'foo\t{"n": 1}', "broken line", 'foo\t{"n": 2}')
    outfile = tmp_path / "out.tsv"

    status = main(["--outfile", str(outfile), str(source)])

    assert status == 1
    assert outfile.read_text(encoding="utf-8") == ""


def test_bad_json_is_skipped(tmp_path: Path) -> None:
    source = _write(tmp_path / "in.tsv", 'foo\t{"n": 1}', "foo\t{oops", 'foo\t{"n": 2}')
    outfile = tmp_path / "out.tsv"

    assert main(["--outfile", str(outfile), str(source)]) == 0
    assert outfile.read_text(encoding="utf-8") == 'foo\t{"n":3}\n'


def test_limit_produces_separate_flushes(tmp_path: Path) -> None:
    source = _write(tmp_path / "in.tsv", 'a\t{"n": 1}', 'b\t{"n": 1}', 'a\t{"n": 1}')
    outfile = tmp_path / "out.tsv"

    assert main(["--limit", "1", "--outfile", str(outfile), str(source)]) == 0
    assert outfile.read_text(encoding="utf-8").splitlines() == [
        'a\t{"n":1}',
        'b\t{"n":1}',
        'a\t{"n":1}',
    ]


def test_missing_input_file_exits_nonzero(tmp_path: Path) -> None:
    outfile = tmp_path / "out.tsv"
    assert main(["--outfile", str(outfile), str(tmp_path / "nope.tsv")]) == 1


def test_unwritable_outfile_exits_nonzero(tmp_path: Path) -> None:
    source = _write(tmp_path / "in.tsv", 'a\t{"n": 1}')
    assert main(["--outfile", str(tmp_path / "missing-dir" / "out.tsv"), str(source)]) == 1


def test_env_configures_sorting(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = _write(tmp_path / "in.tsv", 'b\t{"n": 1}', 'a\t{"n": 1}')
    outfile = tmp_path / "out.tsv"
    monkeypatch.setenv("STATSAGG_SORT", "1")

    assert main(["--outfile", str(outfile), str(source)]) == 0
    assert outfile.read_text(encoding="utf-8") == 'a\t{"n":1}\nb\t{"n":1}\n'


def test_negative_limit_is_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--limit", "-1"])
    assert excinfo.value.code == 2


def test_help_exits_zero(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0
    assert "--limit" in capsys.readouterr().out


def test_bare_carriage_return_stays_inside_payload(tmp_path: Path) -> None:
    source = tmp_path / "in.tsv"
    source.write_bytes(b'k\t{"a": 1,\r"b": 2}\nk\t{"a": 1}\n')
    outfile = tmp_path / "out.tsv"

    assert main(["--outfile", str(outfile), str(source)]) == 0
    assert outfile.read_text(encoding="utf-8") == 'k\t{"a":2,"b":2}\n'


def test_stdin_splits_on_newline_only(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(b'k\t{"a": 1,\r"b": 2}\r\nk\t{"a": 1}\n')))

    assert main([]) == 0
    assert capsys.readouterr().out == 'k\t{"a":2,"b":2}\n'


def test_unencodable_string_skips_only_that_key(tmp_path: Path) -> None:
    source = _write(tmp_path / "in.tsv", 'k\t{"s": "\\ud800", "n": 1}', 'j\t{"n": 2}')
    outfile = tmp_path / "out.tsv"

    assert main(["--outfile", str(outfile), str(source)]) == 0
    assert outfile.read_text(encoding="utf-8") == 'j\t{"n":2}\n'


def test_deeply_nested_payloads_do_not_crash(tmp_path: Path) -> None:
    nested = "[" * 150 + "]" * 150
    too_deep = "[" * 5000 + "]" * 5000
    source = _write(tmp_path / "in.tsv", f'k\t{{"a": {nested}}}', f'k\t{{"a": {nested}}}', f'k\t{{"b": {too_deep}}}')
    outfile = tmp_path / "out.tsv"

    assert main(["--outfile", str(outfile), str(source)]) == 0
    expected = 'k\t{"a":[' + ("[" * 149 + "]" * 149) + "," + ("[" * 149 + "]" * 149) + "]}\n"
    assert outfile.read_text(encoding="utf-8") == expected
