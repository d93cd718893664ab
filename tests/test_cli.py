"""
Tests for the ncl-gen command line.
"""

from pathlib import Path

import pytest

from ncl_gen.__main__ import build_parser, log_config_from_args, main
from ncl_gen.validator import NginxValidator, ValidationResult


SOURCE = '%h = { gzip on; };\nhttp {\n  %inline(%h);\n  listen %env("NCL_GEN_CLI_PORT", "80");\n}\n'


def test_writes_default_output_file(write_ncl, capsys) -> None:
    """Test that output defaults to the input path with a .conf suffix."""
    path = write_ncl("site.ncl", SOURCE)

    assert main([str(path)]) == 0

    output_path = path.with_suffix(".conf")
    assert output_path.read_text(encoding="utf-8") == "http {\n  gzip on;\n  listen 80;\n}\n"
    assert capsys.readouterr().out.strip() == f"Generated: {output_path.resolve()}"


def test_writes_explicit_output_file(write_ncl, tmp_path: Path) -> None:
    path = write_ncl("site.ncl", SOURCE)
    output_path = tmp_path / "build" / "nginx.conf"

    assert main([str(path), "-o", str(output_path)]) == 0
    assert output_path.exists()


def test_stdout(write_ncl, capsys) -> None:
    """Test that --stdout prints the config and writes no file."""
    path = write_ncl("site.ncl", SOURCE)

    assert main([str(path), "--stdout"]) == 0

    assert capsys.readouterr().out == "http {\n  gzip on;\n  listen 80;\n}\n"
    assert not path.with_suffix(".conf").exists()


def test_no_inline_and_indent(write_ncl, capsys) -> None:
    """Test that --no-inline keeps references and --indent sets the width."""
    path = write_ncl("site.ncl", SOURCE)

    assert main([str(path), "--stdout", "--no-inline", "--indent", "    "]) == 0

    assert capsys.readouterr().out == "http {\n    %inline(%h);\n    listen 80;\n}\n"


def test_environment_is_used(write_ncl, capsys, monkeypatch) -> None:
    """Test that %env() reads the process environment."""
    monkeypatch.setenv("NCL_GEN_CLI_PORT", "8080")
    path = write_ncl("site.ncl", SOURCE)

    assert main([str(path), "--stdout"]) == 0

    assert "listen 8080;" in capsys.readouterr().out


def test_missing_input(tmp_path: Path, capsys) -> None:
    """Test that a missing input file exits with status 1."""
    assert main([str(tmp_path / "missing.ncl")]) == 1

    assert "Error: Input file not found:" in capsys.readouterr().err


def test_compile_error(write_ncl, capsys) -> None:
    """Test that compile errors are reported with file and position."""
    path = write_ncl("broken.ncl", "server { listen 80 }")

    assert main([str(path)]) == 1

    err = capsys.readouterr().err
    assert err.startswith("Error: Failed to parse")
    assert "Expected ';'" in err
    assert not path.with_suffix(".conf").exists()


def test_extension_warning(write_ncl, capsys) -> None:
    path = write_ncl("site.txt", "events { }")

    assert main([str(path), "--stdout", "--no-color"]) == 0

    assert "does not have .ncl extension" in capsys.readouterr().err


def test_lint_warnings_are_logged(write_ncl, capsys) -> None:
    """Test that lint warnings reach stderr."""
    path = write_ncl("site.ncl", "%unused = { gzip on; };\nevents { }")

    assert main([str(path), "--stdout", "--no-color"]) == 0

    assert "Template '%unused' is defined but never used" in capsys.readouterr().err


def test_quiet_hides_warnings(write_ncl, capsys) -> None:
    path = write_ncl("site.txt", "events { }")

    assert main([str(path), "--stdout", "-q"]) == 0

    assert capsys.readouterr().err == ""


def test_validate_only(write_ncl, capsys, monkeypatch) -> None:
    """Test that --validate-only skips writing the output file."""
    path = write_ncl("site.ncl", "events { }")
    seen = []

    def fake_validate(self, content):
        seen.append((content, self.options.use_docker))
        return ValidationResult(is_valid=True, output="")

    monkeypatch.setattr(NginxValidator, "validate", fake_validate)

    assert main([str(path), "--validate-only", "--no-docker"]) == 0

    assert seen == [("events {\n}", False)]
    assert "Validation passed" in capsys.readouterr().out
    assert not path.with_suffix(".conf").exists()


def test_validate_failure(write_ncl, capsys, monkeypatch) -> None:
    """Test that a failed validation exits with status 1."""
    path = write_ncl("site.ncl", "events { }")

    def fake_validate(self, content):
        return ValidationResult(
            is_valid=False,
            output="",
            errors=["nginx: [emerg] no \"events\" section"],
            warnings=["nginx: [warn] something odd"],
        )

    monkeypatch.setattr(NginxValidator, "validate", fake_validate)

    assert main([str(path), "--validate"]) == 1

    captured = capsys.readouterr()
    assert "Generated:" in captured.out
    assert "Validation failed:" in captured.err
    assert '  - nginx: [emerg] no "events" section' in captured.err
    assert "Warning: nginx: [warn] something odd" in captured.err
    assert path.with_suffix(".conf").exists()


def test_log_file(write_ncl, tmp_path: Path) -> None:
    """Test that --log-file also sends records to a file."""
    path = write_ncl("site.txt", "events { }")
    log_path = tmp_path / "logs" / "ncl-gen.log"

    assert main([str(path), "--stdout", "--log-file", str(log_path)]) == 0

    assert "does not have .ncl extension" in log_path.read_text(encoding="utf-8")


def test_version(capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])

    assert exc_info.value.code == 0
    assert "ncl-gen 1.0.0" in capsys.readouterr().out


@pytest.mark.parametrize(
    "flags, level",
    [
        ([], "warning"),
        (["-v"], "info"),
        (["-d"], "debug"),
        (["-q"], "error"),
        (["-d", "-q"], "debug"),
    ],
)
def test_log_levels(flags: list[str], level: str) -> None:
    """Test that verbosity flags map to console log levels."""
    args = build_parser().parse_args(["site.ncl", *flags])

    assert log_config_from_args(args).console_level == level
