"""CLI tests: argument handling, exit codes and script output."""

import json

import pytest

from sigstream.interface.cli import load_assignments_from_file, main


def _assignment(name: str, **overrides) -> dict:
    item = {
        "user_id": f"u-{name}",
        "email": f"{name}@example.com",
        "display_name": name.title(),
        "signature_html": "<p>Regards</p>",
    }
    item.update(overrides)
    return item


@pytest.fixture
def assignments_file(tmp_path):
    path = tmp_path / "assignments.json"
    path.write_text(
        json.dumps([
            _assignment("ann", banner_html="<p>Sale</p>", banner_id="b1"),
            _assignment("bob"),
        ]),
        encoding="utf-8",
    )
    return path


class TestLoadAssignments:
    def test_loads_list(self, assignments_file):
        assignments = load_assignments_from_file(assignments_file)
        assert [a.email for a in assignments] == ["ann@example.com", "bob@example.com"]

    def test_missing_file_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            load_assignments_from_file(tmp_path / "nope.json")
        assert exc.value.code == 1

    def test_non_list_exits(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"user_id": "u1"}', encoding="utf-8")
        with pytest.raises(SystemExit):
            load_assignments_from_file(path)

    def test_invalid_assignment_exits(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([_assignment("ann", signature_html="")]), encoding="utf-8")
        with pytest.raises(SystemExit):
            load_assignments_from_file(path)
        assert "index 0" in capsys.readouterr().err


class TestSynthesizeCommand:
    def test_writes_script_to_stdout(self, assignments_file, capsys):
        code = main(["synthesize", "--file", str(assignments_file), "--strategy", "content"])
        assert code == 0
        captured = capsys.readouterr()
        assert captured.out.count("New-TransportRule") == 3
        assert "3 rule(s) in 2 group(s)" in captured.err

    def test_out_file(self, assignments_file, tmp_path):
        out = tmp_path / "rules.ps1"
        code = main(["synthesize", "--file", str(assignments_file), "--out", str(out)])
        assert code == 0
        assert "Connect-ExchangeOnline" in out.read_text(encoding="utf-8")

    def test_nothing_to_synthesize_exit_code(self, assignments_file, capsys):
        code = main(["synthesize", "--file", str(assignments_file), "--users", "u-ghost"])
        assert code == 2
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "user_not_found" in captured.err

    def test_redeploy(self, assignments_file, capsys):
        main(["synthesize", "--file", str(assignments_file), "--redeploy"])
        out = capsys.readouterr().out
        assert out.index("Remove-TransportRule") < out.index("New-TransportRule")

    def test_stable_ids(self, assignments_file, capsys):
        main(["--stable-ids", "synthesize", "--file", str(assignments_file), "--script-type", "signature"])
        out = capsys.readouterr().out
        assert "SIG_MARKER_H" in out


class TestDomainWideCommand:
    def test_emits_single_rule(self, tmp_path, capsys):
        banner = tmp_path / "banner.html"
        banner.write_text("<p>Company news</p>", encoding="utf-8")
        code = main(["domain-wide", "--domain", "example.com", "--banner-file", str(banner)])
        assert code == 0
        out = capsys.readouterr().out
        assert out.count("New-TransportRule") == 1
        assert "-SenderDomainIs 'example.com'" in out

    def test_invalid_domain(self, tmp_path, capsys):
        banner = tmp_path / "banner.html"
        banner.write_text("<p>x</p>", encoding="utf-8")
        assert main(["domain-wide", "--domain", "not a domain", "--banner-file", str(banner)]) == 1

    def test_missing_banner_file(self, tmp_path):
        assert main(["domain-wide", "--domain", "example.com", "--banner-file", str(tmp_path / "x")]) == 1


class TestCleanupCommand:
    def test_prompt_by_default(self, capsys):
        assert main(["cleanup"]) == 0
        assert "Read-Host" in capsys.readouterr().out

    def test_no_confirm(self, capsys):
        assert main(["cleanup", "--no-confirm"]) == 0
        out = capsys.readouterr().out
        assert "Read-Host" not in out
        assert "Remove-TransportRule" in out


class TestValidateCommand:
    def test_valid_file(self, assignments_file, capsys):
        assert main(["validate", "--file", str(assignments_file)]) == 0
        assert json.loads(capsys.readouterr().out)["is_valid"] is True

    def test_banner_script_without_banners_fails(self, tmp_path, capsys):
        path = tmp_path / "a.json"
        path.write_text(json.dumps([_assignment("bob")]), encoding="utf-8")
        assert main(["validate", "--file", str(path), "--script-type", "banner"]) == 1
        assert json.loads(capsys.readouterr().out)["errors"]


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "synthesize" in capsys.readouterr().out
