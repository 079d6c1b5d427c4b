import json

import pytest
from typer.testing import CliRunner

from pattern_engine.cli import app
from pattern_engine.core.detection_config import ENV_PREFIX

from .samples import FACTORY_SOURCE, LEGACY_SINGLETON_SOURCE, OBSERVER_SOURCE, PLAIN_SOURCE, SINGLETON_SOURCE

runner = CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    for name in ("MIN_CONFIDENCE", "MAX_WORKERS", "MAX_DEPTH"):
        monkeypatch.delenv(ENV_PREFIX + name, raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / "singleton.py").write_text(SINGLETON_SOURCE)
    (tmp_path / "shapes.py").write_text(FACTORY_SOURCE)
    (tmp_path / "point.py").write_text(PLAIN_SOURCE)
    return tmp_path


class TestScan:

    def test_json_report(self, project):
        result = runner.invoke(app, ["scan", ".", "--format", "json"])
        assert result.exit_code == 0, result.output

        document = json.loads(result.stdout)
        assert document['summary']['total_patterns'] == 2
        assert document['summary']['files_scanned'] == 3
        assert sorted(document['files']) == ["shapes.py", "singleton.py"]

    def test_table_report_and_output_file(self, project):
        result = runner.invoke(app, ["scan", ".", "--out", "reports/patterns.json", "--workers", "2"])
        assert result.exit_code == 0, result.output
        assert "Singleton" in result.output
        assert "Report written" in result.output

        document = json.loads((project / "reports" / "patterns.json").read_text())
        assert document['patterns']['Factory']['count'] == 1

    def test_missing_path(self, project):
        result = runner.invoke(app, ["scan", "nowhere"])
        assert result.exit_code == 2

    def test_unknown_format(self, project):
        result = runner.invoke(app, ["scan", ".", "--format", "xml"])
        assert result.exit_code == 2

    def test_invalid_configuration(self, project, monkeypatch):
        name = ENV_PREFIX + "MIN_CONFIDENCE"
        monkeypatch.setenv(name, "x")
        monkeypatch.delenv(name)
        (project / "bad.env").write_text(f"{name}=loud\n")

        result = runner.invoke(app, ["scan", ".", "--env-file", "bad.env"])
        assert result.exit_code == 2
        assert "Invalid configuration" in result.output


class TestDetect:

    def test_lists_matches(self, project):
        result = runner.invoke(app, ["detect", "singleton.py"])
        assert result.exit_code == 0, result.output
        assert "Singleton" in result.output

    def test_no_matches(self, project):
        result = runner.invoke(app, ["detect", "point.py"])
        assert result.exit_code == 0
        assert "No patterns detected" in result.output

    def test_unparseable_file(self, project):
        (project / "broken.py").write_text("def broken(:\n")
        result = runner.invoke(app, ["detect", "broken.py"])
        assert result.exit_code == 2


class TestApply:

    def test_applies_template(self, project):
        (project / "legacy.py").write_text(LEGACY_SINGLETON_SOURCE)
        result = runner.invoke(app, ["apply", "legacy.py", "Singleton", "--out", "fixed.py"])
        assert result.exit_code == 0, result.output
        assert "Applied Singleton" in result.output
        assert "def get_instance(cls)" in (project / "fixed.py").read_text()

    def test_no_match(self, project):
        result = runner.invoke(app, ["apply", "point.py", "Singleton"])
        assert result.exit_code == 1
        assert (project / "point.py").read_text() == PLAIN_SOURCE

    def test_unknown_template(self, project):
        (project / "subject.py").write_text(OBSERVER_SOURCE)
        result = runner.invoke(app, ["apply", "subject.py", "Observer"])
        assert result.exit_code == 2

    def test_missing_file(self, project):
        result = runner.invoke(app, ["apply", "missing.py", "Singleton"])
        assert result.exit_code == 2
