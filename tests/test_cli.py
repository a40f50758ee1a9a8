"""CLI tests for `ghostdep check`."""

import json

import pytest
from typer.testing import CliRunner

from ghostdep.main import CI_ENV_VARS, EXIT_ERROR, EXIT_GHOSTS_FOUND, app, find_source_files, is_ci_environment
from ghostdep.utils.export import REPORT_FILENAME

runner = CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Small Vue + TS project with one ghost dependency (axios)."""
    monkeypatch.chdir(tmp_path)
    for name in ("GHOSTDEP_LOG_LEVEL", "GHOSTDEP_ENCODING", "GHOSTDEP_MAX_WORKERS", "GHOSTDEP_EXCLUDE_ALIAS"):
        monkeypatch.delenv(name, raising=False)

    (tmp_path / 'package.json').write_text(json.dumps({"dependencies": {"vue": "^3.4.0"}}))
    src = tmp_path / 'src'
    src.mkdir()
    (src / 'App.vue').write_text("<script setup>\nimport { ref } from 'vue';\nimport Hello from '@/components/Hello.vue';\n</script>\n")
    (src / 'api.ts').write_text("import axios from 'axios';\nexport const get = (u: string) => axios.get(u);\n")
    (src / 'types.d.ts').write_text("import type { X } from 'declared-only-in-types';\n")
    (tmp_path / 'node_modules' / 'axios').mkdir(parents=True)
    (tmp_path / 'node_modules' / 'axios' / 'index.js').write_text("require('follow-redirects');\n")
    return tmp_path


class TestFindSourceFiles:
    def test_skips_dependency_stores_and_declarations(self, project):
        files = find_source_files(project)
        assert files == sorted([project / 'src' / 'App.vue', project / 'src' / 'api.ts'])

    def test_ignore_patterns(self, project):
        files = find_source_files(project, ['src/api.*'])
        assert files == [project / 'src' / 'App.vue']


class TestCheckCommand:
    def test_reports_ghosts_and_exports(self, project):
        result = runner.invoke(app, ["check", str(project), "-x", "@"])

        assert result.exit_code == EXIT_GHOSTS_FOUND, result.output
        assert "axios" in result.output
        report = json.loads((project / REPORT_FILENAME).read_text(encoding='utf-8'))
        assert report == {"axios": [str(project / 'src' / 'api.ts')]}

    def test_alias_not_excluded_without_flag(self, project):
        result = runner.invoke(app, ["check", str(project), "--no-export"])

        assert result.exit_code == EXIT_GHOSTS_FOUND
        assert "@/components/Hello.vue" in result.output
        assert not (project / REPORT_FILENAME).exists()

    def test_clean_project_exits_zero(self, project):
        manifest = project / 'package.json'
        manifest.write_text(json.dumps({"dependencies": {"vue": "3", "axios": "1"}}))

        result = runner.invoke(app, ["check", str(project), "-x", "@"])
        assert result.exit_code == 0, result.output
        assert "no ghost dependencies" in result.output

    def test_explicit_manifest(self, project):
        other = project / 'alt.json'
        other.write_text(json.dumps({"devDependencies": {"axios": "1", "vue": "3"}}))

        result = runner.invoke(app, ["check", str(project), "-m", str(other), "-x", "@"])
        assert result.exit_code == 0, result.output

    def test_monorepo_mode(self, project):
        pkg = project / 'packages' / 'ui'
        pkg.mkdir(parents=True)
        (pkg / 'package.json').write_text(json.dumps({"dependencies": {"axios": "1"}}))
        (pkg / 'client.js').write_text("import axios from 'axios';\nimport { h } from 'vue';\n")

        result = runner.invoke(app, ["check", str(project), "--monorepo", "-x", "@", "--no-export"])
        assert result.exit_code == EXIT_GHOSTS_FOUND
        # src/api.ts lacks axios; packages/ui declares it and inherits vue from the root
        assert "axios" in result.output
        assert "vue" not in result.output

    def test_malformed_manifest_exits_with_error(self, project):
        (project / 'package.json').write_text("{")

        result = runner.invoke(app, ["check", str(project)])
        assert result.exit_code == EXIT_ERROR
        assert "Cannot load manifest" in result.output

    def test_missing_project_path(self, tmp_path):
        result = runner.invoke(app, ["check", str(tmp_path / 'nowhere')])
        assert result.exit_code == EXIT_ERROR

    def test_invalid_log_level(self, project):
        result = runner.invoke(app, ["check", str(project), "--log-level", "loud"])
        assert result.exit_code == EXIT_ERROR


def test_version_command():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "ghostdep" in result.output


def test_ci_detection(monkeypatch):
    for name in CI_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    assert not is_ci_environment()

    monkeypatch.setenv("GITHUB_ACTIONS", "true")
    assert is_ci_environment()
