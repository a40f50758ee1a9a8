"""Tests for package.json discovery, loading and ancestor-union scoping."""

import json
from pathlib import Path

import pytest

from ghostdep.analyzer.manifest import (
    GhostDepError,
    ManifestCatalog,
    ManifestError,
    applicable_manifests,
    discover_manifests,
    load_declared,
    load_manifest,
)


def write_manifest(path: Path, **sections) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"name": path.parent.name, **sections}), encoding='utf-8')
    return path


@pytest.fixture
def workspace(tmp_path):
    """A workspace root with two packages and an installed dependency."""
    write_manifest(tmp_path / 'package.json', devDependencies={"lodash": "^4.0.0"})
    write_manifest(tmp_path / 'packages' / 'web' / 'package.json', dependencies={"react": "^18.0.0"})
    write_manifest(tmp_path / 'packages' / 'api' / 'package.json', dependencies={"express": "^4.0.0"})
    write_manifest(tmp_path / 'node_modules' / 'lodash' / 'package.json', dependencies={})
    write_manifest(tmp_path / 'packages' / 'web' / 'node_modules' / 'react' / 'package.json')
    return tmp_path


class TestDiscovery:
    def test_skips_dependency_stores(self, workspace):
        found = discover_manifests(workspace)
        assert found == sorted([
            workspace / 'package.json',
            workspace / 'packages' / 'api' / 'package.json',
            workspace / 'packages' / 'web' / 'package.json',
        ])

    def test_empty_directory(self, tmp_path):
        assert discover_manifests(tmp_path) == []


class TestLoading:
    def test_only_dependencies_and_dev_dependencies_declare(self, tmp_path):
        path = write_manifest(
            tmp_path / 'package.json',
            dependencies={"react": "18"},
            devDependencies={"vitest": "1"},
            peerDependencies={"vue": "3"},
            optionalDependencies={"fsevents": "2"},
            scripts={"build": "vite build"},
        )
        manifest = load_manifest(path)
        assert manifest.declared == {"react", "vitest"}
        assert manifest.scope_root == tmp_path

    def test_missing_sections(self, tmp_path):
        path = write_manifest(tmp_path / 'package.json')
        assert load_declared([path]) == set()

    def test_load_declared_unions_manifests(self, workspace):
        declared = load_declared([workspace / 'package.json', workspace / 'packages' / 'web' / 'package.json'])
        assert declared == {"lodash", "react"}

    def test_malformed_json_is_fatal(self, tmp_path):
        path = tmp_path / 'package.json'
        path.write_text('{"dependencies": {', encoding='utf-8')
        with pytest.raises(ManifestError) as excinfo:
            load_declared([path])
        assert excinfo.value.path == path
        assert str(path) in str(excinfo.value)
        assert isinstance(excinfo.value, GhostDepError)

    def test_unreadable_manifest_is_fatal(self, tmp_path):
        with pytest.raises(ManifestError, match="unreadable"):
            load_manifest(tmp_path / 'nope' / 'package.json')

    def test_non_object_manifest_is_fatal(self, tmp_path):
        path = tmp_path / 'package.json'
        path.write_text('[]', encoding='utf-8')
        with pytest.raises(ManifestError, match="JSON object"):
            load_manifest(path)


class TestApplicableManifests:
    def test_ancestors_are_unioned(self):
        manifests = ['/root/package.json', '/root/pkg/package.json', '/root/other/package.json']
        assert applicable_manifests('/root/pkg/src/a.ts', manifests) == [
            Path('/root/package.json'),
            Path('/root/pkg/package.json'),
        ]

    def test_prefix_is_segment_aware(self):
        manifests = ['/repo/pkg/package.json']
        assert applicable_manifests('/repo/pkg2/src/a.ts', manifests) == []
        assert applicable_manifests('/repo/pkg/a.ts', manifests) == [Path('/repo/pkg/package.json')]

    def test_manifest_sources_appended_without_duplicates(self):
        calls = []

        def shared_config(file_path):
            calls.append(file_path)
            return ['/repo/tools/package.json', '/repo/package.json']

        result = applicable_manifests('/repo/app/a.ts', ['/repo/package.json'], [shared_config])
        assert result == [Path('/repo/package.json'), Path('/repo/tools/package.json')]
        assert calls == [Path('/repo/app/a.ts')]

    def test_no_governing_manifest(self):
        assert applicable_manifests('/elsewhere/a.js', ['/repo/package.json']) == []


class TestCatalog:
    def test_each_manifest_loaded_once(self, workspace, monkeypatch):
        import ghostdep.analyzer.manifest as manifest_module

        loads = []
        real_load = manifest_module.load_manifest

        def counting_load(path):
            loads.append(Path(path))
            return real_load(path)

        monkeypatch.setattr(manifest_module, 'load_manifest', counting_load)

        catalog = ManifestCatalog()
        root = workspace / 'package.json'
        web = workspace / 'packages' / 'web' / 'package.json'
        assert catalog.declared_for([root, web]) == {"lodash", "react"}
        assert catalog.declared_for([root]) == {"lodash"}
        assert loads == [root, web]
