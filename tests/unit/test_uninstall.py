"""Unit tests for uninstall planning and execution."""

import pytest

from bundlekeeper.installer import InstallStateMachine
from bundlekeeper.lib.snapshot import FileStateEntry
from bundlekeeper.lib.vcs import NullVcs, VcsStatus
from bundlekeeper.manifest import BundleManifest
from bundlekeeper.manifest_store import ManifestStore
from bundlekeeper.uninstall import Uninstaller, plan_uninstall, select_prunable_directories

KIT_FILES = {"Assets/Foo.cs": b"class Foo {}", "Assets/Sub": None, "Assets/Sub/Bar.png": b"png"}


def _entries(*paths):
    return [FileStateEntry(p, None, 1, 1) for p in paths]


@pytest.fixture
def installed(config, make_container, fake_extractor):
    kit = make_container("kit.unitypackage", KIT_FILES, title="Demo Kit")
    InstallStateMachine(config, vcs=NullVcs(), extractor=fake_extractor(KIT_FILES)).install(kit)
    return ManifestStore(config.manifest_dir)


class TestPlan:
    def test_files_and_directories(self, project):
        (project / "Assets" / "Sub").mkdir()
        (project / "Assets" / "Sub" / "Bar.png").write_bytes(b"png")
        (project / "Assets" / "Foo.cs").write_text("x")
        m = BundleManifest(
            title="t",
            installed_files=_entries(
                "assets/foo.cs", "assets/foo.cs.meta", "assets/sub.meta", "assets/sub/bar.png", "assets/gone.cs"
            ),
        )
        plan = plan_uninstall(m, project)
        assert plan.files == [project / "Assets" / "Foo.cs", project / "Assets" / "Sub" / "Bar.png"]
        assert sorted(plan.directories) == [project / "Assets", project / "Assets" / "Sub"]

    def test_canonical_list_used_when_nothing_recorded(self, project):
        (project / "Assets" / "Foo.cs").write_text("x")
        m = BundleManifest(title="t", canonical_files=["assets/foo.cs", "assets/foo.cs.meta"])
        assert plan_uninstall(m, project).files == [project / "Assets" / "Foo.cs"]


class TestPrunableDirectories:
    def test_empty_directory_pruned(self, tmp_path):
        d = tmp_path / "a"
        d.mkdir()
        (d / "x.meta").write_text("m")
        (d / ".DS_Store").write_bytes(b"x")
        assert select_prunable_directories([d]) == [d]

    def test_unrelated_file_keeps_directory(self, tmp_path):
        d = tmp_path / "a"
        d.mkdir()
        (d / "notes.txt").write_text("mine")
        assert select_prunable_directories([d]) == []

    def test_nested_directories_deepest_first(self, tmp_path):
        a = tmp_path / "a"
        b = a / "b"
        b.mkdir(parents=True)
        (a / "b.meta").write_text("m")
        assert select_prunable_directories([a, b]) == [b, a]

    def test_unselected_subdirectory_keeps_parent(self, tmp_path):
        a = tmp_path / "a"
        (a / "b").mkdir(parents=True)
        (a / "b" / "keep.txt").write_text("x")
        (a / "c").mkdir()
        assert select_prunable_directories([a, a / "c"]) == [a / "c"]

    def test_missing_directory_skipped(self, tmp_path):
        assert select_prunable_directories([tmp_path / "gone"]) == []


class TestUninstaller:
    def test_round_trip_removes_bundle(self, config, project, installed):
        manifest = installed.find("Demo Kit")
        result = Uninstaller(project, vcs=NullVcs(), manifests=installed).run(manifest)

        assert not (project / "Assets" / "Foo.cs").exists()
        assert not (project / "Assets" / "Foo.cs.meta").exists()
        assert not (project / "Assets" / "Sub").exists()
        assert not (project / "Assets" / "Sub.meta").exists()
        assert (project / "Assets" / "Existing.txt").exists()
        assert result.deleted_directories == [project / "Assets" / "Sub"]
        assert installed.find("Demo Kit") is None

    def test_directory_with_user_file_survives(self, config, project, installed):
        (project / "Assets" / "Sub" / "Mine.txt").write_text("user content")
        Uninstaller(project, vcs=NullVcs(), manifests=installed).run(installed.find("Demo Kit"))

        assert not (project / "Assets" / "Sub" / "Bar.png").exists()
        assert (project / "Assets" / "Sub" / "Mine.txt").exists()
        assert (project / "Assets" / "Sub.meta").exists()

    def test_deletes_through_vcs(self, config, project, installed, fake_vcs):
        vcs = fake_vcs(statuses={"Assets/Sub.meta": VcsStatus("Assets/Sub.meta", tracked=True)}, root=project)
        Uninstaller(project, vcs=vcs, manifests=installed).run(installed.find("Demo Kit"))

        deleted = vcs.paths_for("delete")
        assert "Assets/Foo.cs" in deleted
        assert "Assets/Foo.cs.meta" in deleted
        assert "Assets/Sub/Bar.png" in deleted
        assert "Assets/Sub.meta" in deleted
        assert "PackageManifests/Demo Kit.manifest" in deleted
        assert not (project / "Assets" / "Sub").exists()
        assert installed.find("Demo Kit") is None

    def test_renamed_manifest_file_is_removed(self, config, project, installed, fake_vcs):
        original = installed.path_for("Demo Kit")
        renamed = original.with_name("legacy.manifest")
        original.rename(renamed)

        vcs = fake_vcs(root=project)
        Uninstaller(project, vcs=vcs, manifests=installed).run(installed.load(renamed), manifest_path=renamed)

        assert not renamed.exists()
        assert "PackageManifests/legacy.manifest" in vcs.paths_for("delete")
        assert installed.list() == []
