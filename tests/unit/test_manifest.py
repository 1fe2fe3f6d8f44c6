"""Unit tests for bundle manifests: titles, candidates and merging."""

import json

import pytest

from bundlekeeper.errors import TitleNotFound
from bundlekeeper.lib.snapshot import FileStateEntry
from bundlekeeper.manifest import BundleManifest, build_manifest, extract_title, merge_installed


class TestExtractTitle:
    def test_json(self):
        assert extract_title(json.dumps({"version": "1", "title": "Demo Kit"})) == "Demo Kit"

    def test_key_case_insensitive(self):
        assert extract_title('{"Title": "Upper"}') == "Upper"

    def test_regex_fallback_for_broken_json(self):
        assert extract_title('{"title" : "Broken Kit", "id": ') == "Broken Kit"

    def test_missing(self):
        with pytest.raises(TitleNotFound):
            extract_title('{"name": "no title"}', container="kit")


class TestBuildManifest:
    def test_from_container(self, make_container):
        p = make_container("kit.unitypackage", {"Assets/Foo.cs": b"x", "Assets/Dir": None}, title="Demo Kit")
        m = build_manifest(p)
        assert m.title == "Demo Kit"
        assert "Demo Kit" in m.raw_metadata
        assert m.canonical_files == ["assets/dir.meta", "assets/foo.cs", "assets/foo.cs.meta"]
        assert m.installed_files == []

    def test_title_from_file_name_without_extra_field(self, make_container):
        p = make_container("MyKit.unitypackage", {"Assets/Foo.cs": b"x"}, extra=False)
        assert build_manifest(p).title == "MyKit"

    def test_title_from_file_name_without_metadata_subfield(self, make_container):
        p = make_container("Other.unitypackage", {"Assets/Foo.cs": b"x"})
        m = build_manifest(p)
        assert m.title == "Other"
        assert m.raw_metadata == ""

    def test_metadata_without_title(self, make_container):
        p = make_container("kit.unitypackage", {"Assets/Foo.cs": b"x"}, metadata='{"id": 7}')
        with pytest.raises(TitleNotFound):
            build_manifest(p)


class TestManifestModel:
    def test_canonical_files_sorted_unique(self):
        m = BundleManifest(title="t", canonical_files=["b", "a", "b"])
        assert m.canonical_files == ["a", "b"]

    def test_dict_round_trip(self):
        m = BundleManifest(
            title="t",
            raw_metadata="{}",
            canonical_files=["assets/a"],
            installed_files=[FileStateEntry("assets/a", "ff", 1, 2)],
        )
        assert BundleManifest.from_dict(m.to_dict()) == m

    def test_title_required(self):
        with pytest.raises(ValueError):
            BundleManifest.from_dict({"canonical_files": []})

    def test_tracked_paths_prefers_install_record(self):
        m = BundleManifest(title="t", canonical_files=["assets/a", "assets/b"])
        assert m.tracked_paths() == ["assets/a", "assets/b"]
        m.installed_files = [FileStateEntry("assets/a", None, 1, 1)]
        assert m.tracked_paths() == ["assets/a"]


class TestMergeInstalled:
    def test_union_new_first(self):
        old = [FileStateEntry("assets/a", None, 1, 1)]
        new = [FileStateEntry("assets/b", None, 2, 2), FileStateEntry("assets/a", None, 1, 1)]
        assert merge_installed(new, old) == new

    def test_idempotent(self):
        entries = [FileStateEntry("assets/a", None, 1, 1), FileStateEntry("assets/b", None, 1, 1)]
        once = merge_installed(entries, entries)
        assert once == entries
        assert merge_installed(once, entries) == once

    def test_changed_file_kept_twice(self):
        before = FileStateEntry("assets/a", None, 1, 1)
        after = FileStateEntry("assets/a", None, 9, 1)
        assert merge_installed([after], [before]) == [after, before]
