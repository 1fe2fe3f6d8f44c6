"""Unit tests for the step runner."""

import pytest

from bundlekeeper.context import InstallContext
from bundlekeeper.installer import build_steps
from bundlekeeper.lib.vcs import NullVcs
from bundlekeeper.manifest_store import ManifestStore
from bundlekeeper.pipeline import run_pipeline
from bundlekeeper.session import SessionStore


class Recorder:
    def __init__(self, step_id, log):
        self.step_id = step_id
        self.log = log

    def run(self, ctx):
        self.log.append(self.step_id)
        return ctx


@pytest.fixture
def ctx(config):
    return InstallContext(
        config=config,
        vcs=NullVcs(),
        extractor=None,
        manifests=ManifestStore(config.manifest_dir),
        sessions=SessionStore(config.session_dir),
    )


@pytest.fixture
def steps():
    log = []
    return [Recorder(s, log) for s in ("10_a", "20_b", "30_c")], log


class TestRunPipeline:
    def test_runs_all_in_order(self, ctx, steps):
        items, log = steps
        result = run_pipeline(ctx=ctx, steps=items)
        assert result.ran_steps == ["10_a", "20_b", "30_c"]
        assert log == ["10_a", "20_b", "30_c"]

    def test_start_at(self, ctx, steps):
        items, _ = steps
        assert run_pipeline(ctx=ctx, steps=items, start_at="20_b").ran_steps == ["20_b", "30_c"]

    def test_stop_after(self, ctx, steps):
        items, _ = steps
        assert run_pipeline(ctx=ctx, steps=items, stop_after="20_b").ran_steps == ["10_a", "20_b"]

    def test_window(self, ctx, steps):
        items, _ = steps
        assert run_pipeline(ctx=ctx, steps=items, start_at="20_b", stop_after="20_b").ran_steps == ["20_b"]

    def test_unknown_start(self, ctx, steps):
        items, _ = steps
        with pytest.raises(ValueError):
            run_pipeline(ctx=ctx, steps=items, start_at="99_nope")


class TestInstallSteps:
    def test_step_ids_ordered_and_unique(self):
        ids = [s.step_id for s in build_steps()]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)
