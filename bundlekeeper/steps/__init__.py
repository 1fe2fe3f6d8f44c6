from .step_10_build_candidate import BuildCandidateStep
from .step_20_check_overlaps import CheckOverlapsStep
from .step_30_prepare_vcs import PrepareVcsStep
from .step_40_persist_session import PersistSessionStep
from .step_50_trigger_extraction import TriggerExtractionStep
from .step_60_post_diff import PostDiffStep
from .step_70_merge import MergeStep
from .step_80_persist_manifest import PersistManifestStep

__all__ = [
    "BuildCandidateStep",
    "CheckOverlapsStep",
    "PrepareVcsStep",
    "PersistSessionStep",
    "TriggerExtractionStep",
    "PostDiffStep",
    "MergeStep",
    "PersistManifestStep",
]
