from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Tuple

from .errors import BundleKeeperError
from .installer import InstallStateMachine
from .lib.extractor import ExtractionOutcome
from .lib.vcs import make_vcs
from .logging_utils import configure_logging
from .manifest import BundleManifest
from .manifest_store import MANIFEST_SUFFIX, ManifestStore
from .project_config import ProjectConfig, load_project_config
from .session import SessionStore
from .uninstall import Uninstaller

logger = logging.getLogger(__name__)


def _manifest_store(cfg: ProjectConfig) -> ManifestStore:
    return ManifestStore(cfg.manifest_dir, fmt=cfg.manifest_format)


def _resolve_manifest(cfg: ProjectConfig, ref: str) -> Tuple[BundleManifest, Path]:
    """A title, or a path to a .manifest file; returns the manifest and where it lives."""

    store = _manifest_store(cfg)
    p = Path(ref)
    if p.suffix == MANIFEST_SUFFIX and p.exists():
        return store.load(p), p.resolve()
    found = store.find(ref)
    if found is None:
        raise BundleKeeperError(f"No installed bundle named {ref!r} in {cfg.manifest_dir}")
    return found, store.path_for(ref)


def cmd_install(cfg: ProjectConfig, args: argparse.Namespace) -> int:
    if args.no_wait:
        extractor_cfg = dict(cfg.raw.get("extractor") or {}, wait=False)
        cfg = ProjectConfig(root=cfg.root, raw=dict(cfg.raw, extractor=extractor_cfg))

    sm = InstallStateMachine.from_config(cfg)
    plan = sm.prepare(args.container)

    if plan.overlaps.reinstall:
        print(f"{plan.candidate.title} is already installed; its manifest will be updated")
    for title in plan.overlaps.conflicts:
        print(f"overlaps installed bundle: {title}")
    for path in plan.overlaps.loose_files:
        print(f"will replace untracked file: {path}")
    if not plan.overlaps.clean and not args.force:
        logger.error("Refusing to install %s over existing content (use --force)", plan.candidate.title)
        sm.abandon()
        return 2

    result = sm.start()
    if result.outcome is ExtractionOutcome.STARTED:
        print("Extraction started; run `bundlekeeper finish` once it has completed")
        return 0
    if result.outcome is ExtractionOutcome.COMPLETED:
        print(f"Installed {plan.candidate.title}")
        return 0
    print(f"Install {result.outcome.value}: {result.message}".rstrip(": "))
    return 1


def cmd_finish(cfg: ProjectConfig, args: argparse.Namespace) -> int:
    sm = InstallStateMachine.from_config(cfg)
    manifest = sm.resume()
    if manifest is None:
        print("No pending install")
        return 0
    print(f"Recorded {manifest.title}: {len(manifest.installed_files)} file(s) installed")
    return 0


def cmd_record(cfg: ProjectConfig, args: argparse.Namespace) -> int:
    sm = InstallStateMachine.from_config(cfg)
    manifest = sm.record(args.container)
    print(f"Recorded {manifest.title}: {len(manifest.canonical_files)} file(s) in bundle")
    return 0


def cmd_overlaps(cfg: ProjectConfig, args: argparse.Namespace) -> int:
    sm = InstallStateMachine.from_config(cfg)
    plan = sm.prepare(args.container)
    sm.abandon()
    for title in plan.overlaps.packages:
        kind = "reinstall" if title == plan.candidate.title else "package"
        print(f"{kind}\t{title}")
    for path in plan.overlaps.loose_files:
        print(f"file\t{path}")
    return 0 if plan.overlaps.clean else 3


def cmd_uninstall(cfg: ProjectConfig, args: argparse.Namespace) -> int:
    manifest, manifest_path = _resolve_manifest(cfg, args.bundle)
    uninstaller = Uninstaller(
        cfg.root,
        vcs=make_vcs(cfg.vcs, cfg.root),
        manifests=_manifest_store(cfg),
        ignore_patterns=cfg.ignore_patterns,
    )
    result = uninstaller.run(manifest, manifest_path=manifest_path)
    print(
        f"Uninstalled {result.title}: {len(result.deleted_files)} file(s), "
        f"{len(result.deleted_directories)} empty directories removed"
    )
    return 0


def cmd_list(cfg: ProjectConfig, args: argparse.Namespace) -> int:
    for m in _manifest_store(cfg).list():
        print(f"{m.title}\t{len(m.canonical_files)}\t{len(m.installed_files)}")
    return 0


def cmd_purge(cfg: ProjectConfig, args: argparse.Namespace) -> int:
    sm = InstallStateMachine.from_config(cfg)
    print("Purged pending install" if sm.purge() else "No pending install")
    return 0


def _warn_pending_session(cfg: ProjectConfig) -> None:
    sessions = SessionStore(cfg.session_dir, fmt=cfg.session_format)
    if not sessions.exists():
        return
    try:
        session = sessions.load()
    except (ValueError, KeyError, TypeError) as e:
        logger.warning("Unreadable install session at %s (%s); run `bundlekeeper purge`", str(sessions.path), e)
        return
    title = session.candidate.title if session is not None else "?"
    logger.warning(
        "Install of %r is still pending; run `bundlekeeper finish` to record it or `bundlekeeper purge` to drop it",
        title,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="bundlekeeper")
    p.add_argument("--project", default=".", help="Project root")
    p.add_argument("--config", default=None, help="Project config (yaml); default <project>/bundlekeeper.yaml")
    p.add_argument("--log", default=None, help="Log file path")
    p.add_argument("-v", "--verbose", action="store_true")

    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("install", help="Install a bundle and record what it wrote")
    s.add_argument("container")
    s.add_argument("--force", action="store_true", help="Install even if it overlaps existing content")
    s.add_argument("--no-wait", action="store_true", help="Do not wait for the extractor to finish")
    s.set_defaults(func=cmd_install)

    s = sub.add_parser("finish", help="Record a pending install (after a restart)")
    s.set_defaults(func=cmd_finish)

    s = sub.add_parser("record", help="Store a manifest for an already installed bundle")
    s.add_argument("container")
    s.set_defaults(func=cmd_record)

    s = sub.add_parser("overlaps", help="Report what a bundle would collide with")
    s.add_argument("container")
    s.set_defaults(func=cmd_overlaps)

    s = sub.add_parser("uninstall", help="Remove an installed bundle")
    s.add_argument("bundle", help="Bundle title or path to its .manifest file")
    s.set_defaults(func=cmd_uninstall)

    s = sub.add_parser("list", help="List installed bundles")
    s.set_defaults(func=cmd_list)

    s = sub.add_parser("purge", help="Discard a pending install session")
    s.set_defaults(func=cmd_purge)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    cfg = load_project_config(args.project, args.config)
    configure_logging(
        log_path=args.log or str(cfg.log_path),
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    if args.command not in ("finish", "purge"):
        _warn_pending_session(cfg)

    try:
        return int(args.func(cfg, args))
    except BundleKeeperError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
