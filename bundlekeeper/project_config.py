from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .lib.snapshot import DEFAULT_IGNORE_PATTERNS, DEFAULT_INCLUDE_PATTERN

DEFAULT_CONFIG_NAME = "bundlekeeper.yaml"


@dataclass(frozen=True)
class ProjectConfig:
    root: Path
    raw: Dict[str, Any]

    def _resolve(self, value: str) -> Path:
        p = Path(value)
        return p if p.is_absolute() else self.root / p

    @property
    def manifest_dir(self) -> Path:
        return self._resolve(str(self.raw.get("manifest_dir") or "PackageManifests"))

    @property
    def manifest_format(self) -> str:
        fmt = str(self.raw.get("manifest_format") or "json").lower()
        if fmt not in {"json", "yaml", "yml"}:
            raise ValueError(f"manifest_format must be json or yaml, got {fmt}")
        return fmt

    @property
    def session_dir(self) -> Path:
        return self._resolve(str(self.raw.get("session_dir") or ".bundlekeeper"))

    @property
    def session_format(self) -> str:
        return str(self.raw.get("session_format") or "json").lower()

    @property
    def include_pattern(self) -> str:
        return str(self.raw.get("include_pattern") or DEFAULT_INCLUDE_PATTERN)

    @property
    def ignore_patterns(self) -> List[str]:
        pats = self.raw.get("ignore_patterns")
        if pats is None:
            return list(DEFAULT_IGNORE_PATTERNS)
        if not isinstance(pats, list):
            raise ValueError("ignore_patterns must be a list")
        return [str(p) for p in pats]

    @property
    def hash_files(self) -> bool:
        return bool(self.raw.get("hash_files", False))

    @property
    def vcs(self) -> str:
        return str(self.raw.get("vcs") or "none").lower()

    @property
    def extract_command(self) -> List[str]:
        cmd = ((self.raw.get("extractor") or {}).get("command")) or []
        if isinstance(cmd, str):
            return cmd.split()
        return [str(c) for c in cmd]

    @property
    def extract_wait(self) -> bool:
        return bool((self.raw.get("extractor") or {}).get("wait", True))

    @property
    def interactive(self) -> bool:
        return bool((self.raw.get("extractor") or {}).get("interactive", True))

    @property
    def log_path(self) -> Path:
        return self._resolve(str(self.raw.get("log_path") or ".bundlekeeper/bundlekeeper.log"))


def load_project_config(project_root: str | Path, path: Optional[str] = None) -> ProjectConfig:
    root = Path(project_root).resolve()
    p = Path(path) if path else root / DEFAULT_CONFIG_NAME

    if not p.exists():
        if path:
            raise FileNotFoundError(path)
        return ProjectConfig(root=root, raw={})

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("project config must be YAML")

    try:
        import yaml  # type: ignore
    except Exception as e:
        raise RuntimeError(f"PyYAML is required to read {p.name}") from e

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{p.name} must contain a mapping/object")

    return ProjectConfig(root=root, raw=raw)
