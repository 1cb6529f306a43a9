from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from pod_info.errors import ConfigError, LockLookupError
from pod_info.models import DependencyReference
from pod_info.names import root_name

_ENTRY_RE = re.compile(r"^(?P<name>[^\s(]+)(?:\s+\((?P<detail>.*)\))?\s*$")


def _split_entry(raw: str) -> tuple[str, str]:
    """
    将 `Name (detail)` 形式的条目拆分为 (名称, 括号内内容)。
    """
    match = _ENTRY_RE.match(raw.strip())
    if match is None:
        return raw.strip(), ""
    return match.group("name"), (match.group("detail") or "").strip()


def _parse_pods(raw_pods: Any) -> dict[str, str]:
    """
    解析 PODS 段，返回 pod 名称 -> 锁定版本（忽略子依赖列表）。
    """
    versions: dict[str, str] = {}
    if not isinstance(raw_pods, list):
        return versions
    for item in raw_pods:
        if isinstance(item, dict):
            keys = list(item.keys())
            if not keys:
                continue
            item = keys[0]
        name, version = _split_entry(str(item))
        versions[name] = version
    return versions


def _parse_dependencies(raw_deps: Any) -> list[DependencyReference]:
    """
    解析 DEPENDENCIES 段（保持顺序）。外部来源（from `...`）不记录版本约束。
    """
    deps: list[DependencyReference] = []
    if not isinstance(raw_deps, list):
        return deps
    for item in raw_deps:
        name, detail = _split_entry(str(item))
        requirement = "" if detail.startswith("from ") else detail
        deps.append(DependencyReference(name=name, requirement=requirement))
    return deps


def _parse_spec_repos(raw_repos: Any) -> dict[str, frozenset[str]]:
    """
    解析 SPEC REPOS 段，返回 注册表 -> pod 名称集合（保持注册表顺序）。
    """
    repos: dict[str, frozenset[str]] = {}
    if not isinstance(raw_repos, dict):
        return repos
    for key, names in raw_repos.items():
        repos[str(key)] = frozenset(str(n) for n in (names or []))
    return repos


@dataclass(frozen=True, slots=True)
class Lockfile:
    """
    Podfile.lock 的只读视图。
    """

    dependencies: list[DependencyReference]
    pod_versions: dict[str, str]
    spec_repos: dict[str, frozenset[str]] = field(default_factory=dict)
    path: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, path: Path | None = None) -> Lockfile:
        """
        从已解析的 YAML 字典构建 Lockfile。
        """
        return cls(
            dependencies=_parse_dependencies(data.get("DEPENDENCIES")),
            pod_versions=_parse_pods(data.get("PODS")),
            spec_repos=_parse_spec_repos(data.get("SPEC REPOS")),
            path=path,
        )

    @classmethod
    def from_file(cls, path: Path) -> Lockfile:
        """
        读取并解析 Podfile.lock；文件损坏时抛出 ConfigError。
        """
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"无法读取 {path}：{exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{path} 不是有效的 Podfile.lock")
        return cls.from_dict(data, path=path)

    def version(self, name: str) -> str | None:
        """
        返回 pod 的锁定版本；精确名称不存在时按根名称匹配。
        """
        version = self.pod_versions.get(name)
        if version:
            return version
        for pod_name, pod_version in self.pod_versions.items():
            if root_name(pod_name) == name:
                return pod_version
        return None

    def dependencies_to_lock_pod_named(self, name: str) -> list[DependencyReference]:
        """
        返回根名称等于 name 的所有声明依赖，并附上锁定版本（PODS 中没有记录时为空字符串）。
        没有任何依赖匹配时抛出 LockLookupError。
        """
        deps = [d for d in self.dependencies if root_name(d.name) == name]
        if not deps:
            raise LockLookupError(f"Podfile.lock 中没有名为 {name!r} 的依赖")
        return [replace(d, locked_version=self.version(d.name) or "") for d in deps]
