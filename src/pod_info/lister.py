from __future__ import annotations

import logging
from pathlib import Path

from pod_info.errors import ConfigError, LockLookupError
from pod_info.lockfile import Lockfile
from pod_info.models import DependencyReference, ManifestEntry, ReportContext
from pod_info.podfile import entry_name, load_podfile

logger = logging.getLogger(__name__)

DEFAULT_PODFILE = "Podfile"
DEFAULT_LOCKFILE = "Podfile.lock"


def find_lockfile(project_dir: Path) -> Lockfile | None:
    """
    在项目目录中查找并加载 Podfile.lock，不存在时返回 None。
    """
    path = project_dir / DEFAULT_LOCKFILE
    if not path.is_file():
        return None
    return Lockfile.from_file(path)


def references_from_manifest(entries: list[ManifestEntry]) -> list[DependencyReference]:
    """
    将 Podfile 声明统一为 DependencyReference（带选项的声明只保留名称键）。
    """
    return [DependencyReference(name=entry_name(e), requirement=e.requirement) for e in entries]


def references_from_lockfile(lockfile: Lockfile) -> list[DependencyReference]:
    """
    通过 Podfile.lock 反查每个依赖的锁定版本；单条反查失败时退回原条目。
    """
    pods: list[DependencyReference] = []
    for dep in lockfile.dependencies:
        try:
            pods.extend(lockfile.dependencies_to_lock_pod_named(dep.name))
        except LockLookupError:
            pods.append(dep)
    return pods


def _load_manifest(path: Path) -> list[DependencyReference]:
    try:
        entries = load_podfile(path)
    except OSError as exc:
        raise ConfigError(f"无法读取 Podfile {path}：{exc}") from exc
    return references_from_manifest(entries)


def list_dependencies(context: ReportContext) -> list[DependencyReference]:
    """
    按运行模式选择依赖来源并返回依赖列表。

    优先级：显式指定的 Podfile > 无 Podfile.lock 时的默认 Podfile > Podfile.lock。
    `show_all` 目前不影响结果。
    """
    if context.manifest_path is not None:
        pods = _load_manifest(context.manifest_path)
        if context.verbose:
            logger.info("Using Podfile %s", context.manifest_path)
    elif context.lockfile is None:
        podfile = context.project_dir / DEFAULT_PODFILE
        if not podfile.is_file():
            raise ConfigError(f"在 {context.project_dir} 中找不到 Podfile 或 Podfile.lock")
        pods = _load_manifest(podfile)
        if context.verbose:
            logger.info("Using Podfile %s", podfile)
    else:
        pods = references_from_lockfile(context.lockfile)
        if context.verbose:
            logger.info("Using lockfile")

    if context.verbose:
        logger.info("Using %s", [p.name for p in pods])
    return pods
