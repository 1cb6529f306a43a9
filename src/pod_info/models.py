from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from pod_info.lockfile import Lockfile


@dataclass(frozen=True, slots=True)
class PlainName:
    """
    Podfile 中只带版本约束的 pod 声明。
    """

    name: str
    requirement: str = ""


@dataclass(frozen=True, slots=True)
class KeyedName:
    """
    Podfile 中带选项（:git、:path 等）的 pod 声明。
    """

    name: str
    requirement: str = ""
    options: dict[str, str] = field(default_factory=dict)


ManifestEntry = Union[PlainName, KeyedName]


@dataclass(frozen=True, slots=True)
class DependencyReference:
    """
    一条待查询的依赖：名称、版本约束与锁定版本（未锁定时为空字符串）。
    """

    name: str
    requirement: str = ""
    locked_version: str = ""


@dataclass(frozen=True, slots=True)
class License:
    """
    podspec 中的许可证信息。
    """

    type: str = ""
    text: str | None = None


@dataclass(frozen=True, slots=True)
class PodMetadata:
    """
    注册表返回的 pod 元数据（最新版本的 podspec）。
    """

    name: str
    version: str
    homepage: str
    summary: str
    license: License
    swift_versions: tuple[Any, ...] = ()
    swift_version: str = ""


@dataclass(frozen=True, slots=True)
class ReportRecord:
    """
    依赖与注册表元数据合并后的一条报告记录。
    """

    name: str
    latest_version: str
    homepage: str
    summary: str
    license: License
    swift_versions: tuple[str, ...]
    swift_version: str
    requirement: str
    locked_version: str
    up_to_date: bool


@dataclass(frozen=True, slots=True)
class ReportGroup:
    """
    按来源注册表分组后的报告记录。
    """

    key: str
    records: list[ReportRecord]


class OutputFormat(str, Enum):
    """
    报告输出格式。
    """

    TEXT = "text"
    MARKDOWN = "md"
    CSV = "csv"


@dataclass(frozen=True, slots=True)
class ReportContext:
    """
    一次报告运行的上下文（替代全局配置对象）。
    """

    project_dir: Path
    manifest_path: Path | None = None
    verbose: bool = False
    show_all: bool = False
    lockfile: Lockfile | None = None
