from __future__ import annotations

from pathlib import Path
from typing import TextIO

from pod_info.builder import build_records
from pod_info.config import AppConfig
from pod_info.formatters import export_report
from pod_info.grouping import group_by_registry
from pod_info.lister import list_dependencies
from pod_info.models import OutputFormat, ReportContext, ReportGroup, ReportRecord
from pod_info.registry_client import MetadataSource, RegistryMetadataSource


def _groups_for(context: ReportContext, records: list[ReportRecord]) -> list[ReportGroup] | None:
    """
    Podfile.lock 提供 SPEC REPOS 时按注册表分组，否则返回 None（不分组）。
    """
    if context.lockfile is None or not context.lockfile.spec_repos:
        return None
    return group_by_registry(records, context.lockfile.spec_repos)


def run_report(
    context: ReportContext,
    *,
    config: AppConfig,
    fmt: OutputFormat = OutputFormat.TEXT,
    output: Path | None = None,
    source: MetadataSource | None = None,
    file: TextIO | None = None,
) -> list[ReportRecord]:
    """
    列出依赖 -> 查询元数据 -> （Markdown 时）分组 -> 导出报告，返回生成的记录。
    """
    pods = list_dependencies(context)

    if source is None:
        with RegistryMetadataSource(config.registry) as registry:
            records = build_records(pods, registry)
    else:
        records = build_records(pods, source)

    groups = _groups_for(context, records) if fmt == OutputFormat.MARKDOWN else None
    export_report(records, fmt, groups=groups, output=output, file=file)
    return records
