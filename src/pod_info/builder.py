from __future__ import annotations

import logging
from typing import Any

from pod_info.models import DependencyReference, PodMetadata, ReportRecord
from pod_info.names import root_name
from pod_info.registry_client import MetadataSource, SpecLookupResult

logger = logging.getLogger(__name__)


def _stringify(values: tuple[Any, ...]) -> tuple[str, ...]:
    return tuple(str(v) for v in values)


def is_up_to_date(ref: DependencyReference, spec: PodMetadata) -> bool:
    """
    锁定版本与注册表最新版本（同名）完全一致时返回 True；未锁定时为 False。
    """
    if not ref.locked_version:
        return False
    return spec.name == root_name(ref.name) and ref.locked_version == spec.version


def _lookup(source: MetadataSource, name: str) -> SpecLookupResult | None:
    """
    查询单个 pod；查询过程中的异常视为未找到。
    """
    try:
        return source.lookup(name)
    except Exception as exc:
        logger.debug("lookup of %s failed: %s", name, exc)
        return None


def build_record(ref: DependencyReference, spec: PodMetadata) -> ReportRecord:
    """
    将依赖与注册表元数据合并为一条报告记录。
    """
    return ReportRecord(
        name=spec.name,
        latest_version=spec.version,
        homepage=spec.homepage,
        summary=spec.summary,
        license=spec.license,
        swift_versions=_stringify(spec.swift_versions),
        swift_version=str(spec.swift_version),
        requirement=str(ref.requirement),
        locked_version=str(ref.locked_version),
        up_to_date=is_up_to_date(ref, spec),
    )


def build_records(references: list[DependencyReference], source: MetadataSource) -> list[ReportRecord]:
    """
    逐个查询依赖的元数据并生成报告记录；未找到或查询失败的依赖被忽略，顺序与输入一致。
    """
    records: list[ReportRecord] = []
    for ref in references:
        result = _lookup(source, ref.name)
        if result is None or result.spec is None:
            if result is not None and result.error:
                logger.debug("no metadata for %s: %s", ref.name, result.error)
            continue
        records.append(build_record(ref, result.spec))
    return records
