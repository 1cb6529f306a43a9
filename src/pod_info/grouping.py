from __future__ import annotations

from collections.abc import Mapping, Set

from pod_info.models import ReportGroup, ReportRecord
from pod_info.names import root_name


def group_by_registry(records: list[ReportRecord], spec_repos: Mapping[str, Set[str]]) -> list[ReportGroup]:
    """
    按来源注册表分组，组内保持原有顺序；同一 pod 可出现在多个组中。
    """
    groups: list[ReportGroup] = []
    for key, names in spec_repos.items():
        members = [r for r in records if r.name in names or root_name(r.name) in names]
        groups.append(ReportGroup(key=key, records=members))
    return groups
