from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.text import Text

from pod_info.models import OutputFormat, ReportGroup, ReportRecord

CSV_HEADER = "name,version,homepage,summary,license"

MD_HEADER = (
    "| # | Pod | Up to date | Installed ver. | Last ver. | swift_versions | swift_version | License | Releases | Summary |"
)
MD_SEPARATOR = (
    "| --- | --- | ---------- | -------------- | --------- | -------------- | ------------- | ------- | -------- | ------- |"
)

RELEASES_HOST = "github.com"


def _console(file: TextIO | None) -> Console:
    """
    创建不解析 markup/emoji、不自动折行的控制台。
    """
    return Console(file=file, markup=False, emoji=False, highlight=False, soft_wrap=True)


def md_release_url(url: str) -> str | None:
    """
    由 homepage 推导 GitHub Releases 链接；非 GitHub 主页返回 None。
    """
    if not url or RELEASES_HOST not in url:
        return None
    return f"[Releases]({url.rstrip('/')}/releases)"


def export_text(records: list[ReportRecord], *, file: TextIO | None = None) -> None:
    """
    以纯文本形式输出：每个 pod 一行标题、一行简介、一个空行。
    """
    console = _console(file)
    for record in records:
        console.print(Text(f"- {record.name} ({record.locked_version}) [{record.license.type}]", style="green"))
        console.print(f"  {record.summary}")
        console.print()


def render_csv(records: list[ReportRecord]) -> str:
    """
    渲染 CSV。仅对 summary 与 license 加引号，不做转义。
    """
    lines = [CSV_HEADER]
    for r in records:
        lines.append(f'{r.name},{r.locked_version},{r.homepage},"{r.summary}","{r.license.type}"')
    return "\n".join(lines) + "\n"


def export_csv(records: list[ReportRecord], *, file: TextIO | None = None) -> None:
    """
    以 CSV 形式输出到控制台。
    """
    _console(file).print(render_csv(records), end="")


def _md_row(index: int, r: ReportRecord) -> str:
    glyph = "✅" if r.up_to_date else "❌"
    releases = md_release_url(r.homepage) or ""
    swift_versions = ", ".join(r.swift_versions)
    return (
        f"| {index} | [{r.name}]({r.homepage}) | {glyph} | {r.locked_version} | {r.latest_version} "
        f"| {swift_versions} | {r.swift_version} | {r.license.type} | {releases} | {r.summary} |"
    )


def render_markdown(groups: list[ReportGroup]) -> str:
    """
    渲染 Markdown：每个注册表一个二级标题与一张表格（key 为空时不输出标题）。
    """
    lines: list[str] = []
    for group in groups:
        if group.key:
            lines.append(f"## {group.key}")
            lines.append("")
        lines.append(MD_HEADER)
        lines.append(MD_SEPARATOR)
        for i, record in enumerate(group.records, start=1):
            lines.append(_md_row(i, record))
        lines.append("")
    return "\n".join(lines) + ("\n" if lines else "")


def export_markdown(
    groups: list[ReportGroup],
    *,
    output: Path | None = None,
    file: TextIO | None = None,
) -> None:
    """
    输出 Markdown；指定 output 时先完整写入文件，再将同样的文本原样写到控制台。
    """
    text = render_markdown(groups)
    if output is not None:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
    (file or sys.stdout).write(text)


def export_report(
    records: list[ReportRecord],
    fmt: OutputFormat,
    *,
    groups: list[ReportGroup] | None = None,
    output: Path | None = None,
    file: TextIO | None = None,
) -> None:
    """
    按格式分派到具体的导出器。output 仅对 Markdown 生效。
    """
    if fmt == OutputFormat.MARKDOWN:
        if groups is None:
            groups = [ReportGroup(key="", records=records)]
        export_markdown(groups, output=output, file=file)
    elif fmt == OutputFormat.CSV:
        export_csv(records, file=file)
    else:
        export_text(records, file=file)
