from __future__ import annotations

import re
from pathlib import Path

from pod_info.models import KeyedName, ManifestEntry, PlainName

_POD_RE = re.compile(r"""^\s*pod\s*\(?\s*(?P<q>['"])(?P<name>[^'"]+)(?P=q)(?P<rest>.*)$""")
_OPTION_RE = re.compile(
    r"""(?::(?P<sym>\w+)\s*=>|(?P<key>\w+):)\s*(?P<value>'[^']*'|"[^"]*"|\[[^\]]*\]|:?\w+)"""
)
_QUOTED_RE = re.compile(r"'([^']*)'|\"([^\"]*)\"")


def _strip_comment(line: str) -> str:
    """
    去掉行尾的 Ruby 注释（忽略引号内的 #）。
    """
    quote: str | None = None
    for i, ch in enumerate(line):
        if quote:
            if ch == quote:
                quote = None
        elif ch in {"'", '"'}:
            quote = ch
        elif ch == "#":
            return line[:i]
    return line


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def parse_pod_line(line: str) -> ManifestEntry | None:
    """
    解析单行 `pod '...'` 声明；非 pod 声明返回 None。
    """
    match = _POD_RE.match(_strip_comment(line))
    if match is None:
        return None

    name = match.group("name").strip()
    rest = match.group("rest").rstrip().rstrip(")")

    options: dict[str, str] = {}
    for opt in _OPTION_RE.finditer(rest):
        key = opt.group("sym") or opt.group("key")
        options[key] = _unquote(opt.group("value"))
    remaining = _OPTION_RE.sub("", rest)

    versions = [m.group(1) if m.group(1) is not None else m.group(2) for m in _QUOTED_RE.finditer(remaining)]
    requirement = ", ".join(v.strip() for v in versions if v.strip())

    if options:
        return KeyedName(name=name, requirement=requirement, options=options)
    return PlainName(name=name, requirement=requirement)


def parse_podfile(text: str) -> list[ManifestEntry]:
    """
    从 Podfile 文本中按出现顺序抽取所有 pod 声明。
    """
    entries: list[ManifestEntry] = []
    for line in text.splitlines():
        entry = parse_pod_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


def load_podfile(podfile_path: Path) -> list[ManifestEntry]:
    """
    读取 Podfile 并返回其中声明的依赖列表。
    """
    return parse_podfile(podfile_path.read_text(encoding="utf-8"))


def entry_name(entry: ManifestEntry) -> str:
    """
    返回声明的名称键（PlainName 与 KeyedName 均适用）。
    """
    return entry.name
