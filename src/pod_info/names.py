from __future__ import annotations


def root_name(name: str) -> str:
    """
    返回 pod 名称的根名称（去掉 subspec 部分，如 Firebase/Core -> Firebase）。
    """
    return name.strip().split("/", 1)[0]
