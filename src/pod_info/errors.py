from __future__ import annotations


class ConfigError(Exception):
    """
    找不到可用的依赖来源（Podfile 与 Podfile.lock 均不存在或无法读取）。
    """


class LockLookupError(LookupError):
    """
    无法在 Podfile.lock 中按名称反查到锁定的依赖。
    """
