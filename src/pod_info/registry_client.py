from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from packaging.version import InvalidVersion, Version

from pod_info.models import License, PodMetadata
from pod_info.names import root_name

DEFAULT_REGISTRY_URL = "https://trunk.cocoapods.org/api/v1"


@dataclass(frozen=True, slots=True)
class RegistryAuth:
    """
    私有注册表认证配置。
    """

    bearer_token: str | None = None
    basic_username: str | None = None
    basic_password: str | None = None


@dataclass(frozen=True, slots=True)
class RegistrySettings:
    """
    spec 注册表查询配置。
    """

    registry_url: str = DEFAULT_REGISTRY_URL
    extra_registry_urls: tuple[str, ...] = ()
    timeout_s: float = 10.0
    include_prereleases: bool = False
    auth: RegistryAuth | None = None


@dataclass(frozen=True, slots=True)
class SpecLookupResult:
    """
    单个 pod 的查询结果（podspec 元数据或错误信息）。
    """

    name: str
    registry_url: str | None
    spec: PodMetadata | None
    not_found: bool
    error: str | None


class MetadataSource(Protocol):
    """
    按名称查询 pod 元数据的能力。
    """

    def lookup(self, name: str) -> SpecLookupResult: ...


def _build_headers(auth: RegistryAuth | None) -> dict[str, str]:
    """
    基于认证配置构造 HTTP Header。
    """
    headers: dict[str, str] = {"Accept": "application/json"}
    if not auth:
        return headers

    if auth.bearer_token:
        headers["Authorization"] = f"Bearer {auth.bearer_token}"
        return headers

    if auth.basic_username is not None and auth.basic_password is not None:
        token = f"{auth.basic_username}:{auth.basic_password}".encode("utf-8")
        headers["Authorization"] = f"Basic {base64.b64encode(token).decode('ascii')}"
        return headers

    return headers


def _candidate_versions(data: dict[str, Any]) -> list[tuple[Version, str]]:
    """
    从注册表 pod 响应中提取所有可解析的版本（保留原始字符串）。
    """
    candidates: list[tuple[Version, str]] = []
    versions = data.get("versions")
    if not isinstance(versions, list):
        return candidates
    for item in versions:
        raw = item.get("name") if isinstance(item, dict) else item
        if raw is None:
            continue
        try:
            candidates.append((Version(str(raw)), str(raw)))
        except InvalidVersion:
            continue
    return candidates


def pick_latest_version(data: dict[str, Any], *, include_prereleases: bool) -> str | None:
    """
    从注册表响应中选择“最新稳定版本”（默认过滤 pre-release）。
    """
    candidates = _candidate_versions(data)
    if not candidates:
        return None

    if include_prereleases:
        return max(candidates)[1]

    stable = [c for c in candidates if not c[0].is_prerelease and not c[0].is_devrelease]
    return max(stable)[1] if stable else max(candidates)[1]


def _parse_license(raw: Any) -> License:
    if isinstance(raw, dict):
        text = raw.get("text")
        return License(type=str(raw.get("type") or ""), text=str(text) if text is not None else None)
    if raw:
        return License(type=str(raw))
    return License()


def _parse_swift_versions(raw: Any) -> tuple[Any, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        return tuple(raw)
    return (raw,)


def parse_podspec(data: dict[str, Any], *, fallback_name: str) -> PodMetadata:
    """
    将 podspec JSON 转换为 PodMetadata。license 可为字符串或字典，swift_versions 可为字符串或列表。
    """
    return PodMetadata(
        name=str(data.get("name") or fallback_name),
        version=str(data.get("version") or ""),
        homepage=str(data.get("homepage") or ""),
        summary=str(data.get("summary") or ""),
        license=_parse_license(data.get("license")),
        swift_versions=_parse_swift_versions(data.get("swift_versions")),
        swift_version=str(data.get("swift_version") or ""),
    )


def _request_json(client: httpx.Client, url: str) -> tuple[dict[str, Any] | None, int | None, str | None]:
    """
    请求 JSON 并返回 (data, status_code, error)。只请求一次，不重试；传输层错误与非法 URL 均转为 error。
    """
    try:
        resp = client.get(url)
        if resp.status_code == 404:
            return None, 404, None
        if resp.status_code >= 400:
            return None, resp.status_code, f"http {resp.status_code}"
        data = resp.json()
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        return None, None, str(exc) or exc.__class__.__name__
    except ValueError as exc:
        return None, None, f"invalid json: {exc}"
    if not isinstance(data, dict):
        return None, resp.status_code, "invalid json: expected an object"
    return data, resp.status_code, None


def _pod_url(registry_url: str, name: str) -> str:
    return f"{registry_url.rstrip('/')}/pods/{name}"


def fetch_spec_from_registries(
    name: str,
    *,
    settings: RegistrySettings,
    client: httpx.Client,
) -> SpecLookupResult:
    """
    依次从 registry_url 与 extra_registry_urls 查询 pod 最新版本的 podspec。
    """
    pod = root_name(name)
    urls = (settings.registry_url, *settings.extra_registry_urls)
    last_error: str | None = None

    for base in urls:
        data, status, error = _request_json(client, _pod_url(base, pod))
        if status == 404:
            last_error = None
            continue
        if data is None:
            last_error = error or "request failed"
            continue

        latest = pick_latest_version(data, include_prereleases=settings.include_prereleases)
        if latest is None:
            return SpecLookupResult(name=pod, registry_url=base, spec=None, not_found=False, error="no version found")

        spec_data, status, error = _request_json(client, f"{_pod_url(base, pod)}/specs/{latest}")
        if spec_data is None:
            return SpecLookupResult(
                name=pod,
                registry_url=base,
                spec=None,
                not_found=False,
                error=error or f"http {status}",
            )
        return SpecLookupResult(
            name=pod,
            registry_url=base,
            spec=parse_podspec(spec_data, fallback_name=pod),
            not_found=False,
            error=None,
        )

    return SpecLookupResult(name=pod, registry_url=None, spec=None, not_found=last_error is None, error=last_error)


def create_client(settings: RegistrySettings) -> httpx.Client:
    """
    创建用于访问注册表的 httpx.Client。
    """
    headers = _build_headers(settings.auth)
    timeout = httpx.Timeout(settings.timeout_s)
    return httpx.Client(headers=headers, timeout=timeout, follow_redirects=True)


class RegistryMetadataSource:
    """
    基于 HTTP 注册表的 MetadataSource 实现（顺序、逐个查询）。
    """

    def __init__(self, settings: RegistrySettings, client: httpx.Client | None = None) -> None:
        self._settings = settings
        self._client = client or create_client(settings)

    def lookup(self, name: str) -> SpecLookupResult:
        return fetch_spec_from_registries(name, settings=self._settings, client=self._client)

    def close(self) -> None:
        """
        关闭底层 HTTP 连接。
        """
        self._client.close()

    def __enter__(self) -> RegistryMetadataSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
