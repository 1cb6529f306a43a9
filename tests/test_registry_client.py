from __future__ import annotations

import base64

import httpx
import pytest

from pod_info import registry_client
from pod_info.models import License
from pod_info.registry_client import (
    RegistryAuth,
    RegistryMetadataSource,
    RegistrySettings,
    fetch_spec_from_registries,
    parse_podspec,
    pick_latest_version,
)

PODSPEC = {
    "name": "Alamofire",
    "version": "5.6.0",
    "homepage": "https://github.com/Alamofire/Alamofire",
    "summary": "Elegant HTTP Networking in Swift",
    "license": "MIT",
    "swift_versions": ["5.1", "5.5"],
}


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_build_headers_accept_and_auth_variants() -> None:
    """
    认证 header 构造应支持无认证/bearer/basic 三种情况，并始终带 Accept。
    """
    assert registry_client._build_headers(None) == {"Accept": "application/json"}

    bearer = registry_client._build_headers(RegistryAuth(bearer_token="t"))
    assert bearer["Authorization"] == "Bearer t"

    basic = registry_client._build_headers(RegistryAuth(basic_username="u", basic_password="p"))
    token = base64.b64encode(b"u:p").decode("ascii")
    assert basic["Authorization"] == f"Basic {token}"


def test_pick_latest_version_filters_prereleases_and_invalid() -> None:
    """
    默认跳过预发布与无法解析的版本；仅有预发布时返回最大的预发布版本。
    """
    data = {"versions": [{"name": "5.4.3"}, {"name": "5.6.0"}, {"name": "6.0.0-beta.1"}, {"name": "bad!!"}]}
    assert pick_latest_version(data, include_prereleases=False) == "5.6.0"
    assert pick_latest_version(data, include_prereleases=True) == "6.0.0-beta.1"
    assert pick_latest_version({"versions": [{"name": "1.0.0-rc.1"}]}, include_prereleases=False) == "1.0.0-rc.1"
    assert pick_latest_version({}, include_prereleases=False) is None


def test_parse_podspec_normalizes_license_and_swift_versions() -> None:
    """
    license 可为字符串或字典；swift_versions 可为字符串或列表。
    """
    spec = parse_podspec(PODSPEC, fallback_name="x")
    assert spec.license == License(type="MIT")
    assert spec.swift_versions == ("5.1", "5.5")

    spec = parse_podspec(
        {"version": "1.0", "license": {"type": "Apache 2.0", "file": "LICENSE"}, "swift_versions": "5.0"},
        fallback_name="Fallback",
    )
    assert spec.name == "Fallback"
    assert spec.license.type == "Apache 2.0"
    assert spec.swift_versions == ("5.0",)
    assert spec.homepage == ""


def test_fetch_spec_queries_versions_then_spec() -> None:
    """
    先查询版本列表，再按最新版本获取 podspec；子 spec 名称按根名称查询。
    """
    seen: list[str] = []

    def handler(req: httpx.Request) -> httpx.Response:
        seen.append(req.url.path)
        if req.url.path == "/api/v1/pods/Alamofire":
            return httpx.Response(200, json={"versions": [{"name": "5.4.3"}, {"name": "5.6.0"}]})
        if req.url.path == "/api/v1/pods/Alamofire/specs/5.6.0":
            return httpx.Response(200, json=PODSPEC)
        return httpx.Response(404)

    settings = RegistrySettings(registry_url="https://trunk.test/api/v1/")
    with _client(handler) as client:
        result = fetch_spec_from_registries("Alamofire/Core", settings=settings, client=client)

    assert seen == ["/api/v1/pods/Alamofire", "/api/v1/pods/Alamofire/specs/5.6.0"]
    assert result.spec is not None
    assert result.spec.version == "5.6.0"
    assert result.registry_url == "https://trunk.test/api/v1/"
    assert result.not_found is False


def test_fetch_spec_falls_back_to_extra_registry_on_404() -> None:
    """
    主注册表 404 时继续查询额外注册表。
    """

    def handler(req: httpx.Request) -> httpx.Response:
        if req.url.host == "primary.test":
            return httpx.Response(404)
        if req.url.path.endswith("/specs/1.0.0"):
            return httpx.Response(200, json={"name": "Private", "version": "1.0.0"})
        return httpx.Response(200, json={"versions": [{"name": "1.0.0"}]})

    settings = RegistrySettings(registry_url="https://primary.test", extra_registry_urls=("https://private.test",))
    with _client(handler) as client:
        result = fetch_spec_from_registries("Private", settings=settings, client=client)
    assert result.spec is not None
    assert result.registry_url == "https://private.test"


def test_fetch_spec_not_found_vs_error() -> None:
    """
    全部 404 视为未找到；HTTP 错误保留错误信息，均不抛异常。
    """
    settings = RegistrySettings(registry_url="https://r.test")
    with _client(lambda _req: httpx.Response(404)) as client:
        missing = fetch_spec_from_registries("Nope", settings=settings, client=client)
    assert missing.spec is None
    assert missing.not_found is True
    assert missing.error is None

    with _client(lambda _req: httpx.Response(500)) as client:
        failed = fetch_spec_from_registries("Nope", settings=settings, client=client)
    assert failed.spec is None
    assert failed.not_found is False
    assert failed.error == "http 500"


def test_fetch_spec_network_error_and_invalid_json() -> None:
    """
    网络错误与非法 JSON 都转换为错误结果。
    """
    settings = RegistrySettings(registry_url="https://r.test")

    def timeout(req: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timeout", request=req)

    with _client(timeout) as client:
        result = fetch_spec_from_registries("A", settings=settings, client=client)
    assert result.spec is None
    assert result.error == "timeout"

    bad = lambda _req: httpx.Response(200, text="not json", headers={"Content-Type": "application/json"})  # noqa: E731
    with _client(bad) as client:
        result = fetch_spec_from_registries("A", settings=settings, client=client)
    assert result.spec is None
    assert result.error is not None
    assert result.error.startswith("invalid json:")


def test_registry_metadata_source_closes_client() -> None:
    """
    RegistryMetadataSource 作为上下文管理器使用时关闭 client。
    """
    client = _client(lambda _req: httpx.Response(404))
    with RegistryMetadataSource(RegistrySettings(registry_url="https://r.test"), client=client) as source:
        assert source.lookup("A").not_found is True
    assert client.is_closed


@pytest.mark.parametrize("timeout_s", [1.5, 10.0])
def test_create_client_uses_settings(timeout_s: float) -> None:
    """
    create_client 应携带认证 header 与超时设置。
    """
    client = registry_client.create_client(
        RegistrySettings(timeout_s=timeout_s, auth=RegistryAuth(bearer_token="tok"))
    )
    try:
        assert client.headers["Authorization"] == "Bearer tok"
        assert client.timeout.read == timeout_s
    finally:
        client.close()


def test_fetch_spec_protocol_error_moves_to_next_registry() -> None:
    """
    主注册表出现协议错误时不抛异常，继续查询额外注册表。
    """

    def handler(req: httpx.Request) -> httpx.Response:
        if req.url.host == "primary.test":
            raise httpx.RemoteProtocolError("server disconnected", request=req)
        if req.url.path.endswith("/specs/2.0.0"):
            return httpx.Response(200, json={"name": "A", "version": "2.0.0"})
        return httpx.Response(200, json={"versions": [{"name": "2.0.0"}]})

    settings = RegistrySettings(registry_url="https://primary.test", extra_registry_urls=("https://mirror.test",))
    with _client(handler) as client:
        result = fetch_spec_from_registries("A", settings=settings, client=client)
    assert result.spec is not None
    assert result.spec.version == "2.0.0"
    assert result.registry_url == "https://mirror.test"


def test_fetch_spec_invalid_registry_url_returns_error() -> None:
    """
    注册表 URL 协议不受支持时返回错误结果而不是抛出异常。
    """
    settings = RegistrySettings(registry_url="ftp://bad.test")
    with httpx.Client() as client:
        result = fetch_spec_from_registries("A", settings=settings, client=client)
    assert result.spec is None
    assert result.not_found is False
    assert result.error
