from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from pod_info.config import AppConfig, load_config
from pod_info.errors import ConfigError
from pod_info.models import OutputFormat
from pod_info.registry_client import RegistryAuth, RegistrySettings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """
    构建 pod-info 的命令行参数解析器。
    """
    parser = argparse.ArgumentParser(
        prog="pod-info",
        description="显示当前项目中已安装 pod 的信息；指定 PODFILE_PATH 时显示该 Podfile 的信息。",
    )
    parser.add_argument("podfile_path", nargs="?", metavar="PODFILE_PATH", help="Podfile 路径（可选）")
    parser.add_argument("--version", action="store_true", help="输出版本号并退出")
    parser.add_argument(
        "--all",
        dest="show_all",
        action="store_true",
        help="显示项目中使用的所有 pod 及其依赖的信息",
    )
    parser.add_argument("--md", action="store_true", help="以 Markdown 格式输出")
    parser.add_argument("--csv", action="store_true", help="以 CSV 格式输出")
    parser.add_argument("--output", metavar="FILENAME", help="输出文件名（仅 Markdown 格式生效）")
    parser.add_argument("--verbose", action="store_true", help="输出诊断信息")
    parser.add_argument("--project-directory", default=".", help="项目目录（默认：当前目录）")
    parser.add_argument("--config", help="配置文件路径（.toml 或 .yaml）")
    parser.add_argument("--registry-url", help="主注册表 URL（Trunk API 基址）")
    parser.add_argument(
        "--extra-registry-url",
        action="append",
        default=[],
        help="额外注册表 URL（可重复）",
    )
    parser.add_argument("--bearer-token", help="私有注册表 Bearer Token（谨慎使用）")
    parser.add_argument("--basic-username", help="私有注册表 Basic 用户名（谨慎使用）")
    parser.add_argument("--basic-password", help="私有注册表 Basic 密码（谨慎使用）")
    return parser


def _merge_cli_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    """
    将 CLI 参数覆盖合并到 AppConfig。
    """
    registry = cfg.registry
    registry_url = args.registry_url or registry.registry_url
    extra_registry_urls = tuple(args.extra_registry_url or registry.extra_registry_urls)

    auth: RegistryAuth | None = registry.auth
    if args.bearer_token or args.basic_username or args.basic_password:
        auth = RegistryAuth(
            bearer_token=args.bearer_token,
            basic_username=args.basic_username,
            basic_password=args.basic_password,
        )

    return AppConfig(
        registry=RegistrySettings(
            registry_url=registry_url,
            extra_registry_urls=extra_registry_urls,
            timeout_s=registry.timeout_s,
            include_prereleases=registry.include_prereleases,
            auth=auth,
        )
    )


def _output_format(args: argparse.Namespace) -> OutputFormat:
    """
    根据 --md/--csv 选择输出格式（同时指定时 CSV 优先）。
    """
    fmt = OutputFormat.TEXT
    if args.md:
        fmt = OutputFormat.MARKDOWN
    if args.csv:
        fmt = OutputFormat.CSV
    return fmt


def _configure_logging(verbose: bool) -> None:
    """
    为 pod_info 日志挂载输出到 stderr 的 RichHandler。
    """
    pkg_logger = logging.getLogger("pod_info")
    pkg_logger.setLevel(logging.INFO if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in pkg_logger.handlers):
        pkg_logger.addHandler(RichHandler(console=Console(stderr=True), show_time=False, show_path=False))


def main(argv: list[str] | None = None) -> int:
    """
    pod-info 命令行入口。
    """
    args = build_parser().parse_args(argv)

    if args.version:
        from pod_info import __version__

        print(__version__)
        return 0

    _configure_logging(bool(args.verbose))

    from pod_info.app import run_report
    from pod_info.lister import find_lockfile
    from pod_info.models import ReportContext

    fmt = _output_format(args)
    output = Path(args.output) if args.output else None
    if output is not None and fmt != OutputFormat.MARKDOWN:
        logger.warning("--output 仅对 --md 生效，已忽略")

    project_dir = Path(args.project_directory)
    manifest_path = Path(args.podfile_path) if args.podfile_path else None

    try:
        cfg = _merge_cli_overrides(load_config(args.config), args)
        lockfile = find_lockfile(project_dir) if manifest_path is None else None
        context = ReportContext(
            project_dir=project_dir,
            manifest_path=manifest_path,
            verbose=bool(args.verbose),
            show_all=bool(args.show_all),
            lockfile=lockfile,
        )
        run_report(context, config=cfg, fmt=fmt, output=output)
    except ConfigError as exc:
        print(f"pod-info: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        print(f"pod-info: 生成报告失败：{exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
