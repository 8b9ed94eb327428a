"""
krustkind 命令行工具

为已有的 kind 风格集群加入 krustlet（WebAssembly）节点：
- join: 下发 kubeconfig、启动 krustlet 服务并批准节点证书
- get nodes: 查看集群节点及角色
- get kubeconfig: 输出集群管理员 kubeconfig

使用示例：
    krustkind join --name kind
    krustkind join --mode bootstrap-token -vvv
    krustkind --config ./application.yaml get nodes --provider ssh
"""

from typing import Optional

import click
from rich.console import Console

from cli import __version__
from cli.get import cli as get_cli
from cli.join import join as join_cmd
from core.config import Application
from core.logger import get_logger, setup_cli_logging, verbosity_to_level

logger = get_logger(__name__)

# 日志与状态动画共用的控制台
console: Console = Console(stderr=True)


@click.group()
@click.version_option(__version__, prog_name="krustkind")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="configuration file (default: $KRUSTKIND_CONFIG or ~/.krustkind/config/application.yaml)",
)
@click.option(
    "-v", "--verbose",
    count=True,
    help="日志详细级别：-v/-vv/-vvv（-vvv 输出远程命令结果）",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: int) -> None:
    """
    krustkind 命令行工具

    将 krustlet 节点加入已有集群。
    """
    if config_path:
        Application.load(config_path)

    setup_cli_logging(
        level=verbosity_to_level(verbose),
        log_file=f"{Application.ROOT_DIR}/logs/cli.log",
        console_output=True,
        rich_console=console,
    )
    ctx.ensure_object(dict)
    ctx.obj["console"] = console
    ctx.obj["verbose"] = verbose


cli.add_command(join_cmd, "join")
cli.add_command(get_cli, "get")


if __name__ == "__main__":
    cli()
