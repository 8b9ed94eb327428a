"""Application configuration constants class.

This module defines the Application class which holds global configuration
constants injected from configuration files using the map_config_to_class decorator.
"""

from pathlib import Path
from typing import Any, ClassVar, Dict, List
from .config_dict import ConfigDict
from .inject import apply_config_mapping, config_class, map_config_to_class


@config_class(
    SERVICE="krustlet.service",
    MODE="krustlet.mode",
    CSR_POLL_RETRIES="krustlet.csr_poll.retries",
    CSR_POLL_BOOTSTRAP_RETRIES="krustlet.csr_poll.bootstrap_retries",
    CSR_POLL_INTERVAL="krustlet.csr_poll.interval",
    BOOTSTRAP_SCRIPT_URL="krustlet.bootstrap_script_url",
    KUBECONFIG_INTERNAL="krustlet.kubeconfig_internal",
)
class KrustletConfig:
    """Krustlet 节点加入配置类

    凭据获取方式、systemd 服务名以及 CSR 轮询参数。
    """
    SERVICE: ClassVar[str] = "krustlet"
    # kubeconfig | bootstrap-token
    MODE: ClassVar[str] = "kubeconfig"
    CSR_POLL_RETRIES: ClassVar[int] = 10
    CSR_POLL_BOOTSTRAP_RETRIES: ClassVar[int] = 30
    CSR_POLL_INTERVAL: ClassVar[float] = 1.0
    BOOTSTRAP_SCRIPT_URL: ClassVar[str] = (
        "https://raw.githubusercontent.com/krustlet/krustlet/main/"
        "scripts/bootstrap.sh"
    )
    KUBECONFIG_INTERNAL: ClassVar[bool] = False


@config_class(
    NAME="provider.name",
    NODES="provider.nodes",
    SSH_USERNAME="provider.ssh.username",
    SSH_PORT="provider.ssh.port",
    SSH_CLIENT_KEYS="provider.ssh.client_keys",
    SSH_CONNECT_TIMEOUT="provider.ssh.connect_timeout",
)
class ProviderConfig:
    """节点提供者配置类

    docker/podman 通过容器标签发现节点，ssh 使用下面的静态节点清单。
    """
    NAME: ClassVar[str] = "docker"
    NODES: ClassVar[List[Dict[str, Any]]] = []
    SSH_USERNAME: ClassVar[str] = "root"
    SSH_PORT: ClassVar[int] = 22
    SSH_CLIENT_KEYS: ClassVar[List[str]] = []
    SSH_CONNECT_TIMEOUT: ClassVar[int] = 10


@config_class(
    LEVEL="logger.level",
    FORMAT="logger.format",
    DATE_FORMAT="logger.date_format",
    ROTATE_ENABLE="logger.rotate.enable",
    ROTATE_WHEN="logger.rotate.when",
    ROTATE_BACKUP_COUNT="logger.rotate.backup_count",
)
class LoggerConfig:
    """日志配置数据类，默认值适配大多数场景"""
    LEVEL: ClassVar[str] = "INFO"
    FORMAT: ClassVar[str] = "%(asctime)s - %(name)s - %(levelname)s - %(process)d - %(filename)s:%(lineno)d - %(message)s"
    DATE_FORMAT: ClassVar[str] = "%Y-%m-%d %H:%M:%S"
    # 日志轮转配置
    ROTATE_ENABLE: ClassVar[bool] = True
    ROTATE_WHEN: ClassVar[str] = "D"
    ROTATE_BACKUP_COUNT: ClassVar[int] = 7
    # 第三方库日志级别管控（降噪）
    THIRD_PARTY_LOG_LEVELS: ClassVar[Dict[str, str]] = {
        "asyncssh": "WARNING",
        "asyncio": "WARNING",
    }


@map_config_to_class(
    ROOT_DIR="root_dir",
    KRUSTLET="krustlet",
    PROVIDER="provider",
    LOGGER_CONFIG="logger",
)
class Application:
    """Global constants class with configuration injection.

    This class holds application-wide configuration constants that are
    dynamically injected from configuration files at runtime.
    """

    ROOT_DIR: ClassVar[str] = str(Path.home() / ".krustkind")
    KRUSTLET: KrustletConfig
    PROVIDER: ProviderConfig
    LOGGER_CONFIG: LoggerConfig

    @classmethod
    def load(cls, file_path: str) -> None:
        """Load file_path as the global configuration and re-inject it."""
        apply_config_mapping(cls, ConfigDict.load_instance(file_path))
