import json
import os
import threading
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, Union, cast
import yaml

# 泛型类型（用于类型提示）
T = TypeVar("T", bound="ConfigDict")

CONFIG_ENV_VAR = "KRUSTKIND_CONFIG"

# 单例锁（线程安全）
_SINGLETON_LOCK: threading.Lock = threading.Lock()
_global_config: Optional["ConfigDict"] = None


class ConfigDict(dict[str, Any], MutableMapping[str, Any]):
    """Attribute-access configuration dictionary.

    Nested dictionaries (also inside lists) are converted to ConfigDict on
    assignment, so ``config.krustlet.csr_poll.retries`` works on a tree loaded
    from YAML. Missing attributes read as ``None``.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__()
        init_dict: Dict[str, Any] = dict(*args, **kwargs)
        for key, value in init_dict.items():
            self.__setitem__(key, value)

    def __getattr__(self, key: str) -> Any:
        """属性式读取（config.key → config['key']），不存在时返回None"""
        try:
            return self[key]
        except KeyError:
            return None

    def __setattr__(self, key: str, value: Any) -> None:
        if key.startswith("_"):
            super().__setattr__(key, value)
        else:
            self[key] = value

    def __setitem__(self, key: str, value: Any) -> None:
        # 嵌套转换：子字典→ConfigDict，子列表→元素递归转换
        if isinstance(value, dict) and not isinstance(value, ConfigDict):
            value = ConfigDict(cast(Dict[str, Any], value))
        elif isinstance(value, list):
            processed_list: List[Any] = []
            for item in cast(List[Any], value):
                if isinstance(item, dict) and not isinstance(item, ConfigDict):
                    processed_list.append(ConfigDict(cast(Dict[str, Any], item)))
                else:
                    processed_list.append(item)
            value = processed_list

        super().__setitem__(key, value)

    def get_path(self, path: str, default: Any = None) -> Any:
        """Resolve a dotted path such as ``krustlet.csr_poll.retries``.

        Args:
            path: Dotted configuration path
            default: Value returned when any segment is missing

        Returns:
            Configuration value or default
        """
        value: Any = self
        for part in path.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    @classmethod
    def _find_config_file(cls) -> Optional[str]:
        """查找配置文件路径

        查找顺序（优先级从高到低）：
        1. 环境变量 KRUSTKIND_CONFIG 指定的路径
        2. ~/.krustkind/config/application.yaml
        3. ./config/application.yaml（开发调试）

        Returns:
            找到的配置文件路径，都不存在时返回 None
        """
        env_config = os.getenv(CONFIG_ENV_VAR)
        if env_config and Path(env_config).exists():
            return env_config

        home_config = Path.home() / ".krustkind" / "config" / "application.yaml"
        if home_config.exists():
            return str(home_config)

        relative_config = "./config/application.yaml"
        if Path(relative_config).exists():
            return relative_config

        return None

    @classmethod
    def get_instance(cls: Type[T]) -> T:
        """Return the lazily loaded global configuration.

        An empty configuration is used when no file can be found, so every
        consumer falls back to its class defaults.
        """
        global _global_config
        if _global_config is None:
            with _SINGLETON_LOCK:
                if _global_config is None:
                    config_path = cls._find_config_file()
                    if config_path is None:
                        _global_config = ConfigDict()
                    else:
                        _global_config = cls.load_from_file(config_path)
        return cast(T, _global_config)

    @classmethod
    def load_instance(cls: Type[T], file_path: str) -> T:
        """Replace the global configuration with the content of file_path."""
        global _global_config
        config = cls.load_from_file(file_path)
        with _SINGLETON_LOCK:
            _global_config = config
        return config

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the global configuration; the next get_instance() reloads it."""
        global _global_config
        with _SINGLETON_LOCK:
            _global_config = None

    @classmethod
    def load_from_file(cls: Type[T], file_path: str, format: Optional[str] = None) -> T:
        """从文件加载配置（支持JSON/YAML）

        Args:
            file_path: 配置文件路径
            format: 文件格式（json/yaml，None自动识别）

        Returns:
            ConfigDict实例

        Raises:
            ValueError: 不支持的文件格式
            FileNotFoundError: 文件不存在
        """
        if format is None:
            file_ext = Path(file_path).suffix.lower()
            if file_ext == ".json":
                format = "json"
            elif file_ext in (".yaml", ".yml"):
                format = "yaml"
            else:
                raise ValueError(f"unrecognised config file format: {file_path} (json/yaml only)")

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                if format == "json":
                    data = json.load(f)
                elif format == "yaml":
                    data = yaml.safe_load(f)
                else:
                    raise ValueError(f"unsupported config file format: {format}")
        except FileNotFoundError as e:
            raise FileNotFoundError(f"config file not found: {file_path}") from e

        return cls(data or {})

    def merge(
        self,
        *config_sources: Union[Dict[str, Any], "ConfigDict"],
        overwrite: bool = True
    ) -> "ConfigDict":
        """递归合并配置（后传入的配置源优先级更高）

        Args:
            *config_sources: 要合并的配置源
            overwrite: 非字典项是否覆盖：True=新值覆盖旧值（默认），False=保留旧值

        Returns:
            合并后的自身实例（支持链式调用）
        """
        def _recursive_merge(target: "ConfigDict", source: "ConfigDict") -> None:
            for key, value in source.items():
                if key in target and isinstance(target[key], ConfigDict) and isinstance(value, ConfigDict):
                    _recursive_merge(target[key], value)
                elif key not in target or overwrite:
                    target[key] = value

        for source in config_sources:
            source_config = source if isinstance(source, ConfigDict) else ConfigDict(source)
            _recursive_merge(self, source_config)

        return self

    def __repr__(self) -> str:
        return f"ConfigDict({super().__repr__()})"
