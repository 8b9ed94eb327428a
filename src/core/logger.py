import logging
from pathlib import Path
from logging.handlers import TimedRotatingFileHandler
import sys
from typing import Optional

from core.config.application import Application
from rich.console import Console
from rich.logging import RichHandler


class GlobalLoggerManager:
    _instance: Optional["GlobalLoggerManager"] = None
    _configured: bool = False

    def __new__(cls):
        """单例模式：确保全局只有一个管理器实例"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def setup(
        self,
        level: Optional[str] = None,
        log_file: Optional[str] = None,
        console_output: Optional[bool] = None,
        rich_console: Optional[Console] = None
    ) -> None:
        """
        配置全局日志（幂等操作：多次调用仅生效一次）
        :param rich_console: 外部Rich Console实例，日志与状态动画共用同一输出载体
        """
        if self._configured:
            logging.getLogger(__name__).debug("logging already configured, skipping")
            return

        root_logger = logging.getLogger()
        root_logger.setLevel(
            getattr(logging, (level or Application.LOGGER_CONFIG.LEVEL).upper()))
        root_logger.handlers.clear()

        formatter = logging.Formatter(
            fmt=Application.LOGGER_CONFIG.FORMAT, datefmt=Application.LOGGER_CONFIG.DATE_FORMAT)

        if console_output:
            if rich_console is not None:
                # 与状态动画共用Console，避免日志打断spinner
                console_handler: logging.Handler = RichHandler(
                    console=rich_console,
                    show_time=False,
                    show_path=False,
                    rich_tracebacks=False,
                )
                console_handler.setFormatter(logging.Formatter("%(message)s"))
            else:
                console_handler = logging.StreamHandler(sys.stderr)
                console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

        if log_file:
            self._setup_file_handler(root_logger, formatter, log_file)

        self._setup_third_party_loggers()

        self._configured = True
        root_logger.debug(
            f"logging configured | level: {level or Application.LOGGER_CONFIG.LEVEL} | "
            f"file: {log_file or 'none'} | rotate: {Application.LOGGER_CONFIG.ROTATE_ENABLE}"
        )

    def reset(self) -> None:
        """Forget the previous setup so the next call reconfigures logging."""
        self._configured = False

    def _setup_file_handler(self, root_logger: logging.Logger, formatter: logging.Formatter, log_file: str):
        """配置文件处理器（支持轮转）"""
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        if Application.LOGGER_CONFIG.ROTATE_ENABLE:
            file_handler: logging.Handler = TimedRotatingFileHandler(
                filename=log_path,
                when=Application.LOGGER_CONFIG.ROTATE_WHEN,
                backupCount=Application.LOGGER_CONFIG.ROTATE_BACKUP_COUNT,
                encoding="utf-8",
            )
        else:
            file_handler = logging.FileHandler(
                log_path, mode="a", encoding="utf-8")

        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    def _setup_third_party_loggers(self):
        """设置第三方库日志级别"""
        for logger_name, level in Application.LOGGER_CONFIG.THIRD_PARTY_LOG_LEVELS.items():
            third_logger = logging.getLogger(logger_name)
            third_logger.setLevel(getattr(logging, level.upper()))


def verbosity_to_level(verbosity: int) -> str:
    """Map the CLI -v count onto a logging level name.

    Command output of remote steps is logged at DEBUG, so it shows from -vvv on.
    """
    if verbosity >= 3:
        return "DEBUG"
    if verbosity >= 1:
        return "INFO"
    return "WARNING"


def setup_cli_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: Optional[bool] = True,
    rich_console: Optional[Console] = None
) -> None:
    """CLI场景快捷配置"""
    GlobalLoggerManager().setup(
        level,
        log_file or f"{Application.ROOT_DIR}/logs/cli.log",
        console_output,
        rich_console=rich_console
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """快捷获取Logger实例"""
    return logging.getLogger(name)
