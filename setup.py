"""
krustkind setup.py

将 krustlet（WebAssembly）节点加入 kind 风格集群的命令行工具。
"""

from pathlib import Path
from typing import Any
from setuptools import find_packages, setup


def read_file(file_path: str) -> str:
    """读取文件内容"""
    here = Path(__file__).parent
    with open(here / file_path, encoding="utf-8") as f:
        return f.read()


def get_version() -> str:
    """从 cli/__init__.py 获取版本号"""
    for line in read_file("src/cli/__init__.py").split("\n"):
        if line.startswith("__version__") and '"' in line:
            start = line.index('"') + 1
            end = line.index('"', start)
            return line[start:end]
    return "0.1.0"


_METADATA: dict[str, Any] = {
    "name": "krustkind",
    "version": get_version(),
    "description": "Join krustlet WebAssembly nodes to kind style Kubernetes clusters",
    "long_description": read_file("README.md") if Path("README.md").exists() else "",
    "long_description_content_type": "text/markdown",
    "license": "Apache-2.0",
    "python_requires": ">=3.11",
    "install_requires": [
        "click>=8.0.0",
        "rich>=14.3.1",
        "asyncssh>=2.21.1",
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
    ],
    "extras_require": {
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    "entry_points": {
        "console_scripts": [
            "krustkind=cli.app:cli",
        ],
    },
    "classifiers": [
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Clustering",
        "Topic :: System :: Systems Administration",
    ],
}

config: dict[str, Any] = {
    # 指定包的位置和包名（setuptools 需要）
    "package_dir": {"": "src"},
    "packages": find_packages(where="src"),
    "zip_safe": False,
    **_METADATA,
}

if __name__ == "__main__":
    setup(**config)
