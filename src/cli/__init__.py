"""
krustkind CLI 模块

- join: 将 krustlet 节点加入集群
- get: 查看节点与 kubeconfig
"""

__version__ = "0.1.0"
