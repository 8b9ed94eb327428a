"""Cluster nodes, providers and kubeconfig access."""
