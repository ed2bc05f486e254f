"""Harness for verifying multi-node Kubernetes clusters over SSH."""

__version__ = "0.1.0"
