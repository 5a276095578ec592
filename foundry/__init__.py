"""Foundry: reconcile infrastructure components onto a Kubernetes cluster."""

__version__ = "0.1.0"
