"""Builders shared by the unit tests."""

from foundry.infra.helm.types import CommandResult, HelmRelease
from foundry.infra.k8s.controller import PodInfo


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(success=True, stdout=stdout, stderr="", returncode=0)


def failed(stderr: str = "Error: boom") -> CommandResult:
    return CommandResult(success=False, stdout="", stderr=stderr, returncode=1)


def pod(name: str, status: str = "Running", namespace: str = "default") -> PodInfo:
    return PodInfo(name=name, namespace=namespace, status=status)


def release(name: str, status: str, namespace: str = "default") -> HelmRelease:
    return HelmRelease(
        name=name, namespace=namespace, status=status, revision="1", app_version="1.0.0"
    )
