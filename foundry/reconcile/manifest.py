"""Apply raw YAML manifests without a discovery client.

Kinds are mapped to REST resources with a fixed pluralization rule and
scope table. Applying is create-or-replace: a create that hits an existing
object (409 AlreadyExists) is followed by a replace carrying the live
object's resourceVersion, retried on optimistic-concurrency conflicts.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any

import yaml  # type: ignore[import-untyped]
from loguru import logger

from foundry.infra.constants import DEFAULT_CONSTANTS
from foundry.infra.k8s.errors import ClusterRequestError, ResourceConflict
from foundry.infra.k8s.retry import retry_on_conflict

from .cancel import raise_if_cancelled
from .clients import ClusterClient
from .errors import ClientUnavailable, ManifestParseError, RemoteOperationError
from .models import ManifestDocument

# Kinds whose resource name does not follow the suffix rules below.
IRREGULAR_PLURALS: dict[str, str] = {
    "Endpoints": "endpoints",
    "Ingress": "ingresses",
    "GatewayClass": "gatewayclasses",
    "SecurityContextConstraints": "securitycontextconstraints",
    "PodMetrics": "pods",
    "NodeMetrics": "nodes",
}

CLUSTER_SCOPED_KINDS: frozenset[str] = frozenset(
    {
        "APIService",
        "CertificateSigningRequest",
        "ClusterIssuer",
        "ClusterRole",
        "ClusterRoleBinding",
        "ComponentStatus",
        "CSIDriver",
        "CSINode",
        "CustomResourceDefinition",
        "FlowSchema",
        "GatewayClass",
        "IngressClass",
        "MutatingWebhookConfiguration",
        "Namespace",
        "Node",
        "PersistentVolume",
        "PriorityClass",
        "PriorityLevelConfiguration",
        "RuntimeClass",
        "StorageClass",
        "ValidatingAdmissionPolicy",
        "ValidatingAdmissionPolicyBinding",
        "ValidatingWebhookConfiguration",
        "VolumeAttachment",
        "VolumeSnapshotClass",
        "VolumeSnapshotContent",
    }
)

_SIBILANT_SUFFIXES = ("s", "x", "z", "ch", "sh")
_VOWELS = "aeiou"


def pluralize_kind(kind: str) -> str:
    """Map a Kind to its plural resource name.

    Irregular kinds come from ``IRREGULAR_PLURALS``; otherwise the lowercase
    kind takes "es" after a sibilant, "ies" for a consonant + "y", and "s"
    in every other case.

    >>> pluralize_kind("Deployment")
    'deployments'
    >>> pluralize_kind("NetworkPolicy")
    'networkpolicies'
    >>> pluralize_kind("Ingress")
    'ingresses'
    """
    if kind in IRREGULAR_PLURALS:
        return IRREGULAR_PLURALS[kind]
    lower = kind.lower()
    if lower.endswith(_SIBILANT_SUFFIXES):
        return lower + "es"
    if len(lower) > 1 and lower.endswith("y") and lower[-2] not in _VOWELS:
        return lower[:-1] + "ies"
    return lower + "s"


def is_cluster_scoped(kind: str) -> bool:
    return kind in CLUSTER_SCOPED_KINDS


def _require_string(value: Any, field_name: str, index: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ManifestParseError(f"missing {field_name} field", index)
    return value.strip()


def _to_document(raw: Any, index: int) -> ManifestDocument:
    """Validate one decoded YAML document and resolve its request."""
    if not isinstance(raw, dict):
        raise ManifestParseError(
            f"expected a mapping, got {type(raw).__name__}", index
        )

    kind = _require_string(raw.get("kind"), "kind", index)
    api_version = _require_string(raw.get("apiVersion"), "apiVersion", index)
    metadata = raw.get("metadata")
    if not isinstance(metadata, dict):
        raise ManifestParseError("missing metadata", index)
    name = _require_string(metadata.get("name"), "metadata.name", index)

    group, _, version = api_version.rpartition("/")
    cluster_scoped = is_cluster_scoped(kind)

    body = copy.deepcopy(raw)
    body_metadata = body["metadata"]
    namespace: str | None
    if cluster_scoped:
        if body_metadata.pop("namespace", None):
            logger.debug(f"Ignoring namespace on cluster-scoped {kind} {name}")
        namespace = None
    else:
        declared = body_metadata.get("namespace")
        namespace = (
            declared
            if isinstance(declared, str) and declared
            else DEFAULT_CONSTANTS.DEFAULT_NAMESPACE
        )
        body_metadata["namespace"] = namespace

    return ManifestDocument(
        group=group,
        version=version,
        kind=kind,
        name=name,
        namespace=namespace,
        cluster_scoped=cluster_scoped,
        resource=pluralize_kind(kind),
        body=body,
    )


def parse_manifests(yaml_text: str) -> list[ManifestDocument]:
    """Decode a multi-document YAML stream into validated documents.

    The stream is split by the YAML parser, so a ``---`` line inside a block
    scalar is content, not a separator. Empty documents are skipped.

    Raises:
        ManifestParseError: On invalid YAML, an empty stream, or a document
            without kind, apiVersion or metadata.name
    """
    if not yaml_text or not yaml_text.strip():
        raise ManifestParseError("manifest is empty")

    documents: list[ManifestDocument] = []
    index = 0
    try:
        for raw in yaml.safe_load_all(yaml_text):
            index += 1
            if raw is None:
                continue
            documents.append(_to_document(raw, index))
    except yaml.YAMLError as e:
        raise ManifestParseError(f"invalid YAML: {e}", index + 1) from e

    if not documents:
        raise ManifestParseError("manifest contains no documents")
    return documents


class ManifestApplier:
    """Create or update the objects described by YAML manifests.

    All documents are parsed and validated before the first cluster call.
    Documents are then applied in order; there is no rollback, so documents
    applied before a failing one stay applied.
    """

    def __init__(
        self,
        cluster: ClusterClient | None,
        *,
        conflict_retries: int = DEFAULT_CONSTANTS.CONFLICT_RETRIES,
    ) -> None:
        self._cluster = cluster
        self._conflict_retries = conflict_retries

    async def apply(
        self,
        yaml_text: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> list[ManifestDocument]:
        """Apply every document in ``yaml_text``.

        Returns:
            The applied documents, in order

        Raises:
            ManifestParseError: Before any cluster call, on invalid input
            ClientUnavailable: If no cluster client is configured
            RemoteOperationError: If a create/replace fails
            OperationCancelled: If ``cancel`` is set between documents
        """
        documents = parse_manifests(yaml_text)
        if self._cluster is None:
            raise ClientUnavailable("kubernetes client is not configured")

        for document in documents:
            raise_if_cancelled(cancel, "manifest apply")
            await self._apply_document(self._cluster, document)
        return documents

    async def _apply_document(
        self, cluster: ClusterClient, document: ManifestDocument
    ) -> None:
        request = document.request
        label = f"{document.kind}/{document.name}"
        try:
            await cluster.create_resource(request, document.body)
            logger.info(f"Created {label} ({request.path})")
            return
        except ResourceConflict as e:
            if not e.already_exists:
                raise self._apply_error(document, e) from e
        except ClusterRequestError as e:
            raise self._apply_error(document, e) from e

        logger.debug(f"{label} already exists, replacing")
        await self._replace_existing(cluster, document)
        logger.info(f"Updated {label} ({request.path})")

    async def _replace_existing(
        self, cluster: ClusterClient, document: ManifestDocument
    ) -> None:
        request = document.request.named(document.name)

        async def _replace() -> None:
            live = await cluster.get_resource(request)
            body = copy.deepcopy(document.body)
            resource_version = live.get("metadata", {}).get("resourceVersion")
            if resource_version:
                body["metadata"]["resourceVersion"] = resource_version
            await cluster.replace_resource(request, body)

        try:
            await retry_on_conflict(
                _replace,
                attempts=self._conflict_retries,
                description=f"{document.kind}/{document.name}",
            )
        except ClusterRequestError as e:
            raise self._apply_error(document, e) from e

    @staticmethod
    def _apply_error(
        document: ManifestDocument, error: ClusterRequestError
    ) -> RemoteOperationError:
        return RemoteOperationError(
            f"apply {document.kind}",
            document.name,
            document.namespace,
            error.message,
        )
