"""Built-in Helm component catalog."""

from __future__ import annotations

from foundry.reconcile.models import ChartRepository, ReadinessSpec

from .base import HelmComponent
from .registry import ComponentRegistry

# =============================================================================
# Chart repositories
# =============================================================================

JETSTACK = ChartRepository("jetstack", "https://charts.jetstack.io")
BITNAMI = ChartRepository("bitnami", "https://charts.bitnami.com/bitnami")
GRAFANA = ChartRepository("grafana", "https://grafana.github.io/helm-charts")
PROMETHEUS_COMMUNITY = ChartRepository(
    "prometheus-community", "https://prometheus-community.github.io/helm-charts"
)
EXTERNAL_DNS = ChartRepository(
    "external-dns", "https://kubernetes-sigs.github.io/external-dns/"
)
GARAGE = ChartRepository(
    "garage",
    "https://git.deuxfleurs.fr/Deuxfleurs/garage/raw/branch/main/script/helm/garage",
)
MINIO = ChartRepository("minio", "https://charts.min.io/")
SEAWEEDFS = ChartRepository("seaweedfs", "https://seaweedfs.github.io/seaweedfs/helm")
VMWARE_TANZU = ChartRepository("vmware-tanzu", "https://vmware-tanzu.github.io/helm-charts")

SHORT_WAIT = 120.0
LONG_WAIT = 180.0

# =============================================================================
# Components
# =============================================================================

CERT_MANAGER = HelmComponent(
    name="cert-manager",
    repo=JETSTACK,
    chart="jetstack/cert-manager",
    namespace="cert-manager",
    values={
        "installCRDs": True,
        "prometheus": {"servicemonitor": {"enabled": True}},
    },
    readiness=ReadinessSpec(name_contains=("cert-manager",), timeout=LONG_WAIT),
    dependencies=("k3s",),
)

CONTOUR = HelmComponent(
    name="contour",
    repo=BITNAMI,
    chart="bitnami/contour",
    namespace="projectcontour",
    values={
        "envoy": {"service": {"type": "LoadBalancer"}},
        "ingressClass": {"create": True, "default": True},
    },
    readiness=ReadinessSpec(name_contains=("contour", "envoy"), timeout=SHORT_WAIT),
    dependencies=("k3s",),
)

GARAGE_STORE = HelmComponent(
    name="garage",
    repo=GARAGE,
    chart="garage/garage",
    namespace="garage",
    values={
        "persistence": {
            "enabled": True,
            "meta": {"size": "1Gi"},
            "data": {"size": "10Gi"},
        },
        "service": {"type": "ClusterIP"},
    },
    readiness=ReadinessSpec(name_contains=("garage",), timeout=SHORT_WAIT),
    dependencies=("storage",),
)

LOKI = HelmComponent(
    name="loki",
    repo=GRAFANA,
    chart="grafana/loki",
    namespace="loki",
    values={
        "deploymentMode": "SingleBinary",
        "loki": {
            "auth_enabled": False,
            "commonConfig": {"replication_factor": 1},
            "compactor": {"retention_enabled": True},
        },
    },
    readiness=ReadinessSpec(name_contains=("loki",), timeout=LONG_WAIT),
    dependencies=("storage", "minio"),
)

PROMTAIL = HelmComponent(
    name="promtail",
    repo=GRAFANA,
    chart="grafana/promtail",
    namespace="loki",
    version="6.16.6",
    values={
        "config": {"clients": [{"url": "http://loki-gateway.loki.svc.cluster.local/loki/api/v1/push"}]},
    },
    timeout=300.0,
    create_namespace=False,
    dependencies=("loki",),
)

KUBE_PROMETHEUS_STACK = HelmComponent(
    name="prometheus",
    repo=PROMETHEUS_COMMUNITY,
    chart="prometheus-community/kube-prometheus-stack",
    namespace="monitoring",
    release_name="kube-prometheus-stack",
    values={
        "grafana": {"enabled": False},
        "prometheus": {"prometheusSpec": {"retention": "15d"}},
    },
    readiness=ReadinessSpec(
        name_contains=(
            "prometheus-kube-prometheus-stack-prometheus",
            "prometheus-prometheus",
        ),
        timeout=LONG_WAIT,
    ),
    dependencies=("storage",),
)

GRAFANA_DASHBOARDS = HelmComponent(
    name="grafana",
    repo=GRAFANA,
    chart="grafana/grafana",
    namespace="grafana",
    values={
        "persistence": {"enabled": True, "size": "10Gi"},
        "service": {"type": "ClusterIP", "port": 80},
        "sidecar": {
            "dashboards": {"enabled": True, "label": "grafana_dashboard"},
            "datasources": {"enabled": True, "label": "grafana_datasource"},
        },
    },
    readiness=ReadinessSpec(name_contains=("grafana",), timeout=LONG_WAIT),
    dependencies=("prometheus", "loki"),
)

EXTERNAL_DNS_CONTROLLER = HelmComponent(
    name="external-dns",
    repo=EXTERNAL_DNS,
    chart="external-dns/external-dns",
    namespace="external-dns",
    values={"policy": "upsert-only", "serviceMonitor": {"enabled": False}},
    readiness=ReadinessSpec(name_contains=("external-dns",), timeout=SHORT_WAIT),
)

MINIO_STORE = HelmComponent(
    name="minio",
    repo=MINIO,
    chart="minio/minio",
    namespace="minio",
    values={
        "mode": "standalone",
        "persistence": {"enabled": True, "size": "10Gi"},
        "resources": {"requests": {"memory": "512Mi"}},
    },
    readiness=ReadinessSpec(name_contains=("minio",), timeout=SHORT_WAIT),
    dependencies=("storage",),
)

SEAWEEDFS_STORE = HelmComponent(
    name="seaweedfs",
    repo=SEAWEEDFS,
    chart="seaweedfs/seaweedfs",
    namespace="seaweedfs",
    values={
        "master": {"replicas": 1, "persistence": {"enabled": True, "size": "1Gi"}},
        "volume": {"replicas": 1},
        "filer": {"replicas": 1, "s3": {"enabled": True}},
    },
    readiness=ReadinessSpec(name_contains=("seaweedfs",), timeout=SHORT_WAIT),
    dependencies=("storage",),
)

VELERO = HelmComponent(
    name="velero",
    repo=VMWARE_TANZU,
    chart="vmware-tanzu/velero",
    namespace="velero",
    values={
        "deployNodeAgent": False,
        "snapshotsEnabled": False,
        "upgradeCRDs": True,
    },
    readiness=ReadinessSpec(name_contains=("velero",), timeout=LONG_WAIT),
    dependencies=("garage",),
)

BUILTIN_COMPONENTS: tuple[HelmComponent, ...] = (
    CERT_MANAGER,
    CONTOUR,
    GARAGE_STORE,
    LOKI,
    PROMTAIL,
    KUBE_PROMETHEUS_STACK,
    GRAFANA_DASHBOARDS,
    EXTERNAL_DNS_CONTROLLER,
    MINIO_STORE,
    SEAWEEDFS_STORE,
    VELERO,
)


def default_registry() -> ComponentRegistry:
    """Return a registry holding every built-in component."""
    registry = ComponentRegistry()
    for component in BUILTIN_COMPONENTS:
        registry.register(component)
    return registry
