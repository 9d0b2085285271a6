"""
Prometheus configuration renderer for TiDB clusters.

Builds the ``prometheus.yml`` served to the monitor's Prometheus container:
one job scraping every annotated pod of the cluster, an optional plaintext
fallback job for components that cannot be scraped over TLS, and an optional
Alertmanager endpoint.

Each step takes a ``PrometheusConfig`` and returns a new one, so the
pipeline is simply::

    config = new_prometheus_config(params)
    if params.enable_tls:
        config = with_tls(config, params)
    if params.alertmanager_url:
        config = with_alertmanager(config, params.alertmanager_url)
"""

import logging
from dataclasses import replace

import yaml

from .models import (
    CLUSTER_JOB_NAME,
    AlertingConfig,
    HTTPClientConfig,
    KubernetesSDConfig,
    PrometheusConfig,
    RelabelAction,
    RelabelConfig,
    RenderParameters,
    Scheme,
    ScrapeConfig,
    TLSConfig,
)
from .patterns import DEFAULT_PATTERNS, RenderPatterns

logger = logging.getLogger(__name__)


# Kubernetes service discovery meta labels
INSTANCE_LABEL = "__meta_kubernetes_pod_label_app_kubernetes_io_instance"
SCRAPE_LABEL = "__meta_kubernetes_pod_annotation_prometheus_io_scrape"
METRICS_PATH_LABEL = "__meta_kubernetes_pod_annotation_prometheus_io_path"
PORT_LABEL = "__meta_kubernetes_pod_annotation_prometheus_io_port"
NAMESPACE_LABEL = "__meta_kubernetes_namespace"
POD_NAME_LABEL = "__meta_kubernetes_pod_name"
NODE_NAME_LABEL = "__meta_kubernetes_pod_node_name"
POD_IP_LABEL = "__meta_kubernetes_pod_ip"
ADDRESS_LABEL = "__address__"
METRICS_PATH_TARGET = "__metrics_path__"

# Mounted into the Prometheus pod by the deployment
CA_FILE_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt"
CERT_FILE_PATH = "/var/lib/pd-client-tls/cert"
KEY_FILE_PATH = "/var/lib/pd-client-tls/key"

INSECURE_TRANSPORT = HTTPClientConfig(
    scheme=Scheme.HTTP,
    tls_config=TLSConfig(insecure_skip_verify=True),
)
CLUSTER_TLS_TRANSPORT = HTTPClientConfig(
    scheme=Scheme.HTTPS,
    tls_config=TLSConfig(
        ca_file=CA_FILE_PATH,
        cert_file=CERT_FILE_PATH,
        key_file=KEY_FILE_PATH,
    ),
)


class RenderError(Exception):
    """Raised when the configuration cannot be serialized."""


def _pod_discovery(params: RenderParameters) -> tuple[KubernetesSDConfig, ...]:
    return (KubernetesSDConfig(role="pod", namespaces=params.namespaces),)


def _target_filters(params: RenderParameters, patterns: RenderPatterns) -> tuple[RelabelConfig, ...]:
    """Keep only this cluster's pods that opted in to scraping, honoring their metrics path."""
    return (
        RelabelConfig(
            source_labels=(INSTANCE_LABEL,),
            action=RelabelAction.KEEP,
            regex=params.target_regex,
        ),
        RelabelConfig(
            source_labels=(SCRAPE_LABEL,),
            action=RelabelAction.KEEP,
            regex=patterns.true,
        ),
        RelabelConfig(
            source_labels=(METRICS_PATH_LABEL,),
            action=RelabelAction.REPLACE,
            target_label=METRICS_PATH_TARGET,
            regex=patterns.all_match,
        ),
    )


def new_prometheus_config(
    params: RenderParameters,
    patterns: RenderPatterns = DEFAULT_PATTERNS,
) -> PrometheusConfig:
    """
    Build the base configuration with the plaintext ``tidb-cluster`` job.

    Args:
        params: Render inputs
        patterns: Fixed relabel patterns

    Returns:
        PrometheusConfig with global settings, rule files and one scrape job
    """
    cluster_job = ScrapeConfig(
        job_name=CLUSTER_JOB_NAME,
        kubernetes_sd_configs=_pod_discovery(params),
        http_client_config=INSECURE_TRANSPORT,
        relabel_configs=_target_filters(params, patterns) + (
            RelabelConfig(
                source_labels=(NAMESPACE_LABEL,),
                action=RelabelAction.REPLACE,
                target_label="kubernetes_namespace",
            ),
            RelabelConfig(
                source_labels=(POD_NAME_LABEL,),
                action=RelabelAction.REPLACE,
                target_label="instance",
            ),
            RelabelConfig(
                source_labels=(INSTANCE_LABEL,),
                action=RelabelAction.REPLACE,
                target_label="cluster",
            ),
        ),
    )
    return PrometheusConfig(scrape_configs=(cluster_job,))


def _fallback_job(params: RenderParameters, patterns: RenderPatterns) -> ScrapeConfig:
    """Plaintext job for pods excluded from the TLS job."""
    return ScrapeConfig(
        job_name=params.tls_fallback.job_name,
        kubernetes_sd_configs=_pod_discovery(params),
        http_client_config=INSECURE_TRANSPORT,
        relabel_configs=_target_filters(params, patterns) + (
            RelabelConfig(
                source_labels=(ADDRESS_LABEL, PORT_LABEL),
                action=RelabelAction.REPLACE,
                regex=patterns.port,
                replacement="$1:$2",
                target_label=ADDRESS_LABEL,
            ),
            RelabelConfig(
                source_labels=(NAMESPACE_LABEL,),
                action=RelabelAction.REPLACE,
                target_label="kubernetes_namespace",
            ),
            RelabelConfig(
                source_labels=(NODE_NAME_LABEL,),
                action=RelabelAction.REPLACE,
                target_label="kubernetes_node",
            ),
            RelabelConfig(
                source_labels=(POD_IP_LABEL,),
                action=RelabelAction.REPLACE,
                target_label="kubernetes_pod_ip",
            ),
        ),
    )


def with_tls(
    config: PrometheusConfig,
    params: RenderParameters,
    patterns: RenderPatterns = DEFAULT_PATTERNS,
) -> PrometheusConfig:
    """
    Switch the cluster job to the cluster client certificates.

    When the fallback policy is enabled, pods matching its pod-name regex are
    dropped from the cluster job and a plaintext fallback job is appended.

    Args:
        config: Configuration returned by ``new_prometheus_config``
        params: Render inputs
        patterns: Fixed relabel patterns

    Returns:
        New PrometheusConfig; ``config`` is left untouched
    """
    policy = params.tls_fallback
    scrape_configs = []

    for scrape_config in config.scrape_configs:
        if scrape_config.job_name == CLUSTER_JOB_NAME:
            relabel_configs = scrape_config.relabel_configs
            if policy.enabled:
                relabel_configs += (
                    RelabelConfig(
                        source_labels=(POD_NAME_LABEL,),
                        action=RelabelAction.DROP,
                        regex=policy.pod_name_regex or patterns.tikv,
                    ),
                )
            scrape_config = replace(
                scrape_config,
                http_client_config=CLUSTER_TLS_TRANSPORT,
                relabel_configs=relabel_configs,
            )
        scrape_configs.append(scrape_config)

    if policy.enabled:
        # Workaround for https://github.com/tikv/tikv/issues/5340, remove
        # once TiKV serves metrics over TLS
        scrape_configs.append(_fallback_job(params, patterns))
        logger.debug("Added TLS fallback job %s", policy.job_name)

    return replace(config, scrape_configs=tuple(scrape_configs))


def with_alertmanager(config: PrometheusConfig, alertmanager_url: str) -> PrometheusConfig:
    """Point alerting at a single Alertmanager, replacing any previous endpoints."""
    return replace(
        config,
        alerting=AlertingConfig(static_targets=((alertmanager_url,),)),
    )


def build_prometheus_config(
    params: RenderParameters,
    patterns: RenderPatterns = DEFAULT_PATTERNS,
) -> PrometheusConfig:
    """Assemble the full configuration model for ``params``."""
    config = new_prometheus_config(params, patterns)
    if params.enable_tls:
        logger.debug("TLS enabled, scraping cluster with client certificates")
        config = with_tls(config, params, patterns)
    if params.alertmanager_url:
        logger.debug("Sending alerts to %s", params.alertmanager_url)
        config = with_alertmanager(config, params.alertmanager_url)
    return config


def render_prometheus_config(
    params: RenderParameters,
    patterns: RenderPatterns = DEFAULT_PATTERNS,
) -> str:
    """
    Render the Prometheus configuration as YAML.

    Args:
        params: Render inputs
        patterns: Fixed relabel patterns

    Returns:
        The ``prometheus.yml`` document

    Raises:
        RenderError: If the configuration cannot be serialized
    """
    config = build_prometheus_config(params, patterns)
    try:
        return yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False)
    except yaml.YAMLError as e:
        logger.error("Failed to serialize Prometheus config: %s", e)
        raise RenderError(f"Failed to serialize Prometheus config: {e}") from e
