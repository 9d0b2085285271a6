"""
Data models for the generated Prometheus configuration.

This module defines the immutable structures the renderer assembles
(global settings, scrape jobs, relabel rules, alerting) together with the
render inputs. Every model converts to the plain dictionary layout of
``prometheus.yml`` through ``to_dict()``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .patterns import Regexp


DEFAULT_SCRAPE_INTERVAL = "15s"
DEFAULT_EVALUATION_INTERVAL = "15s"
RULE_FILES_GLOB = "/prometheus-rules/rules/*.rules.yml"

CLUSTER_JOB_NAME = "tidb-cluster"
TIKV_FALLBACK_JOB_NAME = "tidb-cluster-tikv"


class Scheme(Enum):
    """URL scheme used to scrape targets."""

    HTTP = "http"
    HTTPS = "https"


class RelabelAction(Enum):
    """Relabel actions used by the generated jobs."""

    KEEP = "keep"
    DROP = "drop"
    REPLACE = "replace"


@dataclass(frozen=True)
class TLSConfig:
    """Client TLS settings for a scrape job."""

    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    insecure_skip_verify: bool = False

    def to_dict(self) -> dict[str, Any]:
        config: dict[str, Any] = {}
        if self.ca_file:
            config["ca_file"] = self.ca_file
        if self.cert_file:
            config["cert_file"] = self.cert_file
        if self.key_file:
            config["key_file"] = self.key_file
        if self.insecure_skip_verify:
            config["insecure_skip_verify"] = True
        return config


@dataclass(frozen=True)
class HTTPClientConfig:
    """Transport settings of a scrape job: the scheme and its TLS block."""

    scheme: Scheme = Scheme.HTTP
    tls_config: TLSConfig = field(default_factory=TLSConfig)


@dataclass(frozen=True)
class KubernetesSDConfig:
    """Namespace-scoped Kubernetes service discovery."""

    role: str = "pod"
    namespaces: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "namespaces": {"names": list(self.namespaces)},
        }


@dataclass(frozen=True)
class RelabelConfig:
    """
    A single relabel rule.

    Unset optional fields are left out of the document so Prometheus applies
    its own defaults (regex ``(.*)``, replacement ``$1``).
    """

    source_labels: tuple[str, ...]
    action: RelabelAction = RelabelAction.REPLACE
    regex: Optional[Regexp] = None
    replacement: Optional[str] = None
    target_label: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        config: dict[str, Any] = {
            "source_labels": list(self.source_labels),
            "action": self.action.value,
        }
        if self.regex is not None:
            config["regex"] = str(self.regex)
        if self.replacement is not None:
            config["replacement"] = self.replacement
        if self.target_label is not None:
            config["target_label"] = self.target_label
        return config


@dataclass(frozen=True)
class ScrapeConfig:
    """A Prometheus scrape job."""

    job_name: str
    scrape_interval: str = DEFAULT_SCRAPE_INTERVAL
    honor_labels: bool = True
    kubernetes_sd_configs: tuple[KubernetesSDConfig, ...] = ()
    http_client_config: HTTPClientConfig = field(default_factory=HTTPClientConfig)
    relabel_configs: tuple[RelabelConfig, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        config: dict[str, Any] = {
            "job_name": self.job_name,
            "honor_labels": self.honor_labels,
            "scrape_interval": self.scrape_interval,
            "scheme": self.http_client_config.scheme.value,
            "kubernetes_sd_configs": [sd.to_dict() for sd in self.kubernetes_sd_configs],
        }

        tls_config = self.http_client_config.tls_config.to_dict()
        if tls_config:
            config["tls_config"] = tls_config
        if self.relabel_configs:
            config["relabel_configs"] = [rc.to_dict() for rc in self.relabel_configs]

        return config


@dataclass(frozen=True)
class AlertingConfig:
    """Alertmanager endpoints, each entry being one static target group."""

    static_targets: tuple[tuple[str, ...], ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "alertmanagers": [
                {"static_configs": [{"targets": list(targets)}]}
                for targets in self.static_targets
            ]
        }


@dataclass(frozen=True)
class GlobalConfig:
    """Global scrape and rule evaluation intervals."""

    scrape_interval: str = DEFAULT_SCRAPE_INTERVAL
    evaluation_interval: str = DEFAULT_EVALUATION_INTERVAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "scrape_interval": self.scrape_interval,
            "evaluation_interval": self.evaluation_interval,
        }


@dataclass(frozen=True)
class PrometheusConfig:
    """Represents a complete Prometheus configuration file."""

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    rule_files: tuple[str, ...] = (RULE_FILES_GLOB,)
    scrape_configs: tuple[ScrapeConfig, ...] = ()
    alerting: Optional[AlertingConfig] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        config: dict[str, Any] = {
            "global": self.global_config.to_dict(),
            "rule_files": list(self.rule_files),
            "scrape_configs": [sc.to_dict() for sc in self.scrape_configs],
        }

        if self.alerting is not None:
            config["alerting"] = self.alerting.to_dict()

        return config

    def get_job(self, job_name: str) -> Optional[ScrapeConfig]:
        """Get a scrape job by name."""
        for scrape_config in self.scrape_configs:
            if scrape_config.job_name == job_name:
                return scrape_config
        return None


@dataclass(frozen=True)
class TLSFallbackPolicy:
    """
    Plaintext fallback scraping for pods that cannot serve TLS metrics.

    TiKV does not expose its status port over the cluster TLS certificates
    (tikv/tikv#5340), so with TLS enabled its pods are dropped from the main
    job and scraped by a dedicated plaintext job instead.

    Attributes:
        enabled: Whether the drop rule and fallback job are generated
        job_name: Name of the fallback scrape job
        pod_name_regex: Pod names excluded from the main job; None selects
            the TiKV store pattern of the render patterns
    """

    enabled: bool = True
    job_name: str = TIKV_FALLBACK_JOB_NAME
    pod_name_regex: Optional[Regexp] = None

    def __post_init__(self):
        if self.job_name == CLUSTER_JOB_NAME:
            raise ValueError(f"job name {self.job_name!r} is reserved for the cluster job")


@dataclass(frozen=True)
class RenderParameters:
    """
    Inputs of a single render call.

    Attributes:
        alertmanager_url: Alertmanager address; empty disables alerting
        namespaces: Namespaces whose pods are discovered, in order
        target_regex: Matched against the ``app.kubernetes.io/instance``
            pod label to select this cluster's pods
        enable_tls: Scrape the cluster over TLS
        tls_fallback: Fallback scraping used when TLS is enabled
    """

    namespaces: tuple[str, ...]
    target_regex: Regexp
    alertmanager_url: str = ""
    enable_tls: bool = False
    tls_fallback: TLSFallbackPolicy = field(default_factory=TLSFallbackPolicy)

    def __post_init__(self):
        if isinstance(self.namespaces, str):
            raise TypeError("namespaces must be a sequence of names, not a string")
        # Accept any sequence but store a tuple so parameters stay immutable
        object.__setattr__(self, "namespaces", tuple(self.namespaces))
