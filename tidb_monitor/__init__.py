"""
TiDB monitor configuration generator.

Renders the Prometheus scrape/alerting configuration and the Grafana
dashboard provisioning document for a TiDB cluster running on Kubernetes.
"""

__version__ = "0.1.0"
