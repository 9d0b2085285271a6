"""
Grafana dashboard provisioning for the TiDB monitor.

The provisioning file is static: it points Grafana at the dashboard
definitions mounted into the Grafana container.
"""

DASHBOARD_DEFINITIONS_PATH = "/grafana-dashboard-definitions/tidb"

DASHBOARD_PROVISIONING = """{
    "apiVersion": 1,
    "providers": [
        {
            "folder": "",
            "name": "0",
            "options": {
                "path": "/grafana-dashboard-definitions/tidb"
            },
            "orgId": 1,
            "type": "file"
        }
    ]
}"""


def render_dashboard_provisioning() -> str:
    """Return the dashboard provisioning document."""
    return DASHBOARD_PROVISIONING
