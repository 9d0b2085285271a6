#!/usr/bin/env python3
"""
Main entry point for running the monitor configuration CLI as a module.

Usage:
    python3 -m tidb_monitor render --namespace tidb --target-regex "basic.*"
    python3 -m tidb_monitor render --config monitor.yaml --output prometheus.yml
    python3 -m tidb_monitor dashboard
    python3 -m tidb_monitor info
"""

from .cli import main

if __name__ == "__main__":
    main()
