"""dsquery: SQL over a Grafana-style datasource gateway."""

__version__ = "0.1.0"
