"""
Utility modules for migration and reconciliation jobs

Provides:
- logging: structured logging with a serialized sink
- metrics: Prometheus job metrics
- tracing: OpenTelemetry spans
- connections: source/destination connection factories
- vault_client: HashiCorp Vault integration for credentials
"""

__version__ = "1.0.0"
__all__ = ["logging", "metrics", "tracing", "connections", "vault_client"]
