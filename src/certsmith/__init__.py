"""certsmith: domain and TLS certificate lifecycle orchestrator.

Provisions and renews certificates for managed domains via
DNS-01 issuance, persists domain/certificate state in PostgreSQL, and
reloads dependent reverse-proxy containers after changes.
"""

__version__ = "1.0.0"
