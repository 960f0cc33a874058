"""vaultfill - resolve <placeholders> in Kubernetes manifests from secret backends."""

__version__ = "0.1.0"
