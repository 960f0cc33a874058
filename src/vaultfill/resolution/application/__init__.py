"""Resolution application layer: per-run cache and orchestrator."""

from .orchestrator import DocumentResult, ManifestOrchestrator
from .secret_cache import SecretCache

__all__ = ["DocumentResult", "ManifestOrchestrator", "SecretCache"]
