"""vaultfill command-line interface."""
