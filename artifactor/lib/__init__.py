"""Building blocks of output reconciliation: artifacts, manifest, workspace and guards."""
