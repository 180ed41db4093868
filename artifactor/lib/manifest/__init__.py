"""Manifest -- the record of outputs produced by the previous run."""

from artifactor.lib.manifest.store import ManifestStore, format_manifest, parse_manifest

__all__ = ["ManifestStore", "format_manifest", "parse_manifest"]
