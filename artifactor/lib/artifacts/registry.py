"""Per-run collection of output files, keyed by logical path."""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator

from artifactor.lib.artifacts.models import ArtifactDescriptor
from artifactor.lib.artifacts.paths import path_key

logger = logging.getLogger("lib.artifacts.registry")


def _key(path: str) -> str:
    return path_key(path) if path else ""


class ArtifactRegistry:
    """Accumulates the outputs a transformation writes during one run.

    The registry starts with the default output already present, bound to
    the primary output stream, so a transformation that never names a file
    still produces exactly one output. Repeated writes to the same path must
    agree on the properties established by the first write.
    """

    def __init__(self, primary_output: io.StringIO | None = None) -> None:
        self._primary = primary_output if primary_output is not None else io.StringIO()
        self._default = ArtifactDescriptor(primary=True, buffer=self._primary)
        self._entries: dict[str, ArtifactDescriptor] = {"": self._default}
        self._closed = False

    def __iter__(self) -> Iterator[ArtifactDescriptor]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def default(self) -> ArtifactDescriptor:
        return self._default

    @property
    def primary_output(self) -> str:
        """Text written to the default output so far."""
        return self._primary.getvalue()

    def get(self, path: str) -> ArtifactDescriptor | None:
        """Find the output registered for *path* (case-insensitive)."""
        return self._entries.get(_key(path))

    def write(self, descriptor: ArtifactDescriptor, text: str) -> ArtifactDescriptor:
        """Append *text* to the output described by *descriptor*.

        Args:
            descriptor: Destination and properties for the text.
            text: Rendered content to append.

        Returns:
            The registry's entry for the output.

        Raises:
            DefaultOutputMisuseError: If the descriptor is an invalid default output.
            PropertyConflictError: If an earlier write established different properties.
            RuntimeError: If the registry was already handed over to reconciliation.
        """
        if self._closed:
            raise RuntimeError("Outputs were already handed over; no further writes are accepted")

        descriptor.validate()

        key = _key(descriptor.path)
        entry = self._entries.get(key)
        if entry is not None:
            entry.check_consistency(descriptor)
        else:
            entry = ArtifactDescriptor()
            self._entries[key] = entry
            logger.debug("Registered output %s", descriptor.path)

        entry.merge_from(descriptor)

        # The default output's buffer is the primary stream itself.
        entry.append(text)
        return entry

    def write_primary(self, text: str) -> None:
        """Append *text* to the primary output as the template itself renders it."""
        if self._closed:
            raise RuntimeError("Outputs were already handed over; no further writes are accepted")
        self._default.append(text)

    def snapshot(self) -> list[ArtifactDescriptor]:
        """Freeze every output and return them, default output first."""
        self._closed = True
        entries = list(self._entries.values())
        for entry in entries:
            entry.finalize()
        return entries
