"""Checkout collaborators for hosts without a source-control integration."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from artifactor.lib.workspace.base import Checkout, CheckoutOutcome

logger = logging.getLogger("lib.workspace.checkout")


class AllowAllCheckout(Checkout):
    """Grants every request."""

    async def request_edit(self, paths: list[Path]) -> CheckoutOutcome:
        return CheckoutOutcome.OK


class WritableFileCheckout(Checkout):
    """Grants a request when every existing file is writable.

    Files that do not exist yet only need a writable parent directory
    somewhere up the tree.
    """

    async def request_edit(self, paths: list[Path]) -> CheckoutOutcome:
        for path in paths:
            path = Path(path)
            if path.exists():
                if not os.access(path, os.W_OK):
                    logger.warning("Checkout refused: %s is read-only", path)
                    return CheckoutOutcome.FAILED
                continue
            parent = path.parent
            while not parent.exists() and parent != parent.parent:
                parent = parent.parent
            if not os.access(parent, os.W_OK):
                logger.warning("Checkout refused: cannot create files in %s", parent)
                return CheckoutOutcome.FAILED
        return CheckoutOutcome.OK


class ScriptedCheckout(Checkout):
    """Answers with a fixed sequence of outcomes and records each request.

    Once the sequence is exhausted the last outcome repeats.
    """

    def __init__(self, outcomes: Iterable[CheckoutOutcome] = (CheckoutOutcome.OK,)) -> None:
        self._outcomes = list(outcomes) or [CheckoutOutcome.OK]
        self.requests: list[list[Path]] = []

    async def request_edit(self, paths: list[Path]) -> CheckoutOutcome:
        self.requests.append(list(paths))
        index = min(len(self.requests), len(self._outcomes)) - 1
        return self._outcomes[index]
