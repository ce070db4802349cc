"""Abstract base class for binary builders."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO, Sequence

from foundry.core.module import Module
from foundry.core.platform import Platform
from foundry.io.receipt import BuildReceipt


class Builder(ABC):
    """Builds a custom binary of the base program with a set of extensions.

    Callers depend only on this interface; the concrete variant (e.g. the
    native builder that shells out to the go toolchain) is chosen when the
    builder is created, see ``foundry.builders.new_builder``.
    """

    @staticmethod
    @abstractmethod
    def is_available() -> bool:
        """Check if this builder can run in the current environment.

        Returns
        -------
        bool
            True if the builder can be used, False otherwise.
        """
        ...

    @abstractmethod
    async def build(
        self,
        platform: Platform,
        base_version: str,
        extensions: Sequence[Module],
        build_flags: Sequence[str],
        out: BinaryIO,
    ) -> BuildReceipt:
        """Build a binary and write it to ``out``.

        Parameters
        ----------
        platform : Platform
            Target os/arch.
        base_version : str
            Version of the base program ("" or "latest" for the latest).
        extensions : Sequence[Module]
            Extensions to link in, in order.
        build_flags : Sequence[str]
            Extra flags for the compile step.
        out : BinaryIO
            Sink for the binary.  Written only after a successful compile.

        Returns
        -------
        BuildReceipt
            What was built.

        Raises
        ------
        FoundryError
            One of the error classes in ``foundry.errors``.
        """
        ...
