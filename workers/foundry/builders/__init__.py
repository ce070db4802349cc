"""Builder variants and selection."""

from __future__ import annotations

from typing import Dict, Optional, Type

from foundry.builders.base import Builder
from foundry.builders.native import NativeBuilder
from foundry.policy.options import NativeBuilderOpts

NATIVE = "native"

_BUILDERS: Dict[str, Type[Builder]] = {
    NATIVE: NativeBuilder,
}


def available_builders() -> Dict[str, bool]:
    """Registered variants and whether each can run here."""
    return {kind: cls.is_available() for kind, cls in _BUILDERS.items()}


def new_builder(kind: str = NATIVE, opts: Optional[NativeBuilderOpts] = None) -> Builder:
    """Create a builder of the given variant.

    Raises
    ------
    ValueError
        If ``kind`` is not a registered variant.
    PrerequisiteError
        If the variant's external tools are missing.
    """
    try:
        cls = _BUILDERS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown builder {kind!r}; expected one of {sorted(_BUILDERS)}"
        ) from None
    return cls(opts)


__all__ = ["Builder", "NativeBuilder", "available_builders", "new_builder"]
