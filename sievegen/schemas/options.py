"""Per-folder filter options and their inheritance rules.

A folder's options are partially specified (``FilterOptions``, every field
nullable) and resolved against the already-resolved options of the
enclosing folder (``ResolvedOptions``). Unset fields are opaque: they are
never treated as false, they copy the parent's value.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, StrictBool, model_validator

# option name -> (canonical name, inverted)
_ALIASES = {
    "orphan": ("fullpath", True),
    "mark_as_read": ("silent", False),
}


class ResolvedOptions(BaseModel):
    """Fully resolved option triple attached to a filter entry."""

    model_config = ConfigDict(frozen=True)

    generic: bool
    fullpath: bool
    silent: bool


class FilterOptions(BaseModel):
    """Options as written in the config; ``None`` means inherit."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    generic: StrictBool | None = None
    fullpath: StrictBool | None = None
    silent: StrictBool | None = None

    @model_validator(mode="before")
    @classmethod
    def _fold_aliases(cls, data: Any) -> Any:
        """Map ``orphan`` onto ``fullpath`` and ``mark_as_read`` onto ``silent``."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for alias, (canonical, inverted) in _ALIASES.items():
            if alias not in data:
                continue
            value = data.pop(alias)
            if not isinstance(value, bool):
                raise ValueError(f"'{alias}' must be a boolean")
            if inverted:
                value = not value
            if canonical in data and data[canonical] != value:
                raise ValueError(f"'{alias}' contradicts '{canonical}'")
            data[canonical] = value
        return data

    def mask_with(self, mask: FilterOptions) -> FilterOptions:
        """Return a copy where every field set in ``mask`` wins."""
        return self.model_copy(update=mask.model_dump(exclude_none=True))

    def resolve(self, parent: ResolvedOptions) -> ResolvedOptions:
        """Fill every unset field from ``parent``."""
        return ResolvedOptions(**(parent.model_dump() | self.model_dump(exclude_none=True)))

    @classmethod
    def flatten(cls, overrides: list[FilterOptions]) -> FilterOptions:
        """Merge a root-to-leaf list of overrides into one."""
        merged = cls()
        for override in overrides:
            merged = merged.mask_with(override)
        return merged


ROOT_OPTIONS = ResolvedOptions(generic=True, fullpath=False, silent=False)

# Everything in the catch-all folder is read and never gets a generic rule.
UNKNOWN_MASK = FilterOptions(generic=False, silent=True)
