"""Schemas for the folder-tree configuration of one mail domain.

A domain config is a JSON object mapping folder names to nodes:

  "alice" or ["alice", "bob"]            -> SimpleFilter
  {"localparts": ..., "labels": ...}     -> FullFilter
  {"<folder>": <node>, ...}              -> SubDomainConfig
  true                                   -> generic-only folder

The reserved ``options`` key at domain level is split off before the tree
is decoded (see ``DomainConfig.from_raw``).
"""

from __future__ import annotations

import re
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
)

from sievegen.schemas.options import FilterOptions

SELF_KEY = "self"
OPTIONS_KEY = "options"

_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")


def _printable(value: str) -> str:
    if _CONTROL_CHARACTERS.search(value):
        raise ValueError(f"{value!r} contains a control character")
    return value


# Sieve quoted strings are emitted verbatim, so line breaks would corrupt the script.
SieveString = Annotated[StrictStr, AfterValidator(_printable)]
LocalpartSet = SieveString | list[SieveString]


class SieveConfigError(ValueError):
    """A configuration-authoring error. Always fatal for the whole run."""

    def __init__(self, message: str, *, path: str = "", field: str = "", domain: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.field = field
        self.domain = domain

    def __str__(self) -> str:
        where = []
        if self.domain:
            where.append(f"domain '{self.domain}'")
        if self.path:
            where.append(f"folder '{self.path}'")
        if self.field:
            where.append(f"field '{self.field}'")
        if not where:
            return self.message
        return f"{self.message} ({', '.join(where)})"


def normalize_localparts(value: str | list[str], name: str, *, path: str = "") -> list[str]:
    """Normalize a string-or-list into a non-empty list without empty strings."""
    if isinstance(value, str):
        if not value:
            raise SieveConfigError(f"{name} cannot be empty string", path=path, field=name)
        value = [value]
    if not value:
        raise SieveConfigError(f"Array of {name} cannot be empty", path=path, field=name)
    if any(not item for item in value):
        raise SieveConfigError(f"Array of {name} cannot contain empty string", path=path, field=name)
    for item in value:
        if _CONTROL_CHARACTERS.search(item):
            raise SieveConfigError(f"{name} cannot contain control characters", path=path, field=name)
    return list(value)


# --- Nodes ---


class SimpleFilter(BaseModel):
    """Route these localparts to the folder with inherited options."""

    model_config = ConfigDict(frozen=True)

    localparts: LocalpartSet


class FullFilter(BaseModel):
    """Localparts plus optional labels and option overrides."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    localparts: LocalpartSet
    labels: dict[SieveString, LocalpartSet] | None = None
    options: FilterOptions | None = None


class SubDomainConfig(BaseModel):
    """A folder containing named sub-folders."""

    model_config = ConfigDict(frozen=True)

    children: dict[str, SimpleFilter | FullFilter | SubDomainConfig] = Field(default_factory=dict)


SubDomainConfig.model_rebuild()

ConfigNode = SimpleFilter | FullFilter | SubDomainConfig


def _readable_error(exc: ValidationError) -> dict[str, Any]:
    """Prefer our own value errors over the union-member type mismatches."""
    errors = exc.errors()
    return next((e for e in errors if e["type"] == "value_error"), errors[0])


def _child_path(path: str, key: str) -> str:
    if key == SELF_KEY:
        return path
    return f"{path}/{key}" if path else key


def parse_node(raw: Any, path: str = "") -> ConfigNode:
    """Decode one raw JSON value (and its descendants) into a node."""
    try:
        if raw is True:
            return SimpleFilter(localparts="")
        if isinstance(raw, (str, list)):
            return SimpleFilter(localparts=raw)
        if isinstance(raw, dict):
            if "localparts" in raw:
                return FullFilter.model_validate(raw)
            for key in raw:
                if _CONTROL_CHARACTERS.search(key):
                    raise SieveConfigError(
                        "Folder name cannot contain control characters", path=_child_path(path, key)
                    )
            return SubDomainConfig(
                children={key: parse_node(value, _child_path(path, key)) for key, value in raw.items()}
            )
    except ValidationError as exc:
        first = _readable_error(exc)
        field = ".".join(str(loc) for loc in first["loc"])
        raise SieveConfigError(f"Invalid filter: {first['msg']}", path=path, field=field) from exc
    raise SieveConfigError(
        f"Expected a string, an array or an object, got {type(raw).__name__}",
        path=path,
    )


# --- Domain ---


class DomainOptions(BaseModel):
    """The optional ``options`` block of a domain."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    domain_as_first_folder: StrictBool = Field(default=False, alias="domain-as-first-folder")
    secrets: LocalpartSet | None = None

    def secret_suffixes(self) -> list[str]:
        """Suffixes appended to generic localparts; ``[""]`` when no secret is set."""
        if self.secrets is None:
            return [""]
        return normalize_localparts(self.secrets, "secrets")


class DomainConfig(BaseModel):
    """One mail domain: its options and its decoded folder tree."""

    model_config = ConfigDict(frozen=True)

    domain: str
    options: DomainOptions = Field(default_factory=DomainOptions)
    tree: ConfigNode

    @classmethod
    def from_raw(cls, domain: str, raw: Any) -> DomainConfig:
        """Split off the ``options`` block and decode the folder tree."""
        if not domain:
            raise SieveConfigError("Domain name cannot be empty string")
        if _CONTROL_CHARACTERS.search(domain):
            raise SieveConfigError("Domain name cannot contain control characters", domain=domain)
        if not isinstance(raw, dict):
            raise SieveConfigError("Domain config must be an object", domain=domain)
        raw = dict(raw)
        raw_options = raw.pop(OPTIONS_KEY, {})
        if not isinstance(raw_options, dict):
            raise SieveConfigError("Domain options must be an object", field=OPTIONS_KEY, domain=domain)
        try:
            options = DomainOptions.model_validate(raw_options)
        except ValidationError as exc:
            first = _readable_error(exc)
            field = ".".join(str(loc) for loc in (OPTIONS_KEY, *first["loc"]))
            raise SieveConfigError(
                f"Invalid domain options: {first['msg']}", field=field, domain=domain
            ) from exc
        try:
            options.secret_suffixes()
            tree = parse_node(raw)
        except SieveConfigError as exc:
            exc.domain = domain
            raise
        return cls(domain=domain, options=options, tree=tree)
