"""Recursive walk of one domain's folder tree into custom and generic rules.

Custom rules come from explicitly authored localparts. Generic rules are
derived from folder names: folder ``Home bills/Grocery`` receives mail
for ``grocery`` and ``grocery.*`` (or ``home-bills.grocery`` with
``fullpath``).
"""

from __future__ import annotations

import logging
import re

from sievegen.generators.filter_generator import FilterGenerator
from sievegen.schemas.config import (
    SELF_KEY,
    ConfigNode,
    FullFilter,
    SieveConfigError,
    SimpleFilter,
    SubDomainConfig,
)
from sievegen.schemas.options import ROOT_OPTIONS, UNKNOWN_MASK, FilterOptions, ResolvedOptions
from sievegen.sieve import UNKNOWN_FOLDER, is_unknown

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def path_to_generic_localpart(path: str) -> str:
    """``"Home bills/Electricity"`` -> ``"home-bills.electricity"``."""
    return _WHITESPACE.sub("-", path).replace("/", ".").lower()


def last_folder_of_path(path: str) -> str:
    """``"A/B/C"`` -> ``"C"``."""
    return path.rsplit("/", 1)[-1]


def _pin_unknown(
    path: str, options: ResolvedOptions, explicit: FilterOptions | None = None
) -> ResolvedOptions:
    pinned = UNKNOWN_MASK.resolve(options)
    if explicit is not None and (
        explicit.generic not in (None, pinned.generic)
        or explicit.silent not in (None, pinned.silent)
    ):
        logger.warning(
            "Folder %s is under %s: ignoring generic=%s silent=%s",
            path,
            UNKNOWN_FOLDER,
            explicit.generic,
            explicit.silent,
        )
    return pinned


class DomainGenerator:
    """Builds the custom and generic rule sets of one mail domain.

    Usage::

        g = DomainGenerator("example.com")
        g.generate(parse_node({"Bills": {"Electricity": "alice"}}))
        text = g.render()
    """

    def __init__(
        self,
        domain: str,
        domain_as_first_folder: bool = False,
        secrets: list[str] | None = None,
    ) -> None:
        self.domain = domain
        domain_folder = f"@{domain}/" if domain_as_first_folder else ""
        self.custom_filter_generator = FilterGenerator("Custom", domain_folder)
        self.generic_filter_generator = FilterGenerator("Generic", domain_folder)
        self._secrets = secrets or [""]

    def generate(self, tree: ConfigNode) -> DomainGenerator:
        """Walk the whole tree from the domain root."""
        if not isinstance(tree, SubDomainConfig):
            raise SieveConfigError("Domain config must be an object of folders", domain=self.domain)
        try:
            self._generate("", tree, ROOT_OPTIONS)
        except SieveConfigError as exc:
            exc.domain = self.domain
            raise
        logger.debug(
            "Domain %s: %d custom filter(s), %d generic filter(s)",
            self.domain,
            len(self.custom_filter_generator),
            len(self.generic_filter_generator),
        )
        return self

    def _generate(self, path: str, node: ConfigNode, inherited: ResolvedOptions) -> None:
        if is_unknown(path):
            inherited = _pin_unknown(path, inherited)
        options = inherited
        labels = None

        if isinstance(node, SimpleFilter):
            self.custom_filter_generator.register(path, node.localparts, options=options)

        elif isinstance(node, FullFilter):
            labels = node.labels
            if node.options is not None:
                options = node.options.resolve(options)
                if is_unknown(path):
                    options = _pin_unknown(path, options, node.options)
                self._check_fullpath(path, node.options, options)
            self.custom_filter_generator.register(path, node.localparts, labels=labels, options=options)

        else:
            if not node.children:
                raise SieveConfigError(
                    "This is an empty sieve config, expected at least one folder", path=path
                )
            for name, child in node.children.items():
                if not name:
                    raise SieveConfigError("Empty string cannot be used for folder name", path=path)
                if name == SELF_KEY:
                    if not path:
                        raise SieveConfigError("'self' field is not supported at domain level")
                    if len(node.children) == 1:
                        raise SieveConfigError("'self' requires at least one sub-folder", path=path)
                    # The self node registers the generic rule of this path;
                    # ours would shadow it.
                    options = options.model_copy(update={"generic": False})
                    child_path = path
                else:
                    child_path = f"{path}/{name}" if path else name
                self._generate(child_path, child, inherited)

        if path and options.generic:
            self.generic_filter_generator.register(
                path,
                self._generic_localparts(path, options.fullpath),
                labels=labels,
                options=options,
            )

    @staticmethod
    def _check_fullpath(path: str, explicit: FilterOptions, options: ResolvedOptions) -> None:
        if explicit.fullpath is None:
            return
        if not options.generic:
            raise SieveConfigError(
                "'fullpath'/'orphan' has no effect without a generic filter",
                path=path,
                field="options.fullpath",
            )
        if "/" not in path:
            raise SieveConfigError(
                "'fullpath'/'orphan' has no effect on a top-level folder",
                path=path,
                field="options.fullpath",
            )

    def _generic_localparts(self, path: str, fullpath: bool) -> list[str]:
        prefix = path_to_generic_localpart(path if fullpath else last_folder_of_path(path))
        localparts = []
        for secret in self._secrets:
            localparts += [prefix + secret, prefix + secret + ".*"]
        return localparts

    def render(self) -> str:
        """Custom chain followed by the generic chain and the catch-all."""
        custom = self.custom_filter_generator.render()
        return custom + self.generic_filter_generator.render(
            trailing_unknown_branch=True,
            continue_chain=bool(custom),
        )
