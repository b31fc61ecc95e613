"""Ordered registry of resolved filter entries and its Sieve rendering.

One ``FilterGenerator`` holds one rule set (custom or generic) of a
domain. Entries are keyed by folder path and rendered in descending path
order so that ``A/B`` is always tested before ``A``.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict

from sievegen.schemas.config import SieveConfigError, normalize_localparts
from sievegen.schemas.options import ResolvedOptions
from sievegen.sieve import (
    LABEL_HEADERS,
    SEEN_FLAG,
    UNKNOWN_FOLDER,
    UNREAD_FOLDER,
    addflag,
    code_block,
    fileinto,
    is_unknown,
    string_list,
)

logger = logging.getLogger(__name__)

IF_HEADER_CONTAINS = f"\nif header :contains {string_list(LABEL_HEADERS)} "


class FilterEntry(BaseModel):
    """A node normalized and ready for emission."""

    model_config = ConfigDict(frozen=True)

    localparts: list[str]
    labels: dict[str, list[str]] | None = None
    options: ResolvedOptions


class FilterGenerator:
    """Registry of filter entries for one rule set.

    Usage::

        custom = FilterGenerator("Custom")
        custom.register("Bills/Electricity", "alice", options=ROOT_OPTIONS)
        text = custom.render()
    """

    def __init__(self, name: str, domain_folder: str = "") -> None:
        self.name = name
        self.domain_folder = domain_folder
        self._entries: dict[str, FilterEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> dict[str, FilterEntry]:
        """Registered entries keyed by path, in emission order."""
        return {path: self._entries[path] for path in sorted(self._entries, reverse=True)}

    def register(
        self,
        path: str,
        localparts: str | list[str],
        *,
        labels: dict[str, str | list[str]] | None = None,
        options: ResolvedOptions,
    ) -> FilterGenerator:
        """Register the entry for ``path``.

        A bare empty string as ``localparts`` means "no rule in this set"
        and is silently ignored once its labels are validated.

        Raises:
            SieveConfigError: If ``path`` is empty or already registered,
                or if localparts or labels are malformed.
        """
        if not path:
            raise SieveConfigError(f"{self.name} filter registered with empty folder path")
        normalized_labels = self._normalize_labels(path, labels)
        if localparts == "":
            return self
        if path in self._entries:
            raise SieveConfigError(f"{self.name} filter registered twice", path=path)

        entry = FilterEntry(
            localparts=normalize_localparts(localparts, "localparts", path=path),
            labels=normalized_labels,
            options=options,
        )
        self._entries[path] = entry
        logger.debug(
            "%s filter %s <- %s (silent=%s, labels=%d)",
            self.name,
            path,
            entry.localparts,
            options.silent,
            len(entry.labels or {}),
        )
        return self

    @staticmethod
    def _normalize_labels(
        path: str, labels: dict[str, str | list[str]] | None
    ) -> dict[str, list[str]] | None:
        if labels is None:
            return None
        normalized: dict[str, list[str]] = {}
        for label in sorted(labels):
            if not label.strip():
                raise SieveConfigError("label cannot be empty string", path=path, field="labels")
            normalize_localparts(label, "label", path=path)
            keywords = normalize_localparts(labels[label], "label keywords", path=path)
            if any(not keyword.strip() for keyword in keywords):
                raise SieveConfigError(
                    "Array of label keywords cannot contain blank string",
                    path=path,
                    field=f"labels.{label}",
                )
            normalized[label] = keywords
        return normalized

    # --- Rendering ---

    def render(self, trailing_unknown_branch: bool = False, continue_chain: bool = False) -> str:
        """Render every entry as one ``if``/``elsif`` chain.

        Args:
            trailing_unknown_branch: Close the chain with the catch-all
                ``else`` that marks mail read and files it into Unknown.
            continue_chain: Open with ``elsif`` because the text is
                appended to another non-empty chain.
        """
        result = ""
        for i, (path, entry) in enumerate(self.entries.items()):
            if i == 0:
                result += f"\n# {self.name} filters\n" + ("els" if continue_chain else "") + "if"
            else:
                result += " elsif"
            result += (
                ' envelope :localpart :matches "to" '
                + string_list(entry.localparts)
                + " {"
                + code_block(self._render_labels(path, entry))
                + code_block(self._render_file_into(path))
                + "\n}"
            )
        if trailing_unknown_branch:
            catch_all = addflag(SEEN_FLAG) + fileinto(UNKNOWN_FOLDER)
            if result or continue_chain:
                result += " else {" + code_block(catch_all) + "\n}"
            else:
                result = catch_all
        return result

    def _render_file_into(self, path: str) -> str:
        """File into every ancestor first so mail falls back to an existing parent."""
        result = ""
        cumulated_path = ""
        for folder in path.split("/"):
            cumulated_path = f"{cumulated_path}/{folder}" if cumulated_path else folder
            result += fileinto(self.domain_folder + cumulated_path)
        return result

    @staticmethod
    def _render_labels(path: str, entry: FilterEntry) -> str:
        mark_as_read = ""
        if entry.options.silent:
            mark_as_read = addflag(SEEN_FLAG)
            if not is_unknown(path):
                mark_as_read += fileinto(UNREAD_FOLDER)

        labels = ""
        for label, keywords in (entry.labels or {}).items():
            labels += (
                IF_HEADER_CONTAINS + string_list(keywords) + " {" + code_block(fileinto(label)) + "\n}"
            )

        if not mark_as_read:
            return labels
        if not labels:
            return mark_as_read

        # An else only binds to the last if, so several labels are wrapped
        # in one test on all of their keywords.
        if len(entry.labels) > 1:
            all_keywords = sorted({k for keywords in entry.labels.values() for k in keywords})
            labels = IF_HEADER_CONTAINS + string_list(all_keywords) + " {" + code_block(labels) + "\n}"
        return labels + " else {" + code_block(mark_as_read) + "\n}"
