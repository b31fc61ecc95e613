"""Assembles compiled domains into one Sieve script.

Each domain becomes one branch of an outer chain gated on the envelope
domain; the prefix text is prepended verbatim.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sievegen.generators.domain_generator import DomainGenerator
from sievegen.schemas.config import DomainConfig
from sievegen.sieve import code_block, quote

logger = logging.getLogger(__name__)


class SieveAssembler:
    """Compiles a sequence of domain configs.

    Usage::

        assembler = SieveAssembler(prefix='require ["fileinto"];\\n')
        script = assembler.assemble(domains)

    Args:
        prefix: Text prepended verbatim to the generated chain.
        force_domain_as_first_folder: Treat every domain as if it set
            ``domain-as-first-folder``.
    """

    def __init__(self, prefix: str = "", force_domain_as_first_folder: bool = False) -> None:
        self.prefix = prefix
        self.force_domain_as_first_folder = force_domain_as_first_folder

    def build_domain(self, config: DomainConfig) -> DomainGenerator:
        """Walk one domain's tree into its two rule sets."""
        generator = DomainGenerator(
            config.domain,
            domain_as_first_folder=(
                config.options.domain_as_first_folder or self.force_domain_as_first_folder
            ),
            secrets=config.options.secret_suffixes(),
        )
        return generator.generate(config.tree)

    def assemble(self, domains: Iterable[DomainConfig]) -> str:
        """Return the full script. Raises ``SieveConfigError`` before emitting anything."""
        sieve_code = ""
        for i, config in enumerate(domains):
            generator = self.build_domain(config)
            logger.info(
                "Compiled @%s: %d custom filter(s), %d generic filter(s)",
                config.domain,
                len(generator.custom_filter_generator),
                len(generator.generic_filter_generator),
            )
            sieve_code += (
                f"\n# @{config.domain}"
                + ("\nif" if i == 0 else "\nelsif")
                + f' envelope :domain :is "to" {quote(config.domain)} {{'
                + code_block(generator.render())
                + "\n}"
            )
        return self.prefix + sieve_code
