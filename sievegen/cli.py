"""CLI entry point for sievegen.

Commands:
    sievegen build  : compile the folder config into a Sieve script
    sievegen check  : compile without writing and summarize each domain
"""

import json
import logging
import sys

import click

from sievegen.config import CONFIG_PATH, FORCE_DOMAIN_FOLDER, OUTPUT_PATH, PREFIX_PATH

logger = logging.getLogger("sievegen")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """sievegen: compile a JSON folder tree into a Sieve mail filter."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_domains(config: str):
    """Load the config or exit with a readable error."""
    from sievegen.loader import read_sieve_config
    from sievegen.schemas.config import SieveConfigError

    try:
        return read_sieve_config(config)
    except FileNotFoundError:
        click.echo(f"Error: Config file not found: {config}", err=True)
        sys.exit(1)
    except OSError as exc:
        click.echo(f"Error: Cannot read config file {config}: {exc.strerror or exc}", err=True)
        sys.exit(1)
    except UnicodeDecodeError as exc:
        click.echo(f"Error: Config file {config} is not valid UTF-8: {exc.reason}", err=True)
        sys.exit(1)
    except json.JSONDecodeError as exc:
        click.echo(f"Error: Config file {config} is not valid JSON: {exc}", err=True)
        sys.exit(1)
    except SieveConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ------------------------------------------------------------------
# sievegen build
# ------------------------------------------------------------------


@cli.command()
@click.option("--config", "-c", default=CONFIG_PATH, show_default=True, help="Folder config JSON file.")
@click.option(
    "--prefix",
    "-p",
    default=PREFIX_PATH,
    show_default=True,
    help="Sieve file prepended to the output (ignored if missing).",
)
@click.option(
    "--output",
    "-o",
    default=OUTPUT_PATH,
    show_default=True,
    help="Output file, or directory to write filter.sieve into.",
)
@click.option(
    "--force-domain-folder/--no-force-domain-folder",
    default=FORCE_DOMAIN_FOLDER,
    show_default=True,
    help="Prefix every folder with @<domain>/ for all domains.",
)
def build(config: str, prefix: str, output: str, force_domain_folder: bool) -> None:
    """Compile the folder config into a Sieve script."""
    from sievegen.generators.assembler import SieveAssembler
    from sievegen.loader import read_prefix, write_output
    from sievegen.schemas.config import SieveConfigError

    domains = _load_domains(config)
    assembler = SieveAssembler(
        prefix=read_prefix(prefix),
        force_domain_as_first_folder=force_domain_folder,
    )
    try:
        content = assembler.assemble(domains)
    except SieveConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    try:
        target = write_output(output, content)
    except OSError:
        logger.exception("Writing %s failed", output)
        click.echo(f"Write to {output} failed, dumping final content to stdout...", err=True)
        click.echo(content)
        return
    click.echo(f"Wrote {len(domains)} domain(s) to {target}")


# ------------------------------------------------------------------
# sievegen check
# ------------------------------------------------------------------


@cli.command()
@click.option("--config", "-c", default=CONFIG_PATH, show_default=True, help="Folder config JSON file.")
def check(config: str) -> None:
    """Compile without writing and summarize each domain."""
    from sievegen.generators.assembler import SieveAssembler
    from sievegen.schemas.config import SieveConfigError

    domains = _load_domains(config)
    assembler = SieveAssembler()
    for domain in domains:
        try:
            generator = assembler.build_domain(domain)
        except SieveConfigError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)
        click.echo(
            f"@{domain.domain}: "
            f"{len(generator.custom_filter_generator)} custom, "
            f"{len(generator.generic_filter_generator)} generic"
        )
    click.echo("Config OK.")
