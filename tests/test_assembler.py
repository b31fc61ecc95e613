"""Tests for multi-domain assembly (sievegen/generators/assembler.py)."""

import pytest

from sievegen.generators.assembler import SieveAssembler
from sievegen.loader import parse_sieve_config
from sievegen.schemas.config import SieveConfigError


class TestAssemble:
    def test_end_to_end_single_domain(self):
        domains = parse_sieve_config({"example.com": {"Bills": {"Electricity": "alice"}}})
        assert SieveAssembler().assemble(domains) == r"""
# @example.com
if envelope :domain :is "to" "example.com" {
    # Custom filters
    if envelope :localpart :matches "to" ["alice"] {
        fileinto "Bills";
        fileinto "Bills/Electricity";
    }
    # Generic filters
    elsif envelope :localpart :matches "to" ["electricity","electricity.*"] {
        fileinto "Bills";
        fileinto "Bills/Electricity";
    } elsif envelope :localpart :matches "to" ["bills","bills.*"] {
        fileinto "Bills";
    } else {
        addflag "\\Seen";
        fileinto "Unknown";
    }
}"""

    def test_domains_chained_with_elsif_in_file_order(self):
        domains = parse_sieve_config({"b.org": {"B": "b"}, "a.org": {"A": "a"}})
        text = SieveAssembler().assemble(domains)
        assert '\n# @b.org\nif envelope :domain :is "to" "b.org" {' in text
        assert '\n}\n# @a.org\nelsif envelope :domain :is "to" "a.org" {' in text
        assert text.index("b.org") < text.index("a.org")
        assert text.endswith("\n}")

    def test_comments_never_hide_code(self):
        domains = parse_sieve_config(
            {
                "a.org": {"A": {"B": "b"}, "Unknown": "junk"},
                "b.org": {"C": ""},
                "c.org": {"D": {"localparts": "d", "labels": {"x": "k"}}},
            }
        )
        text = SieveAssembler().assemble(domains)
        comment_lines = [line.strip() for line in text.splitlines() if line.strip().startswith("#")]
        assert comment_lines == [
            "# @a.org",
            "# Custom filters",
            "# Generic filters",
            "# @b.org",
            "# Generic filters",
            "# @c.org",
            "# Custom filters",
            "# Generic filters",
        ]
        assert all("elsif" not in line and "{" not in line for line in comment_lines)
        code = "\n".join(line for line in text.splitlines() if not line.strip().startswith("#"))
        depth = 0
        for char in code:
            depth += {"{": 1, "}": -1}.get(char, 0)
            assert depth >= 0
        assert depth == 0
        assert code.count('elsif envelope :domain :is "to"') == 2

    def test_prefix_prepended_verbatim(self):
        prefix = 'require ["fileinto", "imap4flags", "envelope"];\n'
        domains = parse_sieve_config({"example.com": {"A": "a"}})
        text = SieveAssembler(prefix=prefix).assemble(domains)
        assert text.startswith(prefix + "\n# @example.com\nif")

    def test_no_domains(self):
        assert SieveAssembler(prefix="# only\n").assemble([]) == "# only\n"

    def test_domain_option_first_folder(self):
        domains = parse_sieve_config(
            {
                "a.org": {"options": {"domain-as-first-folder": True}, "A": "a"},
                "b.org": {"B": "b"},
            }
        )
        text = SieveAssembler().assemble(domains)
        assert 'fileinto "@a.org/A";' in text
        assert 'fileinto "B";' in text

    def test_force_first_folder(self):
        domains = parse_sieve_config({"a.org": {"A": "a"}, "b.org": {"B": "b"}})
        text = SieveAssembler(force_domain_as_first_folder=True).assemble(domains)
        assert 'fileinto "@a.org/A";' in text
        assert 'fileinto "@b.org/B";' in text

    def test_domains_are_independent(self):
        forced = SieveAssembler(force_domain_as_first_folder=True)
        plain = SieveAssembler()
        domains = parse_sieve_config({"a.org": {"A": "a"}})
        assert forced.assemble(domains) != plain.assemble(domains)
        assert plain.assemble(domains) == plain.assemble(domains)

    def test_secrets_from_domain_options(self):
        domains = parse_sieve_config({"a.org": {"options": {"secrets": "+s"}, "A": ""}})
        assert '["a+s","a+s.*"]' in SieveAssembler().assemble(domains)

    def test_error_carries_domain(self):
        domains = parse_sieve_config({"a.org": {"A": "a"}, "b.org": {"B": {}}})
        with pytest.raises(SieveConfigError) as exc_info:
            SieveAssembler().assemble(domains)
        assert exc_info.value.domain == "b.org"
        assert exc_info.value.path == "B"
        assert "b.org" in str(exc_info.value)


class TestBuildDomain:
    def test_counts(self):
        [domain] = parse_sieve_config({"a.org": {"A": {"B": "b"}, "C": ""}})
        g = SieveAssembler().build_domain(domain)
        assert len(g.custom_filter_generator) == 1
        assert len(g.generic_filter_generator) == 3
