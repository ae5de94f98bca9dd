import pytest

from coinledger.errors import ValidationError
from coinledger.identity import clean_username, normalize_username, parse_virtual_id, placeholder_email


class TestNormalization:
    def test_trims_and_lowercases(self):
        assert normalize_username("  Alice ") == "alice"
        assert normalize_username("alice") == normalize_username("ALICE\t")

    def test_none_becomes_empty(self):
        assert normalize_username(None) == ""
        assert clean_username(None) == ""

    def test_clean_keeps_casing(self):
        assert clean_username("  Bob Smith ") == "Bob Smith"


class TestPlaceholderEmail:
    def test_strips_whitespace_and_symbols(self):
        taken = set()
        assert placeholder_email("Lucky Joe!", taken) == "luckyjoe@noemail.local"
        assert "luckyjoe@noemail.local" in taken

    def test_collisions_get_numeric_suffix(self):
        taken = {"bob@noemail.local", "bob+1@noemail.local"}
        assert placeholder_email("Bob", taken) == "bob+2@noemail.local"
        assert placeholder_email("b.o.b", taken) == "bob+3@noemail.local"

    def test_keeps_unicode_letters(self):
        assert placeholder_email("Élodie Ünal", set()) == "élodieünal@noemail.local"

    def test_symbol_only_name_falls_back(self):
        assert placeholder_email("***", set()) == "user@noemail.local"


class TestVirtualIds:
    def test_plain_id(self):
        assert parse_virtual_id("42") is None

    def test_virtual_id(self):
        assert parse_virtual_id("virtual: Carol ") == "Carol"

    def test_empty_virtual_id_rejected(self):
        with pytest.raises(ValidationError):
            parse_virtual_id("virtual:   ")
