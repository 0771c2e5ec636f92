#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

import pytest

from idbridgeservicelayer.auth.identity import (
    CertificateIdentityParser,
    is_valid_principal,
    normalize_serial,
    validate_principal,
)
from idbridgeservicelayer.exceptions.catalog import (
    MalformedSerialException,
    ValidationException,
)

TWO_SUBJECTS = "CN=alice@fadalax.tech,CN=bob@fadalax.tech"
PARSER = CertificateIdentityParser()


class TestPrincipal:
    @pytest.mark.parametrize("principal", ["alice", "Bob42", "0", "admin"])
    def test_valid(self, principal):
        assert is_valid_principal(principal)
        assert validate_principal(principal) == principal

    @pytest.mark.parametrize(
        "principal",
        ["", None, "al ice", "alice/../bob", "alice\n", "bob@x", "é"],
    )
    def test_invalid(self, principal):
        assert not is_valid_principal(principal)
        with pytest.raises(ValidationException) as e:
            validate_principal(principal)
        assert e.value.details[0].field == "principal"


class TestNormalizeSerial:
    @pytest.mark.parametrize(
        "serial",
        ["3a:1f:00", "3a-1f-00", "3A:1F", "1:2:3"],
    )
    def test_delimited_serial_passes_through(self, serial):
        assert normalize_serial(serial) == serial

    def test_bare_serial_is_split_in_pairs(self):
        assert normalize_serial("3a1f00bc") == "3a:1f:00:bc"

    @pytest.mark.parametrize(
        "serial", ["3a1f00bc", "00", "ABCDEF0123456789", "0a" * 20]
    )
    def test_bare_serial_round_trip(self, serial):
        assert "".join(normalize_serial(serial).split(":")) == serial

    @pytest.mark.parametrize("serial", ["a", "3a1", "0123456789abcde"])
    def test_odd_length_bare_serial_is_malformed(self, serial):
        with pytest.raises(MalformedSerialException):
            normalize_serial(serial)

    @pytest.mark.parametrize(
        "serial", ["", "3a/1f", "../../sys", "3a:1f?x", "zz", "3a 1f"]
    )
    def test_unexpected_characters_are_malformed(self, serial):
        with pytest.raises(MalformedSerialException) as e:
            normalize_serial(serial)
        assert e.value.serial == serial

    def test_malformed_serial_is_a_validation_error(self):
        with pytest.raises(ValidationException):
            normalize_serial("xyz")


class TestCertificateIdentityParser:
    def test_first_subject_wins_without_hint(self):
        assert PARSER.parse([TWO_SUBJECTS], "") == "alice"

    def test_hint_selects_subject(self):
        assert PARSER.parse([TWO_SUBJECTS], "bob") == "bob"

    def test_hint_without_matching_subject(self):
        assert PARSER.parse([TWO_SUBJECTS], "carol") is None

    def test_none_hint_is_no_hint(self):
        assert PARSER.parse([TWO_SUBJECTS], None) == "alice"

    def test_multiple_header_values_are_joined(self):
        assert (
            PARSER.parse(
                ["CN=alice@fadalax.tech", "CN=bob@fadalax.tech"], "bob"
            )
            == "bob"
        )

    def test_surrounding_whitespace_is_ignored(self):
        assert (
            PARSER.parse(
                ["CN=alice@fadalax.tech , CN=bob@fadalax.tech"], "bob"
            )
            == "bob"
        )

    def test_no_header(self):
        assert PARSER.parse([], "") is None

    @pytest.mark.parametrize(
        "value",
        [
            "CN=alice@evil.tech",
            "CN=alice@fadalax.tech.evil",
            "CN=alice@fadalaxXtech",
            "CN=al ice@fadalax.tech",
            "O=imovies,CN=@fadalax.tech",
            "xCN=alice@fadalax.tech",
        ],
    )
    def test_non_matching_fragments_are_discarded(self, value):
        assert PARSER.parse([value], "") is None

    def test_discarded_fragment_does_not_hide_later_match(self):
        assert (
            PARSER.parse(
                ["CN=mallory@evil.tech,CN=alice@fadalax.tech"], ""
            )
            == "alice"
        )

    def test_custom_domain(self):
        parser = CertificateIdentityParser("example.org")
        assert parser.parse(["CN=alice@example.org"]) == "alice"
        assert parser.parse(["CN=alice@fadalax.tech"]) is None
