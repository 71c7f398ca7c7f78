import pytest

from dealbrief.errors import InputValidationError
from dealbrief.input.normalizer import (
    canonicalize_domain,
    canonicalize_name,
    mentions_entity,
    normalize_input,
)


class TestCanonicalizeName:
    @pytest.mark.parametrize("raw, expected", [
        ("Acme Widgets, Inc.", "acme widgets"),
        ("Foo Holdings Co. Ltd", "foo holdings"),
        ("BAR CORPORATION", "bar"),
        ("Smith & Sons LLC", "smith & sons"),
        ("  Spaced   Out   Inc  ", "spaced out"),
        ("Company", "company"),
        ("Inc", "inc"),
    ])
    def test_examples(self, raw, expected):
        assert canonicalize_name(raw) == expected

    @pytest.mark.parametrize("raw", [
        "Acme Widgets, Inc.", "Foo Co Co Ltd", "Globex Corporation", "Initech", "A.B.C. GmbH",
    ])
    def test_idempotent(self, raw):
        once = canonicalize_name(raw)
        assert canonicalize_name(once) == once

    def test_strips_repeated_suffixes(self):
        assert canonicalize_name("Foo Co Co Ltd") == "foo"


class TestCanonicalizeDomain:
    @pytest.mark.parametrize("raw, expected", [
        ("acme.com", "acme.com"),
        ("https://www.Acme.com/about?x=1", "acme.com"),
        ("WWW.ACME.COM.", "acme.com"),
        ("http://user@acme.co.uk:8080/", "acme.co.uk"),
    ])
    def test_examples(self, raw, expected):
        assert canonicalize_domain(raw) == expected


class TestNormalizeInput:
    def test_builds_identity(self):
        identity = normalize_input({
            "company_name": "  Acme Widgets, Inc. ",
            "domain": "https://www.acme.com/",
            "owner_names": ["Jane Doe", "jane doe", " John Roe "],
        })
        assert identity.raw_company_name == "Acme Widgets, Inc."
        assert identity.canonical_name == "acme widgets"
        assert identity.domain == "acme.com"
        assert identity.owner_names == ("Jane Doe", "John Roe")

    def test_owner_names_optional(self):
        identity = normalize_input({"company_name": "Acme", "domain": "acme.com"})
        assert identity.owner_names == ()

    @pytest.mark.parametrize("raw, field", [
        ({"company_name": "", "domain": "acme.com"}, "company_name"),
        ({"company_name": "   ", "domain": "acme.com"}, "company_name"),
        ({"domain": "acme.com"}, "company_name"),
        ({"company_name": "Acme", "domain": "localhost"}, "domain"),
        ({"company_name": "Acme", "domain": 42}, "domain"),
        ({"company_name": "Acme", "domain": "acme.com", "owner_names": [""]}, "owner_names"),
        ({"company_name": "Acme", "domain": "acme.com", "owner_names": "Jane"}, "owner_names"),
        ({"company_name": "!!!", "domain": "acme.com"}, "company_name"),
    ])
    def test_rejects_malformed_input(self, raw, field):
        with pytest.raises(InputValidationError) as exc_info:
            normalize_input(raw)
        assert exc_info.value.errors
        assert any(err["loc"][0] == field for err in exc_info.value.errors)

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_input({})


class TestMentionsEntity:
    def test_matches_canonical_name_after_normalization(self, identity):
        assert mentions_entity("ACME WIDGETS, INC. sued over recall", identity)
        assert mentions_entity("Lawsuit against Acme-Widgets", identity) is False
        assert mentions_entity("Lawsuit against Acme  Widgets!", identity)

    def test_matches_domain(self, identity):
        assert mentions_entity("Credentials for admin@ACME.com leaked", identity)

    def test_rejects_unrelated_text(self, identity):
        assert not mentions_entity("Widgets are great", identity)
        assert not mentions_entity("", identity)
