from decimal import Decimal

import pytest

from domain.tax import policy


EU_CODES = [
    "AT", "BE", "BG", "HR", "CY", "CZ", "DK", "EE", "FI", "FR", "DE", "GR", "HU", "IE",
    "IT", "LV", "LT", "LU", "MT", "NL", "PL", "PT", "RO", "SK", "SI", "ES", "SE",
]


def test_eu_table_covers_every_member_state():
    assert sorted(policy.EU_VAT_RATES) == sorted(EU_CODES)


@pytest.mark.parametrize("code", EU_CODES)
def test_eu_quote_matches_table_and_rounds_half_up(code):
    quote = policy.quote(code)
    rate, label = policy.EU_VAT_RATES[code]
    assert quote.rate == Decimal(rate)
    assert quote.label == label
    assert policy.tax_amount(276000, quote) == int((Decimal(276000) * Decimal(rate)).to_integral_value())


@pytest.mark.parametrize(
    "code, rate, label",
    [
        ("DE", "0.19", "MwSt. 19%"),
        ("FR", "0.20", "TVA 20%"),
        ("FI", "0.24", "ALV 24%"),
        ("LU", "0.17", "TVA 17%"),
        ("GB", "0.20", "VAT 20%"),
    ],
)
def test_canonical_rates(code, rate, label):
    quote = policy.quote(code)
    assert quote.rate == Decimal(rate)
    assert quote.label == label


def test_us_has_no_sales_tax():
    quote = policy.quote("US")
    assert quote.rate == 0
    assert quote.label == "No Sales Tax"


@pytest.mark.parametrize("code", [None, "", "   ", "unknown", "UNKNOWN", "ZZ", "XX"])
def test_unknown_countries_are_untaxed(code):
    quote = policy.quote(code)
    assert quote.rate == 0
    assert quote.label == "No VAT/Tax"


def test_country_code_is_case_and_whitespace_insensitive():
    assert policy.quote(" de ") == policy.quote("DE")
    assert policy.quote("fr").country_code == "FR"


def test_tax_amount_rounds_half_up():
    quote = policy.quote("DE")
    # 50 * 0.19 = 9.5 -> 10
    assert policy.tax_amount(50, quote) == 10
    assert policy.tax_amount(276000, quote) == 52440


def test_percentage_display():
    assert policy.quote("DE").percentage == "19%"
    assert policy.quote("US").percentage == "0%"


def test_currency_hint():
    assert policy.currency_for_country("de") == "eur"
    assert policy.currency_for_country("GB") == "usd"
    assert policy.currency_for_country(None) == "usd"
    assert policy.is_eu_country("IE") is True
    assert policy.is_eu_country("US") is False
