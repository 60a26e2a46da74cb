from .policy import (
    TaxQuote,
    quote,
    tax_amount,
    is_eu_country,
    currency_for_country,
    TAX_RATES,
)

__all__ = [
    "TaxQuote",
    "quote",
    "tax_amount",
    "is_eu_country",
    "currency_for_country",
    "TAX_RATES",
]
