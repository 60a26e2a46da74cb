"""
Tax quote API route.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query

from application.dtos.payments import TaxQuoteResponse
from domain.tax import policy as tax_policy


router = APIRouter(prefix="/tax", tags=["Tax"])


@router.get("/quote", response_model=TaxQuoteResponse, response_model_by_alias=True)
async def get_tax_quote(country: Optional[str] = Query(default=None, max_length=16)):
    quote = tax_policy.quote(country)
    return TaxQuoteResponse(
        country_code=quote.country_code,
        rate=float(quote.rate),
        label=quote.label,
        display=quote.percentage,
        is_eu=tax_policy.is_eu_country(quote.country_code),
        currency=tax_policy.currency_for_country(quote.country_code),
    )
