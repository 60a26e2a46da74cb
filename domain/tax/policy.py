"""
税率策略 - 国家代码到税率/标签的纯函数映射

业务规则：
1. 全系统只有这一张税率表（历史上存在多张不一致的表，以此为准）
2. 美国不计算州销售税，统一返回 0
3. 未知/空国家一律按 0 税率处理，从不抛异常
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from domain.common.money import round_minor


NO_TAX_LABEL = "No VAT/Tax"
US_LABEL = "No Sales Tax"


@dataclass(frozen=True)
class TaxQuote:
    """税费报价（不可变，每次请求重新计算）"""

    country_code: Optional[str]
    rate: Decimal
    label: str

    @property
    def percentage(self) -> str:
        """展示用百分比字符串，例如 19%"""
        return f"{(self.rate * 100).normalize():f}%"


# 欧盟成员国标准增值税率 + 标签（当地语言）
EU_VAT_RATES: dict[str, tuple[str, str]] = {
    "AT": ("0.20", "MwSt. 20%"),
    "BE": ("0.21", "BTW 21%"),
    "BG": ("0.20", "ДДС 20%"),
    "HR": ("0.25", "PDV 25%"),
    "CY": ("0.19", "ΦΠΑ 19%"),
    "CZ": ("0.21", "DPH 21%"),
    "DK": ("0.25", "MOMS 25%"),
    "EE": ("0.20", "KM 20%"),
    "FI": ("0.24", "ALV 24%"),
    "FR": ("0.20", "TVA 20%"),
    "DE": ("0.19", "MwSt. 19%"),
    "GR": ("0.24", "ΦΠΑ 24%"),
    "HU": ("0.27", "ÁFA 27%"),
    "IE": ("0.23", "VAT 23%"),
    "IT": ("0.22", "IVA 22%"),
    "LV": ("0.21", "PVN 21%"),
    "LT": ("0.21", "PVM 21%"),
    "LU": ("0.17", "TVA 17%"),
    "MT": ("0.18", "VAT 18%"),
    "NL": ("0.21", "BTW 21%"),
    "PL": ("0.23", "VAT 23%"),
    "PT": ("0.23", "IVA 23%"),
    "RO": ("0.19", "TVA 19%"),
    "SK": ("0.20", "DPH 20%"),
    "SI": ("0.22", "DDV 22%"),
    "ES": ("0.21", "IVA 21%"),
    "SE": ("0.25", "MOMS 25%"),
}

TAX_RATES: dict[str, TaxQuote] = {
    code: TaxQuote(country_code=code, rate=Decimal(rate), label=label)
    for code, (rate, label) in EU_VAT_RATES.items()
}
TAX_RATES["GB"] = TaxQuote(country_code="GB", rate=Decimal("0.20"), label="VAT 20%")
TAX_RATES["US"] = TaxQuote(country_code="US", rate=Decimal("0"), label=US_LABEL)


def normalize_country(country_code: Optional[str]) -> Optional[str]:
    if not country_code or not isinstance(country_code, str):
        return None
    code = country_code.strip().upper()
    if not code or code == "UNKNOWN":
        return None
    return code


def quote(country_code: Optional[str]) -> TaxQuote:
    """根据国家代码返回税费报价（大小写不敏感）"""
    code = normalize_country(country_code)
    if code is None:
        return TaxQuote(country_code=None, rate=Decimal("0"), label=NO_TAX_LABEL)
    known = TAX_RATES.get(code)
    if known is not None:
        return known
    return TaxQuote(country_code=code, rate=Decimal("0"), label=NO_TAX_LABEL)


def tax_amount(base_amount: int, tax_quote: TaxQuote) -> int:
    return round_minor(Decimal(base_amount) * tax_quote.rate)


def is_eu_country(country_code: Optional[str]) -> bool:
    code = normalize_country(country_code)
    return code is not None and code in EU_VAT_RATES


def currency_for_country(country_code: Optional[str]) -> str:
    """欧盟国家使用 EUR，其它国家使用 USD"""
    return "eur" if is_eu_country(country_code) else "usd"
