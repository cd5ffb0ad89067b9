"""
Currency conversion endpoints
"""

from fastapi import APIRouter, HTTPException

from .schemas import ConvertRequest, MoneyModel, parse_currency
from ..currency import CurrencyConverter, ExchangeRateService


router = APIRouter()

# No live sources are wired in; the service answers from the static table
rate_service = ExchangeRateService()


@router.get("/rates/{base}")
async def get_rates(base: str):
    """Exchange rates relative to a base currency"""
    try:
        table = rate_service.get_rates(parse_currency(base))
        return {
            "base": table.base.code,
            "source": table.source,
            "rates": {currency.code: str(rate) for currency, rate in table.rates.items()}
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/convert")
async def convert(request: ConvertRequest):
    """Convert an amount into another currency"""
    try:
        money = request.amount.to_money()
        to_currency = parse_currency(request.to_currency)
        converter = CurrencyConverter(rate_service.get_rates(money.currency))

        return {
            "amount": MoneyModel.from_money(money),
            "converted": MoneyModel.from_money(converter.convert(money, to_currency)),
            "rate": str(converter.get_rate(money.currency, to_currency))
        }

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
