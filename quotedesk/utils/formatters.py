"""
Formatting helpers for documents and messages.
Numbers and dates in Indian style.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Optional, Union


def money_in(value: Union[int, float, Decimal, str, None], decimals: Optional[int] = None) -> str:
    """
    Format an amount with Indian digit grouping:
    - Last three digits grouped, then groups of two (lakh/crore)
    - Decimal point is '.'
    - Insignificant decimals are dropped unless `decimals` is given

    Examples:
        money_in(1500) -> "1,500"
        money_in(100000) -> "1,00,000"
        money_in(12345678.5) -> "1,23,45,678.5"
        money_in(120000, decimals=2) -> "1,20,000.00"
        money_in(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    if decimals is not None:
        num = num.quantize(Decimal(10) ** -decimals)

    num_str = f"{num:f}"

    if '.' in num_str:
        integer_part, decimal_part = num_str.split('.')
        if decimals is None:
            decimal_part = decimal_part.rstrip('0')
    else:
        integer_part = num_str
        decimal_part = ""

    if integer_part.startswith('-'):
        sign_str = '-'
        integer_part = integer_part[1:]
    else:
        sign_str = ''

    # Last 3 digits, then pairs
    head, tail = integer_part[:-3], integer_part[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    groups.append(tail)
    integer_formatted = ','.join(groups)

    if decimal_part:
        return f"{sign_str}{integer_formatted}.{decimal_part}"
    return f"{sign_str}{integer_formatted}"


def rupees(value, decimals: Optional[int] = None) -> str:
    """Amount with the rupee prefix used on documents."""
    formatted = money_in(value, decimals)
    return formatted if formatted == "-" else f"Rs. {formatted}"


def date_in(value: Union[date, datetime, str, None]) -> str:
    """
    Date as DD/MM/YYYY. ISO strings (as stored in snapshots) are accepted.

    Examples:
        date_in(date(2024, 3, 5)) -> "05/03/2024"
        date_in("2024-03-05T10:00:00") -> "05/03/2024"
        date_in(None) -> "-"
    """
    if not value:
        return "-"
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return value.strftime('%d/%m/%Y')
