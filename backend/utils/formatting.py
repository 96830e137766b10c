from decimal import Decimal, ROUND_HALF_UP

CURRENCY_CODE = "IQD"


def format_currency(amount: Decimal, decimals: int = 0) -> str:
    """Format an amount as e.g. ``IQD 1,250,000`` or ``-IQD 300``."""
    if amount is None:
        amount = Decimal("0")
    amount = Decimal(amount)
    quantum = Decimal(1).scaleb(-decimals)
    rounded = amount.copy_abs().quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 and rounded != 0 else ""
    return f"{sign}{CURRENCY_CODE} {rounded:,.{decimals}f}"


UNITS = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten", "Eleven", "Twelve",
         "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen"]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]
SCALES = [(10 ** 9, "Billion"), (10 ** 6, "Million"), (10 ** 3, "Thousand")]


def _convert_hundreds(num: int) -> str:
    if num < 20:
        return UNITS[num]
    if num < 100:
        return TENS[num // 10] + (" " + UNITS[num % 10] if num % 10 else "")
    return UNITS[num // 100] + " Hundred" + (" " + _convert_hundreds(num % 100) if num % 100 else "")


def _convert(num: int) -> str:
    for scale, label in SCALES:
        if num >= scale:
            rest = num % scale
            return _convert(num // scale) + f" {label}" + (" " + _convert(rest) if rest else "")
    return _convert_hundreds(num)


def amount_to_words(n: Decimal) -> str:
    """Spell out a whole-dinar amount, e.g. ``Two Thousand Five Hundred Iraqi Dinars``."""
    if n is None:
        return ""
    n = Decimal(n).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if n < 0:
        return "Minus " + amount_to_words(-n)
    if n == 0:
        return "Zero Iraqi Dinars"
    return _convert(int(n)) + " Iraqi Dinars"
