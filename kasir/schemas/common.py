from decimal import Decimal


def decimal_two_places(v):
    """Format Decimal for JSON with 2 decimal places (e.g. 8.00, 1840.00)."""
    if v is None:
        return None
    d = Decimal(str(v))
    return str(d.quantize(Decimal("0.01")))
