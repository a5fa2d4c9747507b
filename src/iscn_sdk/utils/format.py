"""
Formatting utilities for LIKE amounts.
"""

from decimal import Decimal

LIKE_DECIMALS = 9

def like_to_nanolike(like: str | Decimal | float | int) -> int:
    """
    Convert a LIKE amount to nanolike.

    Examples:
        >>> like_to_nanolike(1.0)
        1000000000
        >>> like_to_nanolike("0.5")
        500000000
    """
    if isinstance(like, str):
        like_decimal = Decimal(like)
    elif isinstance(like, (float, int)):
        like_decimal = Decimal(str(like))
    elif isinstance(like, Decimal):
        like_decimal = like
    else:
        raise TypeError("like must be of type str, Decimal, float, or int")

    return int(like_decimal * (Decimal(10) ** LIKE_DECIMALS))

def nanolike_to_like(nanolike: str | int, decimals: int = LIKE_DECIMALS) -> Decimal:
    """
    Convert nanolike to LIKE.

    Examples:
        >>> nanolike_to_like("1000000000")
        Decimal('1')
        >>> nanolike_to_like(1030240)
        Decimal('0.00103024')
    """
    return Decimal(str(nanolike)) / (Decimal(10) ** decimals)

def format_like_from_nanolike(nanolike: str | int, decimals: int = LIKE_DECIMALS) -> str:
    """
    Examples:
        >>> format_like_from_nanolike("1030240")
        '0.001030240 LIKE'
    """
    return f"{nanolike_to_like(nanolike, decimals):.{decimals}f} LIKE"
