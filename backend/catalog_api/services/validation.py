import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email

from catalog_api.core.errors import ValidationError

SKU_PATTERN = re.compile(r"^[A-Z]{3}\d{3}$")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def clean_text(value: Optional[str], field: str, max_len: int, required: bool = False) -> Optional[str]:
    if value is None or not str(value).strip():
        if required:
            raise ValidationError(f"{field} is required", field=field, value=value)
        return None
    value = str(value).strip()
    if len(value) > max_len:
        raise ValidationError(f"{field} must be at most {max_len} characters", field=field, value=value)
    return value


def clean_price(value: Any) -> Decimal:
    if value is None:
        raise ValidationError("price is required", field="price")
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("price must be a number", field="price", value=value)
    if not price.is_finite() or price <= 0:
        raise ValidationError("price must be greater than zero", field="price", value=value)
    # 99.990 is fine, 99.999 is not
    if price.normalize().as_tuple().exponent < -2:
        raise ValidationError("price must have at most 2 decimal places", field="price", value=value)
    return price.quantize(Decimal("0.01"))


def clean_stock(value: Any) -> int:
    if value is None:
        return 0
    if not _is_int(value):
        raise ValidationError("stock must be an integer", field="stock", value=value)
    if value < 0:
        raise ValidationError("stock cannot be negative", field="stock", value=value)
    return int(value)


def clean_quantity(value: Any, field: str = "quantity") -> int:
    if not _is_int(value) or value <= 0:
        raise ValidationError(f"{field} must be greater than 0", field=field, value=value)
    return int(value)


def clean_sku(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    sku = value.strip()
    if not SKU_PATTERN.match(sku):
        raise ValidationError(
            "SKU must be 3 uppercase letters followed by 3 digits (e.g. ABC123)",
            field="sku",
            value=value,
        )
    return sku


def clean_email(value: Optional[str], field: str = "email") -> Optional[str]:
    if value is None or not value.strip():
        return None
    try:
        return validate_email(value.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"{field} is not a valid email address", field=field, value=value) from e


def clean_limit(value: Any) -> int:
    if not _is_int(value) or value <= 0:
        raise ValidationError("limit must be greater than 0", field="limit", value=value)
    return int(value)
