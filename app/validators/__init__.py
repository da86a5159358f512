"""
app/validators package marker.
"""

from app.validators.dataset_validator import DatasetValidator, parse_locale_number
from app.validators.record_sanitizer import sanitize_record, sanitize_value

__all__ = [
    "DatasetValidator",
    "parse_locale_number",
    "sanitize_record",
    "sanitize_value",
]
