"""Input validation and sanitization utilities"""
import re
from typing import Any, Dict, List, Optional


def sanitize_string(value: Any, max_length: Optional[int] = None, allow_empty: bool = True,
                    strip: bool = True) -> Optional[str]:
    """Sanitize string input"""
    if value is None:
        return None if allow_empty else ""

    sanitized = str(value)
    if strip:
        sanitized = sanitized.strip()

    # Remove null bytes and control characters (except newlines and tabs)
    sanitized = re.sub(r'[\x00-\x08\x0b-\x0c\x0e-\x1f]', '', sanitized)

    # Enforce max length
    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized if (sanitized or allow_empty) else None


def validate_url(url: str) -> bool:
    """Validate URL format"""
    if not url:
        return False
    pattern = r'^https?://[^\s/$.?#].[^\s]*$'
    return bool(re.match(pattern, url))


def sanitize_list(value: Any, max_items: Optional[int] = None) -> List[str]:
    """Sanitize list input"""
    if not value:
        return []

    if not isinstance(value, list):
        return []

    sanitized = [sanitize_string(item) for item in value if item]

    if max_items and len(sanitized) > max_items:
        sanitized = sanitized[:max_items]

    return sanitized


def sanitize_string_map(value: Any, max_items: Optional[int] = None,
                        max_length: Optional[int] = None) -> Dict[str, str]:
    """Sanitize a flat {name: text} mapping such as memo field values"""
    if not value or not isinstance(value, dict):
        return {}

    sanitized = {}
    for key, item in value.items():
        if max_items and len(sanitized) >= max_items:
            break
        name = sanitize_string(key, max_length=100)
        if not name:
            continue
        sanitized[name] = '' if item is None else sanitize_string(item, max_length=max_length)

    return sanitized


def validate_enum(value: Any, allowed_values: List[str], case_sensitive: bool = True) -> Optional[str]:
    """Validate value is in allowed enum values"""
    if not value:
        return None

    str_value = str(value).strip()

    if not case_sensitive:
        str_value = str_value.lower()
        allowed_values = [v.lower() for v in allowed_values]

    return str_value if str_value in allowed_values else None


def sanitize_json_input(data: Dict[str, Any], schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sanitize JSON input based on schema

    Schema format:
    {
        'field_name': {
            'type': 'string' | 'text' | 'bool' | 'list' | 'map' | 'url' | 'enum',
            'required': bool,
            'max_length': int (for strings),
            'max_items': int (for lists and maps),
            'allowed_values': List[str] (for enum),
            'default': any
        }
    }

    'text' keeps leading/trailing whitespace (template and memo bodies) and
    raises instead of truncating when it is longer than max_length.
    Fields absent from data and without a default are left out of the result.
    """
    sanitized = {}

    for field_name, field_schema in schema.items():
        field_type = field_schema.get('type', 'string')
        required = field_schema.get('required', False)
        default = field_schema.get('default')

        value = data.get(field_name, default)

        # Check required fields
        if required and (value is None or value == ''):
            raise ValueError(f"Field '{field_name}' is required")

        # Skip None values unless required
        if value is None:
            continue

        # Validate and sanitize based on type
        if field_type == 'string':
            max_length = field_schema.get('max_length')
            sanitized[field_name] = sanitize_string(value, max_length=max_length)

        elif field_type == 'text':
            max_length = field_schema.get('max_length')
            text = sanitize_string(value, strip=False)
            if max_length and len(text) > max_length:
                raise ValueError(f"Field '{field_name}' exceeds maximum length of {max_length} characters")
            sanitized[field_name] = text

        elif field_type == 'bool':
            sanitized[field_name] = bool(value)

        elif field_type == 'list':
            max_items = field_schema.get('max_items')
            sanitized[field_name] = sanitize_list(value, max_items=max_items)

        elif field_type == 'map':
            max_items = field_schema.get('max_items')
            sanitized[field_name] = sanitize_string_map(value, max_items=max_items,
                                                        max_length=field_schema.get('max_length'))

        elif field_type == 'url':
            url = sanitize_string(value)
            if url and not validate_url(url):
                raise ValueError(f"Invalid URL format for field '{field_name}'")
            sanitized[field_name] = url

        elif field_type == 'enum':
            allowed_values = field_schema.get('allowed_values', [])
            enum_value = validate_enum(value, allowed_values)
            if enum_value is None:
                raise ValueError(f"Field '{field_name}' must be one of: {', '.join(allowed_values)}")
            sanitized[field_name] = enum_value

    return sanitized
