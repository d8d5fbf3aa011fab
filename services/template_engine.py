"""
Template placeholder handling for memo generation.

Templates are plain text (usually Markdown) with ``{{variable}}`` placeholders.
This module finds the placeholders, fills them from a field map, and infers
field values from a deal record.
"""
import re
from typing import Any, Dict, List, Optional

PLACEHOLDER_PATTERN = re.compile(r'\{\{(\w+)\}\}', re.ASCII)


def extract_variables(content: Optional[str]) -> List[str]:
    """Return placeholder names in order of first appearance, without duplicates"""
    if not content:
        return []

    seen = {}
    for match in PLACEHOLDER_PATTERN.finditer(content):
        seen.setdefault(match.group(1), None)
    return list(seen)


def fill_template(content: Optional[str], field_values: Optional[Dict[str, Any]]) -> str:
    """
    Substitute ``{{key}}`` with its value for every entry in field_values.

    Empty values become ``[key]`` so the gap stays visible in the document.
    Placeholders without an entry are left as they are.
    """
    content = content or ''
    for key, value in (field_values or {}).items():
        content = content.replace('{{' + key + '}}', str(value) if value else f'[{key}]')
    return content


def field_label(name: str) -> str:
    """loan_amount -> Loan Amount"""
    return re.sub(r'\b\w', lambda m: m.group(0).upper(), name.replace('_', ' '))


def _format_number(value) -> str:
    # 7.0 -> "7", 6.25 -> "6.25"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_currency(value) -> str:
    """1250000 -> $1,250,000; 1250.5 -> $1,250.5"""
    amount = float(value)
    if amount.is_integer():
        return f"${int(amount):,}"
    return '$' + f"{amount:,.3f}".rstrip('0').rstrip('.')


def deal_field_values(deal: Dict[str, Any]) -> Dict[str, str]:
    """Map inferable field names to display strings for a deal"""
    loan_amount = deal.get('loan_amount')
    interest_rate = deal.get('interest_rate')
    term_months = deal.get('term_months')

    return {
        'borrower_name': deal.get('borrower_name') or '',
        'loan_amount': _format_currency(loan_amount) if loan_amount else '',
        'interest_rate': f"{_format_number(interest_rate)}%" if interest_rate else '',
        'term_months': _format_number(term_months) if term_months else '',
        'collateral_description': deal.get('collateral_description') or '',
        'deal_number': deal.get('deal_number') or '',
        'stage': deal.get('stage') or '',
        'priority': deal.get('priority') or 'medium',
        'assigned_to': deal.get('assigned_to') or '',
        'expected_close_date': deal.get('expected_close_date') or '',
        'borrower_contact': deal.get('borrower_contact') or '',
    }


def infer_field_values(deal: Dict[str, Any], template: Dict[str, Any]) -> Dict[str, str]:
    """
    Pre-fill a template's default fields from the deal.

    Field names are matched case-insensitively against the deal mapping; the
    returned keys keep the template's own spelling. Fields with no value on the
    deal are omitted.
    """
    mappings = deal_field_values(deal)
    inferred = {}
    for field in template.get('default_fields') or []:
        value = mappings.get(field.lower())
        if value:
            inferred[field] = value
    return inferred
