"""Document template management for memo generation"""
import re
from datetime import datetime, timezone
from typing import Dict, List, Any

from config.database import get_supabase
from utils.validation import sanitize_json_input
from utils.logger import log_info

TEMPLATE_TYPES = ['credit_memo', 'ic_report', 'approval_letter', 'term_sheet', 'commitment_letter', 'custom']

TEMPLATE_TYPE_LABELS = {
    'credit_memo': 'Credit Memo',
    'ic_report': 'IC Report',
    'approval_letter': 'Approval Letter',
    'term_sheet': 'Term Sheet',
    'commitment_letter': 'Commitment Letter',
    'custom': 'Custom',
}

TEMPLATE_SCHEMA = {
    'name': {'type': 'string', 'required': True, 'max_length': 200},
    'template_type': {'type': 'enum', 'required': True, 'allowed_values': TEMPLATE_TYPES},
    'profile_id': {'type': 'string', 'max_length': 100},
    'content': {'type': 'text', 'max_length': 100000},
    'file_path': {'type': 'string', 'max_length': 1000},
    'required_sections': {'type': 'list', 'max_items': 50},
    'ai_instructions': {'type': 'text', 'max_length': 10000},
    'default_fields': {'type': 'list', 'max_items': 100},
    'is_active': {'type': 'bool'},
}

COPY_SUFFIX = ' (Copy)'

CREDIT_MEMO_CONTENT = """# Credit Memorandum

## Executive Summary
[Brief overview of the transaction, borrower, and recommendation]

## Borrower Overview
- **Borrower Name:** {{borrower_name}}
- **Industry:** {{industry}}
- **Years in Business:** {{years_in_business}}

## Transaction Summary
- **Loan Amount:** {{loan_amount}}
- **Purpose:** {{loan_purpose}}
- **Term:** {{term_months}} months
- **Interest Rate:** {{interest_rate}}
- **Collateral:** {{collateral_description}}

## Financial Analysis
[Analysis of borrower's financial condition]

### Key Metrics
- **Debt Service Coverage Ratio:** {{dscr}}
- **Loan-to-Value:** {{ltv}}

## Risk Assessment
[Identification and mitigation of key risks]

## Recommendation
[Final recommendation with conditions if applicable]"""

IC_REPORT_CONTENT = """# Investment Committee Report

## Deal Summary
**Borrower:** {{borrower_name}}
**Amount:** {{loan_amount}}
**Date:** {{presentation_date}}

## Investment Thesis
[Why this is a good investment opportunity]

## Deal Structure
[Details of the proposed structure]

## Due Diligence Summary
[Key findings from due diligence]

## Comparable Transactions
[Relevant precedent transactions]

## Risks & Mitigants
[Key risks and how they are addressed]

## Committee Recommendation
[Recommendation for approval/decline with any conditions]"""

DEFAULT_TEMPLATES: List[Dict[str, Any]] = [
    {
        'name': 'Credit Memo',
        'template_type': 'credit_memo',
        'content': CREDIT_MEMO_CONTENT,
        'required_sections': ['Executive Summary', 'Borrower Overview', 'Transaction Summary',
                              'Financial Analysis', 'Risk Assessment', 'Recommendation'],
        'ai_instructions': 'Generate a comprehensive credit memo using the deal information and indexed '
                           'documents. Cite specific sources for all financial data and risk factors. '
                           'Infer as much as possible from the deal context.',
        'default_fields': ['borrower_name', 'loan_amount', 'term_months', 'interest_rate', 'collateral_description'],
        'is_active': True,
    },
    {
        'name': 'Investment Committee Report',
        'template_type': 'ic_report',
        'content': IC_REPORT_CONTENT,
        'required_sections': ['Deal Summary', 'Investment Thesis', 'Deal Structure',
                              'Due Diligence Summary', 'Risks & Mitigants', 'Committee Recommendation'],
        'ai_instructions': 'Generate a formal IC report suitable for presentation. Focus on investment '
                           'merits and risks. Use all available deal documents to support the analysis.',
        'default_fields': ['borrower_name', 'loan_amount', 'presentation_date'],
        'is_active': True,
    },
]


def normalize_field_name(name: str) -> str:
    """'Loan Amount ' -> 'loan_amount'"""
    return re.sub(r'\s+', '_', str(name).strip().lower())


def _normalize_default_fields(fields: List[str]) -> List[str]:
    normalized = []
    for field in fields:
        name = normalize_field_name(field)
        if name and name not in normalized:
            normalized.append(name)
    return normalized


def _clean_template_data(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    schema = TEMPLATE_SCHEMA
    if partial:
        # Updates only touch the fields that were sent
        schema = {k: dict(v, required=False) for k, v in TEMPLATE_SCHEMA.items() if k in data}
        if 'name' in data and not data.get('name'):
            raise ValueError("Field 'name' is required")

    cleaned = sanitize_json_input(data, schema)
    if 'default_fields' in cleaned:
        cleaned['default_fields'] = _normalize_default_fields(cleaned['default_fields'])
    return cleaned


def get_all_templates(user_id: str) -> List[Dict]:
    """Get all templates owned by the user, active and inactive"""
    supabase = get_supabase()
    result = supabase.table('document_templates').select('*').eq('user_id', user_id).order('name').execute()
    return result.data if result.data else []


def get_template(user_id: str, template_id: str) -> Dict:
    """Get a single template"""
    supabase = get_supabase()
    result = supabase.table('document_templates').select('*').eq('id', template_id).eq('user_id', user_id).execute()
    if not result.data:
        raise ValueError("Template not found")
    return result.data[0]


def create_template(user_id: str, data: Dict[str, Any]) -> Dict:
    """Create a new template"""
    template_data = _clean_template_data(data)
    template_data.setdefault('is_active', True)
    template_data['user_id'] = user_id

    supabase = get_supabase()
    result = supabase.table('document_templates').insert(template_data).execute()
    if not result.data:
        raise ValueError("Failed to create template")
    return result.data[0]


def update_template(user_id: str, template_id: str, data: Dict[str, Any]) -> Dict:
    """Update an existing template"""
    get_template(user_id, template_id)

    update_data = _clean_template_data(data, partial=True)
    if not update_data:
        raise ValueError("No valid fields to update")
    update_data['updated_at'] = datetime.now(timezone.utc).isoformat()

    supabase = get_supabase()
    result = supabase.table('document_templates').update(update_data).eq('id', template_id).eq('user_id', user_id).execute()
    if not result.data:
        raise ValueError("Failed to update template")
    return result.data[0]


def delete_template(user_id: str, template_id: str) -> Dict:
    """Delete a template"""
    get_template(user_id, template_id)

    supabase = get_supabase()
    supabase.table('document_templates').delete().eq('id', template_id).eq('user_id', user_id).execute()
    return {'success': True, 'message': 'Template deleted successfully'}


def duplicate_template(user_id: str, template_id: str) -> Dict:
    """Copy a template as '<name> (Copy)'"""
    template = get_template(user_id, template_id)
    copy_fields = ['template_type', 'profile_id', 'content', 'required_sections', 'ai_instructions', 'default_fields']
    data = {field: template.get(field) for field in copy_fields}
    # Trim the base so the suffix survives the name length limit
    base_name = template['name'][:TEMPLATE_SCHEMA['name']['max_length'] - len(COPY_SUFFIX)]
    data['name'] = f"{base_name}{COPY_SUFFIX}"
    data['is_active'] = True
    return create_template(user_id, data)


def seed_default_templates(user_id: str) -> List[Dict]:
    """Insert the built-in templates for a user that has none yet"""
    if get_all_templates(user_id):
        return []

    created = [create_template(user_id, template) for template in DEFAULT_TEMPLATES]
    log_info(f"Seeded {len(created)} default templates for user {user_id}")
    return created
