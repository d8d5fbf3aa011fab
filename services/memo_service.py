"""Generated memo records: create, read, update, export and delete"""
import os
import re
from datetime import datetime, timezone
from typing import Dict, List, Any, Tuple

from config.database import get_supabase
from services import deal_service, template_service
from services.template_engine import fill_template, infer_field_values
from services.memo_export_service import generate_docx, generate_pdf
from utils.validation import sanitize_json_input
from utils.logger import log_info

MEMO_STATUSES = ['draft', 'final', 'exported']

EXPORT_FORMATS = {
    'md': 'text/markdown',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'pdf': 'application/pdf',
}

GENERATE_SCHEMA = {
    'deal_id': {'type': 'string', 'required': True, 'max_length': 100},
    'template_id': {'type': 'string', 'required': True, 'max_length': 100},
    'profile_id': {'type': 'string', 'max_length': 100},
    'field_values': {'type': 'map', 'max_items': 200, 'max_length': 5000},
    'additional_instructions': {'type': 'text', 'max_length': 10000},
}

UPDATE_SCHEMA = {
    'content': {'type': 'text', 'max_length': 200000},
    'manual_fields': {'type': 'map', 'max_items': 200, 'max_length': 5000},
    'inferred_fields': {'type': 'map', 'max_items': 200, 'max_length': 5000},
    'status': {'type': 'enum', 'allowed_values': MEMO_STATUSES},
}


def _next_version(user_id: str, deal_id: str, template_id: str) -> int:
    supabase = get_supabase()
    existing = supabase.table('generated_memos').select('id').eq('user_id', user_id).eq(
        'deal_id', deal_id
    ).eq('template_id', template_id).execute()
    return len(existing.data or []) + 1


def _export_filename(memo: Dict[str, Any], export_format: str) -> str:
    """'Credit Memo' v2 -> Credit_Memo_v2.pdf"""
    base = memo.get('template_name') or 'Document'
    base = re.sub(r'[^A-Za-z0-9]+', '_', os.path.basename(base)).strip('_') or 'Document'
    return f"{base}_v{memo.get('version') or 1}.{export_format}"


def get_memos_by_deal(user_id: str, deal_id: str) -> List[Dict]:
    """Get all memos generated for a deal, newest first"""
    supabase = get_supabase()
    result = supabase.table('generated_memos').select('*').eq('user_id', user_id).eq(
        'deal_id', deal_id
    ).order('created_at', desc=True).execute()
    return result.data if result.data else []


def get_memo(user_id: str, memo_id: str) -> Dict:
    """Get a single memo"""
    supabase = get_supabase()
    result = supabase.table('generated_memos').select('*').eq('id', memo_id).eq('user_id', user_id).execute()
    if not result.data:
        raise ValueError("Memo not found")
    return result.data[0]


def generate_memo(user_id: str, params: Dict[str, Any]) -> Dict:
    """
    Create a draft memo for a deal from a template.

    Args:
        user_id: The authenticated user's id
        params: deal_id, template_id, and optionally field_values,
            additional_instructions, profile_id

    Returns:
        dict: The stored memo, content already filled from field_values
    """
    data = sanitize_json_input(params, GENERATE_SCHEMA)
    deal = deal_service.get_deal(user_id, data['deal_id'])
    template = template_service.get_template(user_id, data['template_id'])

    field_values = data.get('field_values') or {}
    inferred = infer_field_values(deal, template)

    memo_data = {
        'user_id': user_id,
        'deal_id': deal['id'],
        'template_id': template['id'],
        'template_name': template.get('name'),
        'profile_id': data.get('profile_id') or template.get('profile_id'),
        'content': fill_template(template.get('content'), field_values),
        'manual_fields': field_values,
        'inferred_fields': inferred,
        'additional_instructions': data.get('additional_instructions') or '',
        'status': 'draft',
        'version': _next_version(user_id, deal['id'], template['id']),
    }

    supabase = get_supabase()
    result = supabase.table('generated_memos').insert(memo_data).execute()
    if not result.data:
        raise ValueError("Failed to create memo")

    memo = result.data[0]
    log_info(f"Generated memo {memo.get('id')} (v{memo_data['version']}) for deal {deal['id']}")
    return memo


def update_memo(user_id: str, memo_id: str, patch: Dict[str, Any]) -> Dict:
    """Update a memo's content, field maps or status"""
    get_memo(user_id, memo_id)

    update_data = sanitize_json_input(patch or {}, UPDATE_SCHEMA)
    if not update_data:
        raise ValueError("No valid fields to update")
    update_data['updated_at'] = datetime.now(timezone.utc).isoformat()

    supabase = get_supabase()
    result = supabase.table('generated_memos').update(update_data).eq('id', memo_id).eq('user_id', user_id).execute()
    if not result.data:
        raise ValueError("Failed to update memo")
    return result.data[0]


def export_memo(user_id: str, memo_id: str, export_format: str = 'md') -> Tuple[bytes, str, str]:
    """
    Render a memo for download and mark it as exported.

    Returns:
        tuple: (file bytes, filename, mimetype)
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Invalid export format. Use one of: {', '.join(EXPORT_FORMATS)}")

    memo = get_memo(user_id, memo_id)
    content = memo.get('content') or ''
    title = memo.get('template_name') or 'Document'

    if export_format == 'docx':
        file_bytes = generate_docx(content, title).getvalue()
    elif export_format == 'pdf':
        file_bytes = generate_pdf(content, title).getvalue()
    else:
        file_bytes = content.encode('utf-8')

    update_memo(user_id, memo_id, {'status': 'exported'})

    return file_bytes, _export_filename(memo, export_format), EXPORT_FORMATS[export_format]


def delete_memo(user_id: str, memo_id: str) -> Dict:
    """Delete a memo"""
    get_memo(user_id, memo_id)

    supabase = get_supabase()
    supabase.table('generated_memos').delete().eq('id', memo_id).eq('user_id', user_id).execute()
    return {'success': True, 'message': 'Memo deleted successfully'}
