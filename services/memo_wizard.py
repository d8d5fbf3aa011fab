"""
Step-by-step memo generation for a single deal.

The wizard walks select -> fields -> generate -> preview against a memo API
client exposing template_get_all, memo_get_by_deal, memo_generate,
memo_update, memo_export and memo_delete. LocalMemoClient provides those
operations on top of the service layer; any object with the same methods
(e.g. an HTTP client) works too.
"""
from typing import Any, Dict, List, Optional

from services import memo_service, template_service
from services.template_engine import extract_variables, fill_template, infer_field_values
from utils.logger import log_error

STEP_SELECT = 'select'
STEP_FIELDS = 'fields'
STEP_GENERATE = 'generate'
STEP_PREVIEW = 'preview'


class LocalMemoClient:
    """Memo API bound to one user, backed directly by the services"""

    def __init__(self, user_id: str):
        self.user_id = user_id

    def template_get_all(self) -> List[Dict]:
        return template_service.get_all_templates(self.user_id)

    def memo_get_by_deal(self, deal_id: str) -> List[Dict]:
        return memo_service.get_memos_by_deal(self.user_id, deal_id)

    def memo_generate(self, params: Dict[str, Any]) -> Dict:
        return memo_service.generate_memo(self.user_id, params)

    def memo_update(self, memo_id: str, patch: Dict[str, Any]) -> Dict:
        return memo_service.update_memo(self.user_id, memo_id, patch)

    def memo_export(self, memo_id: str, export_format: str):
        return memo_service.export_memo(self.user_id, memo_id, export_format)

    def memo_delete(self, memo_id: str) -> Dict:
        return memo_service.delete_memo(self.user_id, memo_id)


class MemoWizard:
    """Holds the state of one memo generation session for a deal"""

    def __init__(self, client, deal: Dict[str, Any]):
        self.client = client
        self.deal = deal
        self.templates: List[Dict] = []
        self.existing_memos: List[Dict] = []
        self._reset()

    def _reset(self):
        self.current_step = STEP_SELECT
        self.selected_template_id: Optional[str] = None
        self.field_values: Dict[str, str] = {}
        self.additional_instructions = ''
        self.is_generating = False
        self.generated_memo: Optional[Dict] = None
        self.preview_content = ''

    def open(self):
        """Reset the session and load templates and prior memos"""
        self._reset()
        self.load_templates()
        self.load_existing_memos()

    def load_templates(self):
        try:
            self.templates = [t for t in self.client.template_get_all() if t.get('is_active')]
        except Exception as e:
            log_error("Failed to load templates", error=e)

    def load_existing_memos(self):
        try:
            self.existing_memos = self.client.memo_get_by_deal(self.deal['id'])
        except Exception as e:
            log_error("Failed to load memos", error=e)

    @property
    def selected_template(self) -> Optional[Dict]:
        return next((t for t in self.templates if t.get('id') == self.selected_template_id), None)

    @property
    def template_variables(self) -> List[str]:
        template = self.selected_template
        return extract_variables(template.get('content')) if template else []

    @property
    def inferred_fields(self) -> Dict[str, str]:
        template = self.selected_template
        return infer_field_values(self.deal, template) if template else {}

    def select_template(self, template_id: str):
        """Select a template and pre-fill the fields the deal can supply"""
        self.selected_template_id = template_id
        template = self.selected_template
        if template:
            self.field_values = infer_field_values(self.deal, template)

    def set_field(self, name: str, value: str):
        self.field_values[name] = value

    def set_additional_instructions(self, text: str):
        self.additional_instructions = text

    def next_step(self):
        if self.current_step == STEP_SELECT and self.selected_template_id:
            self.current_step = STEP_FIELDS
        elif self.current_step == STEP_FIELDS:
            self.generate()
        return self.current_step

    def back_step(self):
        if self.current_step == STEP_FIELDS:
            self.current_step = STEP_SELECT
        elif self.current_step == STEP_PREVIEW:
            self.current_step = STEP_FIELDS
        return self.current_step

    def generate(self) -> Optional[Dict]:
        """
        Create the memo, fill the template and persist the filled content.

        On any failure the error is logged and the wizard goes back to the
        fields step so the user can retry.
        """
        if not self.selected_template_id:
            return None

        self.current_step = STEP_GENERATE
        self.is_generating = True

        try:
            memo = self.client.memo_generate({
                'deal_id': self.deal['id'],
                'template_id': self.selected_template_id,
                'field_values': self.field_values,
                'additional_instructions': self.additional_instructions,
            })

            template = self.selected_template or {}
            content = fill_template(template.get('content'), self.field_values)

            updated_memo = self.client.memo_update(memo['id'], {
                'content': content,
                'inferred_fields': self.inferred_fields,
                'manual_fields': self.field_values,
            })

            self.generated_memo = updated_memo
            self.preview_content = content
            self.current_step = STEP_PREVIEW
        except Exception as e:
            log_error("Failed to generate memo", error=e)
            self.current_step = STEP_FIELDS
            return None
        finally:
            self.is_generating = False

        return updated_memo

    def view_memo(self, memo: Dict[str, Any]):
        """Open a previously generated memo in preview"""
        self.generated_memo = memo
        self.preview_content = memo.get('content') or ''
        self.selected_template_id = memo.get('template_id')
        self.current_step = STEP_PREVIEW

    def export(self, export_format: str = 'md'):
        if not self.generated_memo:
            return None

        try:
            result = self.client.memo_export(self.generated_memo['id'], export_format)
        except Exception as e:
            log_error("Failed to export memo", error=e)
            return None

        if result:
            self.load_existing_memos()
        return result

    def delete_memo(self, memo_id: str) -> bool:
        try:
            self.client.memo_delete(memo_id)
        except Exception as e:
            log_error("Failed to delete memo", error=e)
            return False

        self.load_existing_memos()
        return True
