from unittest.mock import MagicMock

import pytest

from services.memo_wizard import MemoWizard, LocalMemoClient


@pytest.fixture
def memo_client(template):
    client = MagicMock()
    inactive = dict(template, id='tmpl-2', name='Old', is_active=False)
    client.template_get_all.return_value = [template, inactive]
    client.memo_get_by_deal.return_value = [{'id': 'memo-0', 'template_id': 'tmpl-1', 'content': 'old', 'version': 1}]
    client.memo_generate.return_value = {'id': 'memo-1', 'version': 2}
    client.memo_update.side_effect = lambda memo_id, patch: dict(patch, id=memo_id, version=2)
    return client


@pytest.fixture
def wizard(memo_client, deal):
    wizard = MemoWizard(memo_client, deal)
    wizard.open()
    return wizard


def test_open_loads_active_templates_and_memos(wizard, memo_client):
    assert [t['id'] for t in wizard.templates] == ['tmpl-1']
    assert len(wizard.existing_memos) == 1
    assert wizard.current_step == 'select'
    memo_client.memo_get_by_deal.assert_called_once_with('deal-1')


def test_open_survives_load_failures(memo_client, deal):
    memo_client.template_get_all.side_effect = RuntimeError("offline")
    wizard = MemoWizard(memo_client, deal)
    wizard.open()

    assert wizard.templates == []
    assert len(wizard.existing_memos) == 1


def test_next_step_requires_selected_template(wizard):
    assert wizard.next_step() == 'select'

    wizard.select_template('tmpl-1')
    assert wizard.next_step() == 'fields'


def test_select_template_prefills_inferred_fields(wizard):
    wizard.select_template('tmpl-1')

    assert wizard.field_values == {'borrower_name': 'Acme Manufacturing LLC', 'loan_amount': '$1,250,000'}
    assert wizard.template_variables == ['borrower_name', 'loan_amount', 'industry']


def test_generate_fills_and_persists(wizard, memo_client):
    wizard.select_template('tmpl-1')
    wizard.next_step()
    wizard.set_field('industry', 'Manufacturing')
    wizard.set_additional_instructions('Be brief')

    assert wizard.next_step() == 'preview'

    memo_client.memo_generate.assert_called_once_with({
        'deal_id': 'deal-1',
        'template_id': 'tmpl-1',
        'field_values': {'borrower_name': 'Acme Manufacturing LLC', 'loan_amount': '$1,250,000',
                         'industry': 'Manufacturing'},
        'additional_instructions': 'Be brief',
    })
    memo_id, patch = memo_client.memo_update.call_args[0]
    assert memo_id == 'memo-1'
    assert 'Industry: Manufacturing' in patch['content']
    assert patch['inferred_fields'] == {'borrower_name': 'Acme Manufacturing LLC', 'loan_amount': '$1,250,000'}
    assert wizard.preview_content == patch['content']
    assert wizard.generated_memo['id'] == 'memo-1'
    assert wizard.is_generating is False


def test_generate_failure_reverts_to_fields(wizard, memo_client):
    memo_client.memo_generate.side_effect = RuntimeError("store unavailable")
    wizard.select_template('tmpl-1')
    wizard.next_step()

    assert wizard.generate() is None
    assert wizard.current_step == 'fields'
    assert wizard.is_generating is False


def test_back_step(wizard):
    wizard.select_template('tmpl-1')
    wizard.next_step()
    wizard.next_step()
    assert wizard.current_step == 'preview'

    assert wizard.back_step() == 'fields'
    assert wizard.back_step() == 'select'
    assert wizard.back_step() == 'select'


def test_view_memo_opens_preview(wizard):
    memo = wizard.existing_memos[0]
    wizard.view_memo(memo)

    assert wizard.current_step == 'preview'
    assert wizard.preview_content == 'old'
    assert wizard.selected_template_id == 'tmpl-1'


def test_export_reloads_memos(wizard, memo_client):
    memo_client.memo_export.return_value = (b'# memo', 'Credit_Memo_v1.md', 'text/markdown')
    wizard.view_memo(wizard.existing_memos[0])

    assert wizard.export('md')[1] == 'Credit_Memo_v1.md'
    memo_client.memo_export.assert_called_once_with('memo-0', 'md')
    assert memo_client.memo_get_by_deal.call_count == 2


def test_delete_memo_reloads(wizard, memo_client):
    assert wizard.delete_memo('memo-0') is True
    memo_client.memo_delete.assert_called_once_with('memo-0')
    assert memo_client.memo_get_by_deal.call_count == 2


def test_local_client_round_trip(seeded_db, deal):
    wizard = MemoWizard(LocalMemoClient('user-1'), deal)
    wizard.open()
    wizard.select_template('tmpl-1')
    wizard.next_step()
    wizard.set_field('industry', 'Manufacturing')
    wizard.next_step()

    assert wizard.current_step == 'preview'
    stored = seeded_db.rows('generated_memos')
    assert len(stored) == 1
    assert stored[0]['content'] == wizard.preview_content
    assert 'Industry: Manufacturing' in stored[0]['content']
