#!/usr/bin/env python3
"""
Interactive memo generation for a deal from the terminal.

Walks the same steps as the desktop app: pick a template, confirm or fill
the template fields (deal values are pre-filled), generate, then preview and
optionally export.

Usage:
    python generate_memo.py --user-id USER_ID --deal-id DEAL_ID [--template-id TEMPLATE_ID]
                            [--export {md,docx,pdf}] [--output PATH] [--yes]

Examples:
    # Pick a template interactively
    python generate_memo.py --user-id <user_id> --deal-id <deal_id>

    # Non-interactive: accept pre-filled values and export a PDF
    python generate_memo.py --user-id <user_id> --deal-id <deal_id> --template-id <template_id> --yes --export pdf
"""

import sys
import os
import argparse

# Add parent directory to path to import services
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services import deal_service
from services.template_engine import field_label
from services.template_service import TEMPLATE_TYPE_LABELS
from services.memo_wizard import MemoWizard, LocalMemoClient, STEP_FIELDS, STEP_PREVIEW


def choose_template(wizard):
    """Prompt for a template from the active list; returns its id or None"""
    if not wizard.templates:
        print("No active templates. Seed the defaults with scripts/seed_templates.py")
        return None

    for idx, template in enumerate(wizard.templates, start=1):
        label = TEMPLATE_TYPE_LABELS.get(template.get('template_type'), template.get('template_type'))
        print(f"  {idx}. {template['name']} ({label})")

    choice = input("Template number: ").strip()
    if not choice.isdigit() or not 1 <= int(choice) <= len(wizard.templates):
        print("Invalid choice")
        return None
    return wizard.templates[int(choice) - 1]['id']


def fill_fields(wizard, assume_yes=False):
    """Prompt for each template variable, defaulting to the current value"""
    inferred = wizard.inferred_fields
    for variable in wizard.template_variables:
        current = wizard.field_values.get(variable, '')
        marker = ' (auto-filled)' if variable in inferred else ''
        if assume_yes:
            wizard.set_field(variable, current)
            continue
        value = input(f"{field_label(variable)}{marker} [{current}]: ").strip()
        wizard.set_field(variable, value or current)

    if not assume_yes:
        wizard.set_additional_instructions(input("Additional instructions (optional): ").strip())


def main():
    parser = argparse.ArgumentParser(description='Generate a memo for a deal from a template')
    parser.add_argument('--user-id', required=True, help='Owner of the deal and templates')
    parser.add_argument('--deal-id', required=True, help='Deal to generate the memo for')
    parser.add_argument('--template-id', help='Template to use (prompted when omitted)')
    parser.add_argument('--export', choices=['md', 'docx', 'pdf'], help='Export the memo after generation')
    parser.add_argument('--output', help='Where to write the export (defaults to the suggested filename)')
    parser.add_argument('--yes', action='store_true', help='Accept pre-filled values without prompting')

    args = parser.parse_args()

    try:
        deal = deal_service.get_deal(args.user_id, args.deal_id)
    except ValueError as e:
        print(f"❌ {e}")
        sys.exit(1)

    print(f"💼 {deal.get('borrower_name')} - {deal.get('deal_number')} - {deal.get('stage')}")

    wizard = MemoWizard(LocalMemoClient(args.user_id), deal)
    wizard.open()

    if wizard.existing_memos:
        print(f"Previously generated: {len(wizard.existing_memos)} memo(s)")
        for memo in wizard.existing_memos:
            print(f"  - {memo.get('template_name') or 'Document'} v{memo.get('version')} [{memo.get('status')}]")

    template_id = args.template_id or choose_template(wizard)
    if not template_id:
        sys.exit(1)

    wizard.select_template(template_id)
    if not wizard.selected_template:
        print(f"❌ Template {template_id} not found or inactive")
        sys.exit(1)

    wizard.next_step()
    if wizard.current_step != STEP_FIELDS:
        sys.exit(1)

    fill_fields(wizard, assume_yes=args.yes)

    print("Generating document...")
    wizard.next_step()
    if wizard.current_step != STEP_PREVIEW:
        print("❌ Failed to generate memo")
        sys.exit(1)

    print("\n" + "=" * 60)
    print(wizard.preview_content)
    print("=" * 60 + "\n")
    print(f"✅ Saved memo {wizard.generated_memo['id']} (v{wizard.generated_memo.get('version')})")

    if args.export:
        result = wizard.export(args.export)
        if not result:
            print("❌ Export failed")
            sys.exit(1)
        file_bytes, filename, _ = result
        output_path = args.output or filename
        with open(output_path, 'wb') as f:
            f.write(file_bytes)
        print(f"📄 Exported to {output_path}")


if __name__ == '__main__':
    main()
