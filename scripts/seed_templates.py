#!/usr/bin/env python3
"""
Seed the built-in document templates (Credit Memo, Investment Committee Report)
for a user that has no templates yet.

Usage:
    python seed_templates.py --user-id USER_ID [--dry-run]
"""

import sys
import os
import argparse

# Add parent directory to path to import services
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.template_service import DEFAULT_TEMPLATES, get_all_templates, seed_default_templates


def main():
    parser = argparse.ArgumentParser(description='Seed default document templates for a user')
    parser.add_argument('--user-id', required=True, help='User to seed templates for')
    parser.add_argument('--dry-run', action='store_true', help="Show what would be created without saving")

    args = parser.parse_args()

    if args.dry_run:
        existing = get_all_templates(args.user_id)
        if existing:
            print(f"User already has {len(existing)} template(s); nothing to seed")
            return
        for template in DEFAULT_TEMPLATES:
            print(f"  [DRY RUN] Would create: {template['name']} ({template['template_type']})")
        return

    created = seed_default_templates(args.user_id)
    if not created:
        print("User already has templates; nothing seeded")
        return

    for template in created:
        print(f"  ✅ Created: {template['name']} ({template['id']})")


if __name__ == '__main__':
    main()
