"""
Pytest configuration and shared test helpers.

Environment variables are set before any application module is imported,
since config.database requires the Supabase settings at import time.
"""
import copy
import itertools
import os

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_PRICE_ID", "price_default")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("RATE_LIMIT_STORAGE_URI", "memory://")

import pytest


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Just enough of the postgrest query builder for the services under test"""

    def __init__(self, db, table_name):
        self.db = db
        self.table_name = table_name
        self.operation = 'select'
        self.payload = None
        self.filters = []
        self.order_by = None
        self.descending = False

    def select(self, *args, **kwargs):
        self.operation = 'select'
        return self

    def insert(self, payload):
        self.operation = 'insert'
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = 'update'
        self.payload = payload
        return self

    def delete(self):
        self.operation = 'delete'
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.descending = desc
        return self

    def execute(self):
        rows = self.db.tables.setdefault(self.table_name, [])
        matched = [row for row in rows if all(row.get(c) == v for c, v in self.filters)]

        if self.operation == 'insert':
            row = copy.deepcopy(self.payload)
            row.setdefault('id', f"{self.table_name}-{next(self.db.ids)}")
            row.setdefault('created_at', self.db.timestamp())
            rows.append(row)
            return FakeResult([copy.deepcopy(row)])

        if self.operation == 'update':
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResult(copy.deepcopy(matched))

        if self.operation == 'delete':
            self.db.tables[self.table_name] = [row for row in rows if row not in matched]
            return FakeResult(copy.deepcopy(matched))

        if self.order_by:
            matched = sorted(matched, key=lambda r: r.get(self.order_by) or '', reverse=self.descending)
        return FakeResult(copy.deepcopy(matched))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.ids = itertools.count(1)
        self._clock = itertools.count(1)

    def table(self, name):
        return FakeQuery(self, name)

    def timestamp(self):
        return f"2026-01-01T00:00:{next(self._clock):02d}+00:00"

    def rows(self, name):
        return self.tables.get(name, [])


@pytest.fixture
def fake_db(monkeypatch):
    """Route every service's Supabase access to one in-memory database"""
    from services import (template_service, deal_service, memo_service, checkout_service,
                          stripe_webhook_service, subscription_service)

    db = FakeSupabase()
    for module in (template_service, deal_service, memo_service, checkout_service,
                   stripe_webhook_service, subscription_service):
        monkeypatch.setattr(module, 'get_supabase', lambda: db)
        if hasattr(module, 'get_supabase_admin'):
            monkeypatch.setattr(module, 'get_supabase_admin', lambda: db)
    return db


@pytest.fixture
def deal():
    return {
        'id': 'deal-1',
        'user_id': 'user-1',
        'deal_number': 'D-2026-001',
        'borrower_name': 'Acme Manufacturing LLC',
        'borrower_contact': 'jane@acme.test',
        'loan_amount': 1250000,
        'interest_rate': 6.5,
        'term_months': 60,
        'collateral_description': 'First lien on equipment',
        'stage': 'underwriting',
        'priority': None,
        'assigned_to': None,
        'expected_close_date': '2026-12-01',
    }


@pytest.fixture
def template():
    return {
        'id': 'tmpl-1',
        'user_id': 'user-1',
        'name': 'Credit Memo',
        'template_type': 'credit_memo',
        'content': '# Credit Memo\n\nBorrower: {{borrower_name}}\nAmount: {{loan_amount}}\nIndustry: {{industry}}',
        'default_fields': ['borrower_name', 'loan_amount', 'industry'],
        'is_active': True,
    }


@pytest.fixture
def seeded_db(fake_db, deal, template):
    fake_db.tables['deals'] = [dict(deal)]
    fake_db.tables['document_templates'] = [dict(template)]
    return fake_db


@pytest.fixture
def authed(monkeypatch):
    """Treat every bearer token as user-1"""
    from utils import auth

    def verify(token):
        if not token:
            return None
        return {'id': 'user-1', 'email': 'analyst@lender.test'}

    monkeypatch.setattr(auth, 'verify_access_token', verify)
    return {'Authorization': 'Bearer test-token'}


@pytest.fixture
def client():
    """Flask test client with rate limiting off"""
    from app import app, limiter
    app.config['TESTING'] = True
    limiter.enabled = False
    with app.test_client() as test_client:
        yield test_client
