"""Placeholder extraction, substitution and deal-based field inference"""
from services.template_engine import extract_variables, fill_template, field_label, infer_field_values


def test_extract_variables_unique_in_first_appearance_order():
    content = "{{b}} then {{a}} then {{b}} and {{c_1}} and {{a}}"
    assert extract_variables(content) == ['b', 'a', 'c_1']


def test_extract_variables_ignores_non_word_tokens():
    content = "{{ spaced }} {{dash-name}} {single} {{ok}}"
    assert extract_variables(content) == ['ok']


def test_extract_variables_empty_content():
    assert extract_variables(None) == []
    assert extract_variables('') == []


def test_fill_template_replaces_every_occurrence():
    content = "Dear {{name}}, {{name}} owes {{amount}}."
    assert fill_template(content, {'name': 'Acme', 'amount': '$10'}) == "Dear Acme, Acme owes $10."


def test_fill_template_marks_empty_values():
    assert fill_template("Rate: {{rate}}", {'rate': ''}) == "Rate: [rate]"
    assert fill_template("Rate: {{rate}}", {'rate': None}) == "Rate: [rate]"


def test_fill_template_leaves_unknown_placeholders():
    assert fill_template("{{a}} {{b}}", {'a': 'x'}) == "x {{b}}"


def test_field_label():
    assert field_label('loan_amount') == 'Loan Amount'
    assert field_label('dscr') == 'Dscr'


def test_infer_field_values_formats_deal_values(deal):
    template = {'default_fields': ['borrower_name', 'loan_amount', 'interest_rate', 'term_months',
                                   'priority', 'assigned_to', 'industry']}

    inferred = infer_field_values(deal, template)

    assert inferred == {
        'borrower_name': 'Acme Manufacturing LLC',
        'loan_amount': '$1,250,000',
        'interest_rate': '6.5%',
        'term_months': '60',
        'priority': 'medium',
    }


def test_infer_field_values_keeps_template_casing(deal):
    inferred = infer_field_values(deal, {'default_fields': ['Borrower_Name']})
    assert inferred == {'Borrower_Name': 'Acme Manufacturing LLC'}


def test_infer_field_values_skips_zero_amounts(deal):
    deal['loan_amount'] = 0
    deal['interest_rate'] = None
    inferred = infer_field_values(deal, {'default_fields': ['loan_amount', 'interest_rate']})
    assert inferred == {}


def test_infer_field_values_fractional_amount(deal):
    deal['loan_amount'] = 1250.5
    deal['interest_rate'] = 7.0
    inferred = infer_field_values(deal, {'default_fields': ['loan_amount', 'interest_rate']})
    assert inferred == {'loan_amount': '$1,250.5', 'interest_rate': '7%'}


def test_infer_field_values_without_default_fields(deal):
    assert infer_field_values(deal, {'default_fields': None}) == {}
