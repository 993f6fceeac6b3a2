"""
Unit tests for company payment settings.
"""

import pytest
from decimal import Decimal

from marketplace.exceptions import BusinessLogicError, NotFoundError
from marketplace.services import payment_settings_service


class TestEnabledMethods:
    """Tests for which payment methods a company accepts."""

    def test_without_settings_only_cod(self, session, company):
        assert payment_settings_service.enabled_methods_for(session, company.id) == ['cod']

    def test_with_settings(self, session, company, payment_settings):
        assert payment_settings_service.enabled_methods_for(session, company.id) == ['cod', 'bank']

    def test_allowed_method_normalized(self, session, company, payment_settings):
        assert payment_settings_service.ensure_payment_method_allowed(session, [company.id], ' Bank ') == 'bank'

    def test_unknown_method(self, session, company):
        with pytest.raises(BusinessLogicError):
            payment_settings_service.ensure_payment_method_allowed(session, [company.id], 'bitcoin')

    def test_every_company_must_accept(self, session, company, other_company, payment_settings):
        with pytest.raises(BusinessLogicError):
            payment_settings_service.ensure_payment_method_allowed(session, [company.id, other_company.id], 'bank')

    def test_no_companies_any_known_method(self, session):
        assert payment_settings_service.ensure_payment_method_allowed(session, [], 'jazzcash') == 'jazzcash'

    def test_minimum_defaults_to_zero(self, session, company):
        assert payment_settings_service.minimum_order_amount_for(session, company.id) == Decimal('0')


class TestSaveSettings:
    """Tests for creating and updating settings."""

    def test_create(self, session, company):
        settings = payment_settings_service.save_settings(session, company.id, {
            'enable_jazzcash': True,
            'jazzcash_number': '03001112233',
            'minimum_order_amount': '1500',
        })

        assert settings.enabled_methods() == ['cod', 'jazzcash']
        assert settings.minimum_order_amount == Decimal('1500.00')

    def test_update_existing(self, session, company, payment_settings):
        settings = payment_settings_service.save_settings(session, company.id, {'enable_cod': False})

        assert settings.enabled_methods() == ['bank']
        assert settings.bank_name == 'HBL'

    def test_bank_requires_account_details(self, session, company):
        with pytest.raises(BusinessLogicError):
            payment_settings_service.save_settings(session, company.id, {'enable_bank': True, 'bank_name': 'HBL'})

        assert payment_settings_service.get_settings(session, company.id) is None

    def test_at_least_one_method(self, session, company):
        with pytest.raises(BusinessLogicError):
            payment_settings_service.save_settings(session, company.id, {'enable_cod': False})

    def test_negative_minimum_rejected(self, session, company):
        with pytest.raises(BusinessLogicError):
            payment_settings_service.save_settings(session, company.id, {'minimum_order_amount': '-1'})

    def test_unknown_company(self, session):
        with pytest.raises(NotFoundError):
            payment_settings_service.save_settings(session, 5555, {})

    def test_serialize_defaults(self):
        data = payment_settings_service.serialize_settings(None)

        assert data['enabled_methods'] == ['cod']
        assert data['minimum_order_amount'] == '0.00'

    def test_text_flags(self, session, company, payment_settings):
        settings = payment_settings_service.save_settings(session, company.id, {'enable_bank': 'false'})

        assert settings.enabled_methods() == ['cod']

    def test_non_boolean_flag_rejected(self, session, company, payment_settings):
        with pytest.raises(BusinessLogicError):
            payment_settings_service.save_settings(session, company.id, {'enable_bank': 'sometimes'})

        assert payment_settings_service.enabled_methods_for(session, company.id) == ['cod', 'bank']
