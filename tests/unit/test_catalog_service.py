"""
Unit tests for variant pricing and bulk catalog maintenance.
"""

import pytest
from decimal import Decimal

from marketplace.exceptions import BusinessLogicError, ForbiddenError, NotFoundError
from marketplace.models import Product, ProductVariant
from marketplace.services import catalog_service


class TestUpdateVariantPricing:
    """Tests for company-side variant edits."""

    def test_update_prices_and_inventory(self, session, company, variant):
        updated = catalog_service.update_variant_pricing(session, company.id, variant.id, {
            'customer_price': '1100', 'company_price': None, 'inventory': 3,
        })

        assert updated.customer_price == Decimal('1100.00')
        assert updated.company_price is None
        assert updated.inventory == 3

    def test_other_companys_variant_forbidden(self, session, company, other_product_variant):
        variant_id = other_product_variant.id

        with pytest.raises(ForbiddenError):
            catalog_service.update_variant_pricing(session, company.id, variant_id, {'customer_price': '1'})

        stored = session.query(ProductVariant).filter(ProductVariant.id == variant_id).one()
        assert stored.customer_price == Decimal('500.00')

    def test_customer_price_required(self, session, company, variant):
        with pytest.raises(BusinessLogicError):
            catalog_service.update_variant_pricing(session, company.id, variant.id, {'customer_price': ''})

    def test_negative_inventory_rejected(self, session, company, variant):
        with pytest.raises(BusinessLogicError):
            catalog_service.update_variant_pricing(session, company.id, variant.id, {'inventory': -1})

    def test_unknown_variant(self, session, company):
        with pytest.raises(NotFoundError):
            catalog_service.update_variant_pricing(session, company.id, 8080, {})


class TestSetAllInStock:
    """Tests for restocking the whole catalog."""

    def test_restock(self, session, product, variant, second_variant, other_product_variant):
        product.out_of_stock = True
        product.active = False
        session.commit()

        counts = catalog_service.set_all_in_stock(session, inventory=50)

        assert counts == {'products_updated': 2, 'variants_updated': 3}
        assert session.query(Product).filter(Product.out_of_stock.is_(True)).count() == 0
        assert {v.inventory for v in session.query(ProductVariant).all()} == {50}

    def test_invalid_inventory(self, session):
        with pytest.raises(BusinessLogicError):
            catalog_service.set_all_in_stock(session, inventory='lots')


class TestCalculateNewPrice:
    """Tests for the bulk update rules."""

    @pytest.mark.parametrize('update_type,value,expected', [
        ('exact', '750', '750.00'),
        ('percentage', '10', '1100.00'),
        ('percentage', '-25', '750.00'),
        ('addition', '99.99', '1099.99'),
        ('subtraction', '1', '999.00'),
        ('subtraction', '5000', '0.00'),
    ])
    def test_rules(self, update_type, value, expected):
        result = catalog_service.calculate_new_price(Decimal('1000'), update_type, Decimal(value))
        assert result == Decimal(expected)

    def test_unknown_rule(self):
        with pytest.raises(BusinessLogicError):
            catalog_service.calculate_new_price(Decimal('1'), 'double', Decimal('1'))


class TestBulkUpdatePrices:
    """Tests for bulk price updates."""

    def test_by_company(self, session, company, variant, second_variant, other_product_variant):
        other_variant_id = other_product_variant.id

        summary = catalog_service.bulk_update_prices(
            session, 'customer_price', 'percentage', 10, company_ids=[company.id]
        )

        assert summary['total_variants_updated'] == 2
        assert summary['companies_affected'] == ['Agro Vet Pharma']
        prices = {v.id: v.customer_price for v in session.query(ProductVariant).all()}
        assert prices[variant.id] == Decimal('1100.00')
        assert prices[second_variant.id] == Decimal('275.00')
        assert prices[other_variant_id] == Decimal('500.00')

    def test_empty_price_field_left_empty(self, session, second_variant):
        catalog_service.bulk_update_prices(session, 'company_price', 'addition', 5, update_all=True)

        stored = session.query(ProductVariant).filter(ProductVariant.id == second_variant.id).one()
        assert stored.company_price is None

    def test_selection_required(self, session, variant):
        with pytest.raises(BusinessLogicError):
            catalog_service.bulk_update_prices(session, 'customer_price', 'exact', 1)

    def test_invalid_price_type(self, session, variant):
        with pytest.raises(BusinessLogicError):
            catalog_service.bulk_update_prices(session, 'cost_price', 'exact', 1, update_all=True)

    def test_nothing_matched(self, session, variant):
        with pytest.raises(NotFoundError):
            catalog_service.bulk_update_prices(session, 'customer_price', 'exact', 1, product_ids=[999999])
