"""
Unit tests for customer, manual and partner checkout.
"""

import pytest
from decimal import Decimal

from marketplace.exceptions import BusinessLogicError, ConflictError, NotFoundError, NotOrderableError
from marketplace.models import Checkout, PartnerOrder, OrderStatus
from marketplace.services import cart_service, checkout_service
from marketplace.services.cart_service import CUSTOMER_CART, ANIMAL_CART, PARTNER_CART
from marketplace.services.profit_ledger_service import get_entry


def _add(session, kind, owner_id, variant, times=1):
    for _ in range(times):
        cart_service.add_item(session, kind, owner_id,
                              {'product_id': variant.product_id, 'variant_id': variant.id})


class TestCreateOrder:
    """Tests for customer checkout."""

    def test_discounted_order_with_shipping(self, session, discount_factory, customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)
        discount_factory(10, variant=variant)

        order = checkout_service.create_order(session, customer.id, shipping, 'cod', shipment_charges=50)

        assert order.total == Decimal('950.00')
        assert order.shipment_charges == Decimal('50.00')
        assert order.status == OrderStatus.PENDING
        assert order.payment_method == 'cod'
        assert order.city == 'Lahore'
        assert len(order.items) == 1
        item = order.items[0]
        assert item.price == Decimal('900.00')
        assert item.original_price == Decimal('1000.00')
        assert item.discount_percentage == Decimal('10.00')
        assert item.quantity == 1
        assert cart_service.count_items(session, CUSTOMER_CART, customer.id) == 0

    def test_product_and_animal_lines(self, session, customer, variant, animal, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant, times=2)
        cart_service.add_item(session, ANIMAL_CART, customer.id, {'animal_id': animal.id})

        order = checkout_service.create_order(session, customer.id, shipping, 'cod')

        assert order.total == Decimal('152000.00')
        assert len(order.items) == 2
        assert cart_service.count_items(session, CUSTOMER_CART, customer.id) == 0
        assert cart_service.count_items(session, ANIMAL_CART, customer.id) == 0

    def test_total_is_sum_of_lines_plus_shipping(self, session, customer, variant, second_variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)
        _add(session, CUSTOMER_CART, customer.id, second_variant, times=3)

        order = checkout_service.create_order(session, customer.id, shipping, 'cod', shipment_charges='120')

        line_sum = sum(item.price * item.quantity for item in order.items)
        assert order.total == line_sum + order.shipment_charges == Decimal('1870.00')

    def test_empty_cart_rejected(self, session, customer, shipping):
        with pytest.raises(BusinessLogicError):
            checkout_service.create_order(session, customer.id, shipping, 'cod')

        assert session.query(Checkout).count() == 0

    def test_missing_shipping_rejected(self, session, customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)
        del shipping['city']

        with pytest.raises(BusinessLogicError):
            checkout_service.create_order(session, customer.id, shipping, 'cod')

        assert cart_service.count_items(session, CUSTOMER_CART, customer.id) == 1

    def test_negative_shipment_charges_rejected(self, session, customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)

        with pytest.raises(BusinessLogicError):
            checkout_service.create_order(session, customer.id, shipping, 'cod', shipment_charges=-5)

    def test_method_not_enabled_keeps_cart(self, session, customer, variant, shipping):
        # no payment settings: cash on delivery only
        _add(session, CUSTOMER_CART, customer.id, variant)

        with pytest.raises(BusinessLogicError):
            checkout_service.create_order(session, customer.id, shipping, 'bank')

        assert session.query(Checkout).count() == 0
        assert cart_service.count_items(session, CUSTOMER_CART, customer.id) == 1

    def test_enabled_method_accepted(self, session, customer, variant, payment_settings, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)

        order = checkout_service.create_order(session, customer.id, shipping, 'BANK')

        assert order.payment_method == 'bank'

    def test_method_must_be_enabled_by_every_company(self, session, customer, variant, other_product_variant,
                                                    payment_settings, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)
        _add(session, CUSTOMER_CART, customer.id, other_product_variant)

        with pytest.raises(BusinessLogicError):
            checkout_service.create_order(session, customer.id, shipping, 'bank')

        assert cart_service.count_items(session, CUSTOMER_CART, customer.id) == 2

    def test_product_gone_out_of_stock_keeps_cart(self, session, customer, product, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)
        product.out_of_stock = True
        session.commit()

        with pytest.raises(NotOrderableError):
            checkout_service.create_order(session, customer.id, shipping, 'cod')

        assert session.query(Checkout).count() == 0
        assert cart_service.count_items(session, CUSTOMER_CART, customer.id) == 1

    def test_expected_total_mismatch_rejected(self, session, customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)

        with pytest.raises(BusinessLogicError) as exc_info:
            checkout_service.create_order(session, customer.id, shipping, 'cod', expected_total='900')

        assert exc_info.value.payload['total'] == '1000.00'
        assert cart_service.count_items(session, CUSTOMER_CART, customer.id) == 1

    def test_expected_total_within_tolerance(self, session, customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)

        order = checkout_service.create_order(session, customer.id, shipping, 'cod', expected_total='1000.01')

        assert order.total == Decimal('1000.00')

    def test_snapshot_survives_price_change(self, session, customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)
        order = checkout_service.create_order(session, customer.id, shipping, 'cod')
        order_id = order.id

        variant.customer_price = Decimal('5000.00')
        session.commit()

        stored = session.query(Checkout).filter(Checkout.id == order_id).one()
        assert stored.items[0].price == Decimal('1000.00')
        assert stored.total == Decimal('1000.00')

    def test_unknown_user(self, session, shipping):
        with pytest.raises(NotFoundError):
            checkout_service.create_order(session, 987654, shipping, 'cod')


class TestIdempotency:
    """Tests for retried checkouts carrying an idempotency key."""

    def test_retry_returns_same_order(self, session, customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)

        first = checkout_service.create_order(session, customer.id, shipping, 'cod', idempotency_key='abc-123')
        second = checkout_service.create_order(session, customer.id, shipping, 'cod', idempotency_key='abc-123')

        assert first.id == second.id
        assert session.query(Checkout).count() == 1

    def test_key_of_another_user_conflicts(self, session, customer, other_customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)
        _add(session, CUSTOMER_CART, other_customer.id, variant)
        checkout_service.create_order(session, customer.id, shipping, 'cod', idempotency_key='shared-key')

        with pytest.raises(ConflictError):
            checkout_service.create_order(session, other_customer.id, shipping, 'cod', idempotency_key='shared-key')

        assert cart_service.count_items(session, CUSTOMER_CART, other_customer.id) == 1

    def test_without_key_second_checkout_needs_a_cart(self, session, customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)
        checkout_service.create_order(session, customer.id, shipping, 'cod')

        with pytest.raises(BusinessLogicError):
            checkout_service.create_order(session, customer.id, shipping, 'cod')


class TestManualOrder:
    """Tests for admin-created orders."""

    def test_manual_order_with_cost_records_profit(self, session, customer, variant, shipping):
        items = [{'product_id': variant.product_id, 'variant_id': variant.id, 'quantity': 2,
                  'price': '950', 'purchased_price': '700'}]

        order = checkout_service.create_manual_order(session, customer.id, shipping, 'cod', items,
                                                     shipment_charges=100)

        assert order.is_manual is True
        assert order.total == Decimal('2000.00')
        item = order.items[0]
        assert item.original_price == Decimal('1000.00')
        entry = get_entry(session, item.id)
        assert entry.total_price == Decimal('1900.00')
        assert entry.total_cost == Decimal('1400.00')
        assert entry.profit == Decimal('500.00')

    def test_manual_order_does_not_touch_cart(self, session, customer, variant, shipping):
        _add(session, CUSTOMER_CART, customer.id, variant)
        items = [{'product_id': variant.product_id, 'variant_id': variant.id, 'quantity': 1, 'price': '1000'}]

        checkout_service.create_manual_order(session, customer.id, shipping, 'cod', items)

        assert cart_service.count_items(session, CUSTOMER_CART, customer.id) == 1

    def test_item_with_product_and_animal_rejected(self, session, customer, variant, animal, shipping):
        items = [{'product_id': variant.product_id, 'variant_id': variant.id, 'animal_id': animal.id,
                  'quantity': 1, 'price': '10'}]

        with pytest.raises(BusinessLogicError):
            checkout_service.create_manual_order(session, customer.id, shipping, 'cod', items)

    def test_no_items_rejected(self, session, customer, shipping):
        with pytest.raises(BusinessLogicError):
            checkout_service.create_manual_order(session, customer.id, shipping, 'cod', [])

    def test_invalid_status_rejected(self, session, customer, variant, shipping):
        items = [{'product_id': variant.product_id, 'variant_id': variant.id, 'quantity': 1, 'price': '10'}]

        with pytest.raises(BusinessLogicError):
            checkout_service.create_manual_order(session, customer.id, shipping, 'cod', items, status='shipped')


class TestPartnerOrders:
    """Tests for partner checkout, one order per company."""

    def _order_data(self, company_id, shipping, method='cod'):
        return {'company_id': company_id, 'payment_method': method, **shipping}

    def test_one_order_per_company(self, session, partner, variant, other_product_variant, shipping):
        company_id = variant.product.company_id
        other_company_id = other_product_variant.product.company_id
        _add(session, PARTNER_CART, partner.id, variant, times=2)
        _add(session, PARTNER_CART, partner.id, other_product_variant)

        orders = checkout_service.create_partner_orders(
            session, partner.id, [self._order_data(company_id, shipping), self._order_data(other_company_id, shipping)]
        )

        totals = {order.company_id: order.total for order in orders}
        assert totals == {company_id: Decimal('1600.00'), other_company_id: Decimal('400.00')}
        assert session.query(PartnerOrder).count() == 2
        assert cart_service.count_items(session, PARTNER_CART, partner.id) == 0

    def test_partner_discount_applies_to_company_price(self, session, discount_factory, partner, variant, shipping):
        company_id = variant.product.company_id
        _add(session, PARTNER_CART, partner.id, variant)
        discount_factory(25, variant=variant)

        orders = checkout_service.create_partner_orders(session, partner.id, [self._order_data(company_id, shipping)])

        item = orders[0].items[0]
        assert item.price == Decimal('600.00')
        assert item.original_price == Decimal('800.00')

    def test_missing_company_details_keeps_cart(self, session, partner, variant, other_product_variant, shipping):
        company_id = variant.product.company_id
        _add(session, PARTNER_CART, partner.id, variant)
        _add(session, PARTNER_CART, partner.id, other_product_variant)

        with pytest.raises(BusinessLogicError):
            checkout_service.create_partner_orders(session, partner.id, [self._order_data(company_id, shipping)])

        assert session.query(PartnerOrder).count() == 0
        assert cart_service.count_items(session, PARTNER_CART, partner.id) == 2

    def test_minimum_order_amount(self, session, partner, variant, payment_settings, shipping):
        company_id = variant.product.company_id
        payment_settings.minimum_order_amount = Decimal('5000.00')
        session.commit()
        _add(session, PARTNER_CART, partner.id, variant)

        with pytest.raises(BusinessLogicError) as exc_info:
            checkout_service.create_partner_orders(session, partner.id, [self._order_data(company_id, shipping)])

        assert exc_info.value.payload['minimum_order_amount'] == '5000.00'
        assert exc_info.value.payload['total'] == '800.00'
        assert cart_service.count_items(session, PARTNER_CART, partner.id) == 1

    def test_payment_method_checked_per_company(self, session, partner, variant, shipping):
        company_id = variant.product.company_id
        _add(session, PARTNER_CART, partner.id, variant)

        with pytest.raises(BusinessLogicError):
            checkout_service.create_partner_orders(session, partner.id,
                                                   [self._order_data(company_id, shipping, method='jazzcash')])

    def test_empty_partner_cart(self, session, partner, company, shipping):
        with pytest.raises(BusinessLogicError):
            checkout_service.create_partner_orders(session, partner.id, [self._order_data(company.id, shipping)])
