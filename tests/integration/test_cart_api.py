"""
Integration tests for the cart endpoints.
"""

import pytest

from marketplace.models import AppUser, CartItem


@pytest.fixture
def item(variant):
    return {'product_id': variant.product_id, 'variant_id': variant.id}


class TestCartAuth:
    """Cart endpoints need the matching signed-in actor."""

    @pytest.mark.parametrize('method,url', [
        ('post', '/api/cart/add'),
        ('post', '/api/cart/update'),
        ('post', '/api/cart/remove'),
        ('get', '/api/cart'),
        ('post', '/api/animal-cart/add'),
        ('get', '/api/partner/cart'),
    ])
    def test_signed_out_is_401(self, client, method, url):
        response = getattr(client, method)(url, json={})

        assert response.status_code == 401
        assert response.get_json()['status'] == 'error'

    def test_customer_cannot_use_partner_cart(self, customer_client, item):
        response = customer_client.post('/api/partner/cart/add', json=item)
        assert response.status_code == 401

    def test_count_signed_out_is_zero(self, client):
        response = client.get('/api/cart/count')

        assert response.status_code == 200
        assert response.get_json() == {'count': 0}

    def test_deactivated_customer_loses_access(self, customer_client, customer, session, item):
        session.query(AppUser).filter(AppUser.id == customer.id).update({AppUser.active: False})
        session.commit()

        response = customer_client.post('/api/cart/add', json=item)

        assert response.status_code == 401


class TestCartFlow:
    """Add, update, remove, list and count through the API."""

    def test_add_twice_gives_one_line_of_two(self, customer_client, customer, session, item):
        customer_id = customer.id

        for _ in range(2):
            response = customer_client.post('/api/cart/add', json={**item, 'quantity': 9})
            assert response.status_code == 200
            assert response.get_json()['status'] == 'success'

        lines = session.query(CartItem).filter(CartItem.user_id == customer_id).all()
        assert [line.quantity for line in lines] == [2]

    def test_add_form_encoded(self, customer_client, item):
        response = customer_client.post('/api/cart/add', data=item)
        assert response.status_code == 200

    def test_add_unknown_variant_is_404(self, customer_client, product):
        response = customer_client.post('/api/cart/add', json={'product_id': product.id, 'variant_id': 123456})
        assert response.status_code == 404

    def test_add_out_of_stock_is_400(self, customer_client, product, session, item):
        product.out_of_stock = True
        session.commit()

        response = customer_client.post('/api/cart/add', json=item)

        assert response.status_code == 400
        assert 'not available' in response.get_json()['message']

    def test_update_and_remove(self, customer_client, customer, session, item):
        customer_id = customer.id
        customer_client.post('/api/cart/add', json=item)
        line_id = session.query(CartItem).filter(CartItem.user_id == customer_id).one().id

        response = customer_client.post('/api/cart/update', json={'id': line_id, 'quantity': 3})
        assert response.status_code == 200
        assert response.get_json()['quantity'] == 3

        response = customer_client.post('/api/cart/remove', json={'id': line_id})
        assert response.get_json()['removed'] is True

        response = customer_client.post('/api/cart/remove', json={'id': line_id})
        assert response.status_code == 200
        assert response.get_json()['removed'] is False

    def test_update_to_zero_is_400_and_keeps_quantity(self, customer_client, customer, session, item):
        customer_id = customer.id
        customer_client.post('/api/cart/add', json=item)
        line_id = session.query(CartItem).filter(CartItem.user_id == customer_id).one().id

        response = customer_client.post('/api/cart/update', json={'id': line_id, 'quantity': 0})

        assert response.status_code == 400
        assert session.query(CartItem).filter(CartItem.id == line_id).one().quantity == 1

    def test_update_someone_elses_line_is_404(self, customer_client, other_customer, session, variant):
        line = CartItem(user_id=other_customer.id, product_id=variant.product_id, variant_id=variant.id, quantity=1)
        session.add(line)
        session.commit()
        line_id = line.id

        response = customer_client.post('/api/cart/update', json={'id': line_id, 'quantity': 5})

        assert response.status_code == 404

    def test_list_and_count(self, customer_client, discount_factory, variant, second_variant):
        discount_factory(10, variant=variant)
        first = {'product_id': variant.product_id, 'variant_id': variant.id}
        second = {'product_id': second_variant.product_id, 'variant_id': second_variant.id}
        customer_client.post('/api/cart/add', json=first)
        customer_client.post('/api/cart/add', json=second)
        customer_client.post('/api/cart/add', json=second)

        data = customer_client.get('/api/cart').get_json()
        count = customer_client.get('/api/cart/count').get_json()

        assert len(data['cart']) == 2
        assert data['subtotal'] == '1400.00'
        assert data['savings'] == '100.00'
        assert data['item_count'] == 3
        prices = sorted(line['unit_price'] for line in data['cart'])
        assert prices == ['250.00', '900.00']
        assert count == {'count': 2}

    def test_animal_cart(self, customer_client, animal):
        animal_id = animal.id

        response = customer_client.post('/api/animal-cart/add', json={'animal_id': animal_id})
        assert response.status_code == 200

        data = customer_client.get('/api/animal-cart').get_json()
        assert data['cart'][0]['animal']['id'] == animal_id
        assert data['subtotal'] == '150000.00'

    def test_partner_cart_prices_at_company_price(self, partner_client, item):
        partner_client.post('/api/partner/cart/add', json=item)

        data = partner_client.get('/api/partner/cart').get_json()

        assert data['cart'][0]['unit_price'] == '800.00'
