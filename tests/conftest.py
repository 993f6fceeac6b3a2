import pytest
from datetime import timedelta
from decimal import Decimal
import uuid

from marketplace import create_app
from marketplace.database import Base, get_session, get_engine
from marketplace.models import (
    AppUser, AdminUser, Company, CompanyPaymentSettings, Partner,
    Product, ProductVariant, Animal, Discount
)
from marketplace.utils.clock import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(autouse=True)
def schema(app):
    """Fresh schema for every test."""
    engine = get_engine()
    Base.metadata.create_all(engine)
    yield
    get_session().remove()
    Base.metadata.drop_all(engine)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session shared with the application (scoped per thread)."""
    session = get_session()
    yield session
    session.rollback()


def _suffix():
    return str(uuid.uuid4())[:8]


def _make_discount(session, percentage, variant=None, product=None, company=None,
                  is_active=True, start=None, end=None, name=None):
    """Create a discount valid from yesterday to tomorrow unless told otherwise."""
    now = utcnow()
    discount = Discount(
        name=name or f'Discount {percentage}%',
        percentage=Decimal(str(percentage)),
        start_date=start or now - timedelta(days=1),
        end_date=end or now + timedelta(days=1),
        is_active=is_active,
        variant_id=variant.id if variant is not None else None,
        product_id=product.id if product is not None else None,
        company_id=company.id if company is not None else None,
    )
    session.add(discount)
    session.commit()
    return discount


@pytest.fixture(scope='function')
def discount_factory(session):
    """Callable creating discounts: discount_factory(10, variant=variant)."""
    def factory(percentage, **kwargs):
        return _make_discount(session, percentage, **kwargs)
    return factory


@pytest.fixture(scope='function')
def customer(session):
    """Create a customer."""
    user = AppUser(email=f'customer-{_suffix()}@test.com', name='Customer One', active=True)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def other_customer(session):
    """Create a second customer for ownership tests."""
    user = AppUser(email=f'other-{_suffix()}@test.com', name='Customer Two', active=True)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def company(session):
    """Create a company (vendor)."""
    company = Company(company_name='Agro Vet Pharma', email=f'company-{_suffix()}@test.com',
                      country='Pakistan', active=True)
    session.add(company)
    session.commit()
    return company


@pytest.fixture(scope='function')
def other_company(session):
    """Create a second company for ownership tests."""
    company = Company(company_name='Livestock Supplies', email=f'company2-{_suffix()}@test.com',
                      country='Pakistan', active=True)
    session.add(company)
    session.commit()
    return company


@pytest.fixture(scope='function')
def partner(session):
    """Create a partner (veterinarian)."""
    partner = Partner(partner_name='Dr. Vet', email=f'partner-{_suffix()}@test.com',
                      partner_type='veterinarian', active=True)
    session.add(partner)
    session.commit()
    return partner


@pytest.fixture(scope='function')
def admin_user(session):
    """Create a platform admin."""
    admin = AdminUser(email=f'admin-{_suffix()}@test.com', name='Admin')
    session.add(admin)
    session.commit()
    return admin


@pytest.fixture(scope='function')
def product(session, company):
    """Create an active, in-stock product of `company`."""
    product = Product(name='Dewormer', company_id=company.id, active=True, out_of_stock=False)
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def variant(session, product):
    """Variant priced 1000 for customers and 800 for partners."""
    variant = ProductVariant(product_id=product.id, packing_volume='1L',
                             customer_price=Decimal('1000.00'), company_price=Decimal('800.00'),
                             dealer_price=Decimal('850.00'), inventory=10)
    session.add(variant)
    session.commit()
    return variant


@pytest.fixture(scope='function')
def second_variant(session, product):
    """Second variant of the same product, priced 250."""
    variant = ProductVariant(product_id=product.id, packing_volume='250ml',
                             customer_price=Decimal('250.00'), company_price=None, inventory=10)
    session.add(variant)
    session.commit()
    return variant


@pytest.fixture(scope='function')
def other_product_variant(session, other_company):
    """Variant of a product sold by `other_company`, priced 500."""
    product = Product(name='Mineral Mix', company_id=other_company.id, active=True, out_of_stock=False)
    session.add(product)
    session.flush()
    variant = ProductVariant(product_id=product.id, packing_volume='5kg',
                             customer_price=Decimal('500.00'), company_price=Decimal('400.00'), inventory=5)
    session.add(variant)
    session.commit()
    return variant


@pytest.fixture(scope='function')
def animal(session, other_customer):
    """An active animal listed by another customer."""
    animal = Animal(title='Sahiwal Cow', specie='cow', breed='Sahiwal',
                    total_price=Decimal('150000.00'), active=True, seller_id=other_customer.id)
    session.add(animal)
    session.commit()
    return animal


@pytest.fixture(scope='function')
def payment_settings(session, company):
    """Company accepts cash on delivery and bank transfer, minimum order 0."""
    settings = CompanyPaymentSettings(
        company_id=company.id,
        bank_name='HBL', account_title='Agro Vet Pharma', account_number='0001234567',
        enable_cod=True, enable_bank=True, enable_jazzcash=False, enable_easypaisa=False,
        minimum_order_amount=Decimal('0')
    )
    session.add(settings)
    session.commit()
    return settings


# session_transaction() tears down the app context, which removes the scoped
# session: entity fixtures requested alongside a signed-in client are detached,
# so change their rows with session.query(...).update() or re-query them.
def _sign_in(client, **ids):
    with client.session_transaction() as sess:
        for key, value in ids.items():
            sess[key] = value
    return client


@pytest.fixture(scope='function')
def customer_client(client, customer):
    """Client signed in as `customer`."""
    return _sign_in(client, user_id=customer.id)


@pytest.fixture(scope='function')
def partner_client(client, partner):
    """Client signed in as `partner`."""
    return _sign_in(client, partner_id=partner.id)


@pytest.fixture(scope='function')
def company_client(client, company):
    """Client signed in as `company`."""
    return _sign_in(client, company_id=company.id)


@pytest.fixture(scope='function')
def admin_client(client, admin_user):
    """Client signed in as `admin_user`."""
    return _sign_in(client, admin_user_id=admin_user.id)


@pytest.fixture(scope='function')
def shipping():
    return {
        'city': 'Lahore',
        'province': 'Punjab',
        'address': '12 Canal Road',
        'shipping_address': '03001234567',
    }
