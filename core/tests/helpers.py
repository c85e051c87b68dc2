"""Builders for reference rows used across the test modules."""
from decimal import Decimal
from types import SimpleNamespace

from core.constants import TWO_PLACES
from core.models import (
    Address,
    Courier,
    Customer,
    Menu,
    MenuItem,
    Order,
    Restaurant,
    User,
    UserRole,
    VehicleType,
)


def make_customer(email='customer@example.com', full_name='Asha Patel'):
    user = User.objects.create(full_name=full_name, email=email, role=UserRole.CUSTOMER)
    return Customer.objects.create(user=user)


def make_address(customer, line='12 King St W'):
    return Address.objects.create(
        customer=customer,
        address_line=line,
        city='Toronto',
        province='ON',
        postal_code='M5H 1A1',
        country='Canada',
        is_default=True,
    )


def make_restaurant(name='Pasta Place', owner_email=None):
    owner = User.objects.create(
        full_name=f'{name} Owner',
        email=owner_email or f'owner-{name.lower().replace(" ", "-")}@example.com',
        role=UserRole.RESTAURANT_OWNER,
    )
    return Restaurant.objects.create(owner=owner, name=name, cuisine_type='Italian', city='Toronto')


def make_menu_item(restaurant, price, name='Dish', pk=None):
    menu = restaurant.menus.first() or Menu.objects.create(restaurant=restaurant, title='Main')
    return MenuItem.objects.create(pk=pk, menu=menu, name=name, price=Decimal(price))


def make_world():
    """Customer with an address, a restaurant and items 4010 (8.50) and 4011 (5.00)."""
    customer = make_customer()
    address = make_address(customer)
    restaurant = make_restaurant()
    item_a = make_menu_item(restaurant, '8.50', name='Margherita', pk=4010)
    item_b = make_menu_item(restaurant, '5.00', name='Garlic Bread', pk=4011)
    return SimpleNamespace(
        customer=customer,
        address=address,
        restaurant=restaurant,
        item_a=item_a,
        item_b=item_b,
    )


def make_order(world, delivery_fee='3.99'):
    """An empty order, as created before any line items exist."""
    return Order.objects.create(
        customer=world.customer,
        restaurant=world.restaurant,
        address=world.address,
        delivery_fee=Decimal(delivery_fee),
    )


def expected_totals(line_totals, delivery_fee):
    subtotal = sum((Decimal(t) for t in line_totals), Decimal('0')).quantize(TWO_PLACES)
    tax = (subtotal * Decimal('0.13')).quantize(TWO_PLACES, rounding='ROUND_HALF_UP')
    total = (subtotal + tax + Decimal(delivery_fee)).quantize(TWO_PLACES, rounding='ROUND_HALF_UP')
    return subtotal, tax, total


def make_courier(license_no, vehicle_type=VehicleType.BIKE, full_name='Sam Rider'):
    user = User.objects.create(
        full_name=full_name, email=f'{license_no.lower()}@couriers.example.com', role=UserRole.COURIER
    )
    return Courier.objects.create(user=user, vehicle_type=vehicle_type, license_no=license_no)
