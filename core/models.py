from django.db import models, transaction
from django.db.models import Q
from django.utils import timezone
from decimal import Decimal

from .constants import MAX_RATING, MIN_RATING, compute_line_total, to_int
from .exceptions import ConstraintViolationError


# --- Choice constants ---

class UserRole(models.TextChoices):
    CUSTOMER = 'customer', 'Customer'
    RESTAURANT_OWNER = 'restaurant_owner', 'Restaurant Owner'
    COURIER = 'courier', 'Courier'
    ADMIN = 'admin', 'Admin'


class LoyaltyStatus(models.TextChoices):
    BRONZE = 'Bronze', 'Bronze'
    SILVER = 'Silver', 'Silver'
    GOLD = 'Gold', 'Gold'
    PLATINUM = 'Platinum', 'Platinum'


class VehicleType(models.TextChoices):
    BIKE = 'Bike', 'Bike'
    CAR = 'Car', 'Car'
    SCOOTER = 'Scooter', 'Scooter'


class OrderStatus(models.TextChoices):
    PLACED = 'placed', 'Placed'
    PREPARING = 'preparing', 'Preparing'
    OUT_FOR_DELIVERY = 'out_for_delivery', 'Out For Delivery'
    DELIVERED = 'delivered', 'Delivered'
    CANCELLED = 'cancelled', 'Cancelled'


class PaymentMethod(models.TextChoices):
    CARD = 'card', 'Card'
    WALLET = 'wallet', 'Wallet'
    CASH = 'cash', 'Cash'
    UPI = 'upi', 'UPI'


class PaymentStatus(models.TextChoices):
    PAID = 'paid', 'Paid'
    REFUNDED = 'refunded', 'Refunded'
    PENDING = 'pending', 'Pending'


class DeliveryStatus(models.TextChoices):
    ASSIGNED = 'assigned', 'Assigned'
    PICKED_UP = 'picked_up', 'Picked Up'
    DELIVERED = 'delivered', 'Delivered'
    FAILED = 'failed', 'Failed'


# --- Reference tables ---

class User(models.Model):
    """Domain user (customer, owner, courier, admin). Not the Django auth user."""
    full_name = models.CharField(max_length=100)
    email = models.EmailField(max_length=120, unique=True)
    phone = models.CharField(max_length=20, blank=True)
    role = models.CharField(max_length=20, choices=UserRole.choices)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'users'
        ordering = ['id']

    def __str__(self):
        return f'{self.full_name} ({self.role})'


class Customer(models.Model):
    # customer id equals user id
    user = models.OneToOneField(
        User, on_delete=models.CASCADE, primary_key=True, related_name='customer_profile'
    )
    loyalty_status = models.CharField(
        max_length=10, choices=LoyaltyStatus.choices, default=LoyaltyStatus.BRONZE
    )
    preferences = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'customers'
        ordering = ['user']

    def __str__(self):
        return self.user.full_name


class Address(models.Model):
    customer = models.ForeignKey(
        Customer, on_delete=models.CASCADE, related_name='addresses'
    )
    address_line = models.CharField(max_length=120)
    city = models.CharField(max_length=60)
    province = models.CharField(max_length=10)
    postal_code = models.CharField(max_length=10)
    country = models.CharField(max_length=60)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    is_default = models.BooleanField(default=False)

    class Meta:
        db_table = 'addresses'
        ordering = ['customer', 'id']

    def __str__(self):
        return f'{self.address_line}, {self.city}'


class Restaurant(models.Model):
    owner = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name='restaurants'
    )
    name = models.CharField(max_length=120)
    cuisine_type = models.CharField(max_length=40)
    phone = models.CharField(max_length=20, blank=True)
    city = models.CharField(max_length=60, blank=True)
    # Derived: mean of review ratings, maintained by services.recompute_restaurant_rating
    rating_avg = models.DecimalField(max_digits=3, decimal_places=2, null=True, blank=True)
    hours = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'restaurants'
        ordering = ['name']

    def __str__(self):
        return self.name


class Menu(models.Model):
    restaurant = models.ForeignKey(
        Restaurant, on_delete=models.CASCADE, related_name='menus'
    )
    title = models.CharField(max_length=80)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'menus'
        ordering = ['restaurant', 'title']

    def __str__(self):
        return f'{self.title} ({self.restaurant_id})'


class MenuItem(models.Model):
    menu = models.ForeignKey(
        Menu, on_delete=models.CASCADE, related_name='items'
    )
    name = models.CharField(max_length=120)
    description = models.CharField(max_length=255, blank=True)
    price = models.DecimalField(max_digits=8, decimal_places=2)
    calories = models.PositiveIntegerField(null=True, blank=True)
    is_veg = models.BooleanField(default=False)
    allergens = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'menu_items'
        ordering = ['menu', 'name']

    def __str__(self):
        return f'{self.name} ({self.price})'


class Courier(models.Model):
    user = models.ForeignKey(
        User, on_delete=models.PROTECT, related_name='courier_profiles'
    )
    vehicle_type = models.CharField(max_length=10, choices=VehicleType.choices)
    license_no = models.CharField(max_length=40, unique=True)
    hired_at = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'couriers'
        ordering = ['id']

    def __str__(self):
        return f'Courier #{self.id} ({self.vehicle_type})'


# --- Orders ---

class Order(models.Model):
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name='orders'
    )
    restaurant = models.ForeignKey(
        Restaurant, on_delete=models.PROTECT, related_name='orders'
    )
    address = models.ForeignKey(
        Address, on_delete=models.PROTECT, related_name='orders'
    )
    order_time = models.DateTimeField(default=timezone.now)
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PLACED
    )
    # subtotal, tax and total are derived from items; see services.recompute_order_totals
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    special_instructions = models.TextField(blank=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-order_time']
        indexes = [
            models.Index(fields=['order_time'], name='idx_orders_time'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(total__gte=0), name='chk_total_nonneg'
            ),
        ]

    def __str__(self):
        return f'Order #{self.id} ({self.status})'


class OrderItem(models.Model):
    """One menu item and quantity on an order. Identified by (order, menu_item)."""
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name='items'
    )
    menu_item = models.ForeignKey(
        MenuItem, on_delete=models.PROTECT, related_name='order_items'
    )
    quantity = models.PositiveIntegerField()
    # price snapshot taken when the line is created
    unit_price = models.DecimalField(max_digits=8, decimal_places=2, blank=True)
    line_total = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = 'order_items'
        ordering = ['order', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['order', 'menu_item'], name='unique_order_menu_item'
            ),
            models.CheckConstraint(
                condition=Q(quantity__gt=0), name='chk_qty'
            ),
        ]

    def __str__(self):
        return f'{self.quantity} x {self.menu_item_id} on order #{self.order_id}'

    def save(self, *args, **kwargs):
        """Validate, fill price snapshot and line_total; the totals hook runs in the same transaction."""
        try:
            quantity = to_int(self.quantity)
        except (TypeError, ValueError):
            raise ConstraintViolationError(
                f'Quantity must be an integer (got {self.quantity!r})', quantity=self.quantity
            )
        if quantity <= 0:
            raise ConstraintViolationError(
                f'Quantity must be greater than 0 (got {quantity})', quantity=quantity
            )
        self.quantity = quantity
        if self.unit_price is None:
            self.unit_price = self.menu_item.price
        self.line_total = compute_line_total(self.unit_price, self.quantity)
        with transaction.atomic():
            super().save(*args, **kwargs)


class Payment(models.Model):
    order = models.OneToOneField(
        Order, on_delete=models.CASCADE, related_name='payment'
    )
    method = models.CharField(max_length=10, choices=PaymentMethod.choices)
    # amount is the order total at creation time, not live-linked
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(
        max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    details = models.JSONField(null=True, blank=True, db_column='transaction_json')

    class Meta:
        db_table = 'payments'
        ordering = ['id']

    def __str__(self):
        return f'Payment #{self.id} {self.amount} ({self.status})'


class Delivery(models.Model):
    order = models.OneToOneField(
        Order, on_delete=models.CASCADE, related_name='delivery'
    )
    courier = models.ForeignKey(
        Courier, on_delete=models.PROTECT, related_name='deliveries'
    )
    pickup_time = models.DateTimeField(null=True, blank=True)
    dropoff_time = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=10, choices=DeliveryStatus.choices, default=DeliveryStatus.ASSIGNED
    )
    distance_km = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    shipping_label_xml = models.TextField(blank=True)

    class Meta:
        db_table = 'deliveries'
        ordering = ['id']
        verbose_name_plural = 'deliveries'

    def __str__(self):
        return f'Delivery #{self.id} ({self.status})'


class Review(models.Model):
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name='reviews'
    )
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name='reviews'
    )
    restaurant = models.ForeignKey(
        Restaurant, on_delete=models.PROTECT, related_name='reviews'
    )
    rating = models.PositiveSmallIntegerField()
    comments = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    sentiment = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'reviews'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=Q(rating__gte=MIN_RATING) & Q(rating__lte=MAX_RATING),
                name='chk_rating_range',
            ),
        ]

    def __str__(self):
        return f'Review #{self.id} ({self.rating})'

    def save(self, *args, **kwargs):
        try:
            rating = to_int(self.rating)
        except (TypeError, ValueError):
            raise ConstraintViolationError(f'Rating must be an integer (got {self.rating!r})', rating=self.rating)
        if not (MIN_RATING <= rating <= MAX_RATING):
            raise ConstraintViolationError(
                f'Rating must be between {MIN_RATING} and {MAX_RATING} (got {rating})', rating=rating
            )
        self.rating = rating
        with transaction.atomic():
            super().save(*args, **kwargs)
