from django.contrib import admin, messages

from . import services
from .models import (
    User,
    Customer,
    Address,
    Restaurant,
    Menu,
    MenuItem,
    Courier,
    Order,
    OrderItem,
    Payment,
    Delivery,
    Review,
)


# --- Inlines ---

class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    autocomplete_fields = ['menu_item']
    readonly_fields = ['line_total']


class MenuItemInline(admin.TabularInline):
    model = MenuItem
    extra = 0


class AddressInline(admin.TabularInline):
    model = Address
    extra = 0


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('id', 'full_name', 'email', 'phone', 'role', 'created_at')
    list_filter = ('role',)
    search_fields = ('full_name', 'email', 'phone')


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ('user', 'loyalty_status')
    list_filter = ('loyalty_status',)
    search_fields = ('user__full_name', 'user__email')
    autocomplete_fields = ('user',)
    inlines = [AddressInline]


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ('id', 'customer', 'address_line', 'city', 'province', 'is_default')
    list_filter = ('city', 'province')
    search_fields = ('address_line', 'city', 'postal_code')
    autocomplete_fields = ('customer',)


@admin.register(Restaurant)
class RestaurantAdmin(admin.ModelAdmin):
    list_display = ('name', 'cuisine_type', 'city', 'rating_avg', 'owner')
    list_filter = ('cuisine_type', 'city')
    search_fields = ('name',)
    autocomplete_fields = ('owner',)
    readonly_fields = ('rating_avg',)
    actions = ['recompute_rating']

    @admin.action(description='Recompute rating average')
    def recompute_rating(self, request, queryset):
        updated = 0
        for restaurant in queryset:
            services.recompute_restaurant_rating(restaurant.pk)
            updated += 1
        self.message_user(request, f'Recomputed rating for {updated} restaurant(s).', messages.SUCCESS)


@admin.register(Menu)
class MenuAdmin(admin.ModelAdmin):
    list_display = ('title', 'restaurant', 'is_active', 'created_at')
    list_filter = ('is_active', 'restaurant')
    search_fields = ('title', 'restaurant__name')
    autocomplete_fields = ('restaurant',)
    inlines = [MenuItemInline]


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'menu', 'price', 'is_veg')
    list_filter = ('is_veg', 'menu__restaurant')
    search_fields = ('name', 'description')
    autocomplete_fields = ('menu',)


@admin.register(Courier)
class CourierAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'vehicle_type', 'license_no', 'is_active')
    list_filter = ('vehicle_type', 'is_active')
    search_fields = ('license_no', 'user__full_name')
    autocomplete_fields = ('user',)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'customer', 'restaurant', 'status', 'subtotal', 'tax', 'delivery_fee', 'total', 'order_time')
    list_filter = ('status', 'restaurant')
    search_fields = ('id', 'customer__user__full_name', 'restaurant__name')
    autocomplete_fields = ('customer', 'restaurant', 'address')
    readonly_fields = ('subtotal', 'tax', 'total')
    inlines = [OrderItemInline]
    actions = ['recompute_totals']

    def get_readonly_fields(self, request, obj=None):
        # delivery_fee is fixed once the order exists
        if obj is not None:
            return self.readonly_fields + ('delivery_fee',)
        return self.readonly_fields

    @admin.action(description='Recompute totals from items')
    def recompute_totals(self, request, queryset):
        updated = 0
        for order in queryset:
            services.recompute_order_totals(order.pk)
            updated += 1
        self.message_user(request, f'Recomputed totals for {updated} order(s).', messages.SUCCESS)


@admin.register(OrderItem)
class OrderItemAdmin(admin.ModelAdmin):
    list_display = ('id', 'order', 'menu_item', 'quantity', 'unit_price', 'line_total')
    list_filter = ('order__restaurant',)
    autocomplete_fields = ('order', 'menu_item')
    readonly_fields = ('line_total',)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('id', 'order', 'method', 'amount', 'status')
    list_filter = ('method', 'status')
    autocomplete_fields = ('order',)


@admin.register(Delivery)
class DeliveryAdmin(admin.ModelAdmin):
    list_display = ('id', 'order', 'courier', 'status', 'pickup_time', 'dropoff_time', 'distance_km')
    list_filter = ('status',)
    autocomplete_fields = ('order', 'courier')


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('id', 'restaurant', 'customer', 'order', 'rating', 'created_at')
    list_filter = ('rating', 'restaurant')
    search_fields = ('comments', 'restaurant__name')
    autocomplete_fields = ('order', 'customer', 'restaurant')
