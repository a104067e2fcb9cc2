from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    BroadcastRead,
    Food,
    Notification,
    Order,
    OrderItem,
    Payment,
    Review,
    Rider,
    User,
)


# --- Inlines ---

class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ('food', 'food_name', 'price', 'quantity')

    def has_add_permission(self, request, obj=None):
        return False


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    can_delete = False
    readonly_fields = ('email', 'amount', 'method', 'transaction_id', 'status', 'created_at', 'paid_at')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'name', 'phone', 'role', 'is_active', 'created_at')
    list_filter = ('role', 'is_active', 'is_superuser')
    search_fields = ('name', 'phone', 'username', 'email')
    ordering = ('-date_joined',)
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Marketplace', {'fields': ('name', 'phone', 'role', 'created_at', 'updated_at')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Marketplace', {'fields': ('email', 'name', 'phone', 'role')}),
    )


@admin.register(Food)
class FoodAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'category', 'price', 'discount', 'added_at')
    list_filter = ('category',)
    search_fields = ('name', 'description')
    readonly_fields = ('added_at', 'updated_at')


@admin.register(Rider)
class RiderAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'email', 'phone', 'thana', 'status', 'work_status', 'applied_at')
    list_filter = ('status', 'work_status', 'district')
    search_fields = ('name', 'email', 'phone')
    readonly_fields = ('applied_at', 'active_at', 'updated_at')


# Status fields are read-only here: transitions go through the API so rider
# work status and notifications stay in step.
@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'customer_email', 'status', 'payment_status', 'cashout_status',
        'assigned_rider_name', 'total', 'placed_at',
    )
    list_filter = ('status', 'payment_status', 'cashout_status')
    search_fields = ('id', 'customer_email', 'customer_name', 'assigned_rider_email')
    raw_id_fields = ('customer', 'assigned_rider')
    inlines = (OrderItemInline, PaymentInline)
    readonly_fields = (
        'status', 'payment_status', 'cashout_status',
        'assigned_rider', 'assigned_rider_name', 'assigned_rider_email',
        'placed_at', 'assigned_at', 'picked_at', 'delivered_at',
        'cancelled_at', 'paid_at', 'cashed_out_at', 'updated_at',
    )


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('id', 'order', 'email', 'amount', 'method', 'transaction_id', 'status', 'created_at')
    list_filter = ('status', 'method')
    search_fields = ('transaction_id', 'email', 'order__id')
    raw_id_fields = ('order',)
    readonly_fields = ('created_at', 'paid_at')


class BroadcastReadInline(admin.TabularInline):
    model = BroadcastRead
    extra = 0
    readonly_fields = ('email', 'read_at')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'type', 'email', 'is_read', 'message', 'related_id', 'created_at')
    list_filter = ('type', 'is_read')
    search_fields = ('email', 'message', 'related_id')
    inlines = (BroadcastReadInline,)
    readonly_fields = ('created_at',)


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('id', 'food', 'user_name', 'rating', 'posted_at')
    list_filter = ('rating',)
    search_fields = ('comment', 'user_name', 'food__name')
    readonly_fields = ('posted_at',)
