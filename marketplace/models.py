from django.db import models
from django.contrib.auth.models import AbstractUser
from decimal import Decimal


# --- Choice constants ---

class Role(models.TextChoices):
    CUSTOMER = 'customer', 'Customer'
    ADMIN = 'admin', 'Admin'
    RIDER = 'rider', 'Rider'


class OrderStatus(models.TextChoices):
    NOT_ASSIGNED = 'not_assigned', 'Not Assigned'
    ASSIGNED = 'assigned', 'Assigned'
    PICKED = 'picked', 'Picked'
    DELIVERED = 'delivered', 'Delivered'
    CANCELLED = 'cancelled', 'Cancelled'


class PaymentStatus(models.TextChoices):
    UNPAID = 'unpaid', 'Unpaid'
    PAID = 'paid', 'Paid'


class CashoutStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CASHED_OUT = 'cashed_out', 'Cashed Out'


class RiderStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ACTIVE = 'active', 'Active'


class WorkStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    IN_DELIVERY = 'in_delivery', 'In Delivery'


class PaymentRecordStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    DONE = 'payment done', 'Payment Done'


class NotificationType(models.TextChoices):
    DIRECT = 'direct', 'Direct'
    BROADCAST = 'broadcast', 'Broadcast'


# Statuses in which an order carries an assigned rider.
RIDER_BOUND_STATUSES = (OrderStatus.ASSIGNED, OrderStatus.PICKED, OrderStatus.DELIVERED)
# Statuses in which the assigned rider is still busy with the order.
ACTIVE_DELIVERY_STATUSES = (OrderStatus.ASSIGNED, OrderStatus.PICKED)


# --- Models ---

class User(AbstractUser):
    """Marketplace account; role decides which order transitions the user may drive."""
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    role = models.CharField(
        max_length=20, choices=Role.choices, default=Role.CUSTOMER
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'marketplace_user'

    def save(self, *args, **kwargs):
        if not self.name and (self.first_name or self.last_name):
            self.name = f'{self.first_name or ""} {self.last_name or ""}'.strip()
        super().save(*args, **kwargs)


class Food(models.Model):
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    discount = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('0'),
        help_text='Discount percentage'
    )
    image = models.URLField(blank=True)
    added_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='foods_added'
    )
    added_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'marketplace_food'
        ordering = ['-added_at']

    def __str__(self):
        return self.name


class Rider(models.Model):
    """Rider application; becomes eligible for assignment once status is active."""
    user = models.OneToOneField(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='rider_profile'
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True)
    age = models.PositiveIntegerField(null=True, blank=True)
    district = models.CharField(max_length=100, blank=True)
    thana = models.CharField(max_length=100, blank=True)
    region = models.CharField(max_length=100, blank=True)
    vehicle = models.CharField(max_length=100, blank=True)
    status = models.CharField(
        max_length=20, choices=RiderStatus.choices, default=RiderStatus.PENDING
    )
    work_status = models.CharField(
        max_length=20, choices=WorkStatus.choices, default=WorkStatus.AVAILABLE
    )
    applied_at = models.DateTimeField(auto_now_add=True)
    active_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'marketplace_rider'
        ordering = ['name']

    def __str__(self):
        return f'{self.name} ({self.email})'


class Order(models.Model):
    customer = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='orders'
    )
    customer_name = models.CharField(max_length=255, blank=True)
    customer_email = models.EmailField(db_index=True)
    customer_phone = models.CharField(max_length=20)
    district = models.CharField(max_length=100)
    thana = models.CharField(max_length=100)
    region = models.CharField(max_length=100)
    total = models.DecimalField(max_digits=12, decimal_places=2)
    delivery_charge = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0')
    )
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.NOT_ASSIGNED
    )
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID
    )
    cashout_status = models.CharField(
        max_length=20, choices=CashoutStatus.choices, default=CashoutStatus.PENDING
    )
    assigned_rider = models.ForeignKey(
        Rider, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='orders'
    )
    assigned_rider_name = models.CharField(max_length=255, blank=True)
    assigned_rider_email = models.EmailField(blank=True, db_index=True)
    placed_at = models.DateTimeField(auto_now_add=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    picked_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    cashed_out_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'marketplace_order'
        ordering = ['-placed_at']

    def __str__(self):
        return f'Order #{self.id} ({self.customer_email})'


class OrderItem(models.Model):
    """Line of an order. Written once at checkout, never edited."""
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name='items'
    )
    food = models.ForeignKey(
        Food, on_delete=models.PROTECT, related_name='order_items'
    )
    food_name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField()

    class Meta:
        db_table = 'marketplace_order_item'
        ordering = ['order', 'id']

    def __str__(self):
        return f'{self.food_name} x{self.quantity} (Order #{self.order_id})'

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError('Order items cannot be changed after checkout.')
        super().save(*args, **kwargs)


class Payment(models.Model):
    """
    One payment attempt. Gateway attempts start pending and are deleted when the
    gateway reports failure or cancellation.
    """
    order = models.ForeignKey(
        Order, on_delete=models.PROTECT, related_name='payments'
    )
    email = models.EmailField()
    name = models.CharField(max_length=255, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=50)
    transaction_id = models.CharField(max_length=100, unique=True)
    status = models.CharField(
        max_length=20, choices=PaymentRecordStatus.choices,
        default=PaymentRecordStatus.PENDING
    )
    created_at = models.DateTimeField(auto_now_add=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'marketplace_payment'
        ordering = ['-created_at']

    def __str__(self):
        return f'Payment {self.transaction_id} (Order #{self.order_id})'


class Notification(models.Model):
    """
    Direct: one recipient email with an is_read flag.
    Broadcast: no recipient; per-user read state lives in BroadcastRead rows.
    """
    type = models.CharField(
        max_length=20, choices=NotificationType.choices, default=NotificationType.DIRECT
    )
    email = models.EmailField(blank=True, db_index=True)
    is_read = models.BooleanField(default=False)
    message = models.TextField()
    related_id = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'marketplace_notification'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f'Notification #{self.id} ({self.type})'


class BroadcastRead(models.Model):
    """Membership of an email in a broadcast notification's read-by set."""
    notification = models.ForeignKey(
        Notification, on_delete=models.CASCADE, related_name='reads'
    )
    email = models.EmailField()
    read_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'marketplace_broadcast_read'
        constraints = [
            models.UniqueConstraint(
                fields=['notification', 'email'],
                name='unique_broadcast_read',
            ),
        ]


class Review(models.Model):
    """Customer review of a food item."""
    food = models.ForeignKey(
        Food, on_delete=models.CASCADE, related_name='reviews'
    )
    user = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='reviews'
    )
    user_name = models.CharField(max_length=255, blank=True)
    user_photo = models.URLField(blank=True)
    rating = models.PositiveSmallIntegerField()
    comment = models.TextField()
    images = models.JSONField(default=list, blank=True)
    posted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'marketplace_review'
        ordering = ['-posted_at', '-id']

    def __str__(self):
        return f'Review #{self.id} of {self.food_id} ({self.rating})'
