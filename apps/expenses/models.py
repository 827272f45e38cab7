from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone
from decimal import Decimal
import uuid


class SplitMethod(models.TextChoices):
    EQUAL = 'equal', 'Equal'
    CUSTOM = 'custom', 'Custom amounts'
    BY_ITEM = 'by_item', 'By item'


class Expense(models.Model):
    """
    A group expense paid by one member.

    The splits of an expense always add up to its amount. Both are written
    together by ExpenseService.create_expense and never edited afterwards.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    group = models.ForeignKey(
        'groups.Group',
        on_delete=models.CASCADE,
        related_name='expenses'
    )
    description = models.CharField(max_length=255)
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    paid_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='expenses_paid'
    )
    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='expenses_created'
    )
    split_method = models.CharField(
        max_length=10,
        choices=SplitMethod.choices,
        default=SplitMethod.EQUAL
    )
    category = models.CharField(max_length=50, blank=True)
    receipt_url = models.URLField(max_length=500, blank=True)
    date = models.DateField(default=timezone.localdate)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'expenses'
        indexes = [
            models.Index(fields=['group', 'date'], name='expenses_group_date_idx'),
            models.Index(fields=['paid_by', 'date'], name='expenses_paid_by_date_idx'),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.description} - {self.amount} ({self.group.name})"


class ExpenseSplit(models.Model):
    """One participant's share of an expense."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    expense = models.ForeignKey(
        Expense,
        on_delete=models.CASCADE,
        related_name='splits'
    )
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='expense_splits'
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = 'expense_splits'
        unique_together = [['expense', 'user']]
        indexes = [
            models.Index(fields=['user'], name='expense_splits_user_idx'),
        ]

    def __str__(self):
        return f"{self.user.get_display_name()} owes {self.amount}"


class ExpenseItem(models.Model):
    """Receipt line of an itemized expense."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    expense = models.ForeignKey(
        Expense,
        on_delete=models.CASCADE,
        related_name='items'
    )
    name = models.CharField(max_length=200)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    # Tax, tip, delivery: spread over everyone in proportion to what they ordered
    is_shared_cost = models.BooleanField(default=False)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'expense_items'
        ordering = ['position']

    def __str__(self):
        return f"{self.name} x{self.quantity} @ {self.price}"

    @property
    def total(self):
        return self.price * self.quantity


class ItemAssignment(models.Model):
    """Who consumed an item; assignees divide the item equally."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(
        ExpenseItem,
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='item_assignments'
    )
    share_percentage = models.DecimalField(max_digits=5, decimal_places=2)

    class Meta:
        db_table = 'item_assignments'
        unique_together = [['item', 'user']]

    def __str__(self):
        return f"{self.user.get_display_name()}: {self.share_percentage}% of {self.item.name}"


class Settlement(models.Model):
    """A direct repayment from one group member to another."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(
        'groups.Group',
        on_delete=models.CASCADE,
        related_name='settlements'
    )
    payer = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='settlements_paid'
    )
    payee = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        related_name='settlements_received'
    )
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    date = models.DateField(default=timezone.localdate)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'settlements'
        indexes = [
            models.Index(fields=['group', 'date'], name='settlements_group_date_idx'),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.payer.get_display_name()} paid {self.payee.get_display_name()} {self.amount}"
