from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models
from django.utils import timezone
import uuid


class SubscriptionTier(models.TextChoices):
    FREE = 'free', 'Free'
    PRO = 'pro', 'Pro'


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """Custom user model with email authentication."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=255, db_index=True)
    display_name = models.CharField(max_length=100, blank=True)

    # Permissions
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    last_login = models.DateTimeField(null=True, blank=True)

    # GDPR compliance
    gdpr_deleted_at = models.DateTimeField(null=True, blank=True)

    # Preferences (JSON field for flexibility)
    preferences = models.JSONField(default=dict, blank=True)

    # Subscription projection, written only by the billing state machine
    subscription_tier = models.CharField(
        max_length=10,
        choices=SubscriptionTier.choices,
        default=SubscriptionTier.FREE
    )
    subscription_status = models.CharField(max_length=20, default='active')
    is_paused = models.BooleanField(default=False)
    billing_customer_id = models.CharField(max_length=64, null=True, blank=True)
    billing_subscription_id = models.CharField(max_length=64, null=True, blank=True)
    current_period_end = models.DateTimeField(null=True, blank=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['email'], name='users_email_idx'),
            models.Index(fields=['created_at'], name='users_created_idx'),
        ]

    def __str__(self):
        return self.email

    def get_display_name(self):
        """Return display name or email prefix."""
        return self.display_name or self.email.split('@')[0]

    def has_pro_access(self, now=None):
        """
        Return True if the user is entitled to Pro features right now.

        A cancelled subscription keeps Pro access until the paid period
        elapses, even if the stored tier was already flipped to free.
        """
        now = now or timezone.now()
        if self.subscription_status == 'cancelled' and self.current_period_end:
            return self.current_period_end > now
        return self.subscription_tier == SubscriptionTier.PRO

    def anonymize(self):
        """GDPR-compliant anonymization."""
        self.subscriptions.all().delete()

        self.email = f"deleted_{self.id}@anonymized.local"
        self.display_name = "Deleted User"
        self.is_active = False
        self.gdpr_deleted_at = timezone.now()
        self.set_unusable_password()
        self.preferences = {}
        self.subscription_tier = SubscriptionTier.FREE
        self.subscription_status = 'expired'
        self.is_paused = False
        self.billing_customer_id = None
        self.billing_subscription_id = None
        self.current_period_end = None
        self.save()
