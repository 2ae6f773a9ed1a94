"""Domain models for the hospitality exchange."""
from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MaxLengthValidator, MinLengthValidator, MinValueValidator, RegexValidator
from django.db import models

from .calendar import AvailabilityRegistry
from .exceptions import InvalidTransition

USERNAME_PATTERN = r'^[a-z0-9_-]+$'
RESERVED_USERNAMES = frozenset({'admin', 'api', 'auth', 'dashboard', 'onboarding'})
MAX_PHOTOS = 5  # per host


def validate_not_reserved(value: str) -> None:
    if value in RESERVED_USERNAMES:
        raise ValidationError('This username is reserved.')


class BaseModel(models.Model):
    """Base model that uses UUID primary keys for consistency."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True


class TimestampedModel(BaseModel):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class AccommodationType(models.TextChoices):
    ROOM = 'room', 'Private room'
    SOFA = 'sofa', 'Sofa'
    AIRBED = 'airbed', 'Air bed'
    OTHER = 'other', 'Other'


class Intent(models.TextChoices):
    HOST = 'host', 'Host'
    GUEST = 'guest', 'Guest'
    BOTH = 'both', 'Both'


class PaymentType(models.TextChoices):
    FREE = 'free', 'Free'
    FRIEND_PRICE = 'friend_price', 'Friend price'
    FAVOR = 'favor', 'Favor exchange'
    SERVICE = 'service', 'Service needed'


class Presence(models.TextChoices):
    HOME = 'home', 'Host at home'
    EMPTY = 'empty', 'Empty apartment'
    SHARED = 'shared', 'Someone else present'


class AccommodationStatus(models.TextChoices):
    EMPTY = 'empty', 'Empty apartment'
    HOST_PRESENT = 'host_present', 'Host will be home'
    SHARED = 'shared', 'Someone else present'


# Profile defaults are phrased as presence, entries as accommodation status.
PRESENCE_TO_STATUS = {
    Presence.HOME: AccommodationStatus.HOST_PRESENT,
    Presence.EMPTY: AccommodationStatus.EMPTY,
    Presence.SHARED: AccommodationStatus.SHARED,
}

FAVOR_PAYMENT_TYPES = (PaymentType.FAVOR, PaymentType.SERVICE)


class Profile(BaseModel):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    username = models.CharField(
        max_length=30,
        unique=True,
        validators=[
            MinLengthValidator(3),
            RegexValidator(USERNAME_PATTERN, 'Use only lowercase letters, numbers, hyphens and underscores.'),
            validate_not_reserved,
        ],
    )
    display_name = models.CharField(max_length=50)
    city = models.CharField(max_length=100, db_index=True)
    country = models.CharField(max_length=100)
    accommodation_type = models.CharField(
        max_length=20, choices=AccommodationType.choices, default=AccommodationType.ROOM
    )
    bio = models.TextField(blank=True, validators=[MaxLengthValidator(300)])
    avatar = models.ImageField(upload_to='avatars/', blank=True)
    intent = models.CharField(max_length=10, choices=Intent.choices, null=True, blank=True)
    default_payment_type = models.CharField(max_length=20, choices=PaymentType.choices, null=True, blank=True)
    default_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    default_favor_text = models.TextField(blank=True, validators=[MaxLengthValidator(300)])
    default_presence = models.CharField(max_length=10, choices=Presence.choices, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Profile({self.username})"

    @property
    def is_host(self) -> bool:
        return self.intent in (Intent.HOST, Intent.BOTH)

    @property
    def is_guest(self) -> bool:
        return self.intent in (Intent.GUEST, Intent.BOTH)

    def completeness(self) -> dict:
        """Weighted checklist of what a public profile is still missing."""
        checks = [
            ('username', bool(self.username), 20),
            ('avatar', bool(self.avatar), 20),
            ('photos', self.photos.exists(), 20),
            ('bio', bool(self.bio), 10),
            ('availability', self.availabilities.exists(), 30),
        ]
        return {
            'percentage': sum(weight for _, done, weight in checks if done),
            'missing': [label for label, done, _ in checks if not done],
        }


class AccommodationPhoto(BaseModel):
    host = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name='photos')
    image = models.ImageField(upload_to='accommodation_photos/')
    display_order = models.PositiveIntegerField(default=0)
    caption = models.CharField(max_length=200, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['display_order', 'created_at']


class AvailabilityQuerySet(models.QuerySet):
    def for_host(self, host: Profile, min_end_date: Optional[date] = None):
        qs = self.filter(host=host)
        if min_end_date is not None:
            qs = qs.filter(end_date__gte=min_end_date)
        return qs.order_by('start_date', 'created_at')

    def registry_for(self, host: Profile, min_end_date: Optional[date] = None) -> AvailabilityRegistry:
        """Registry over the host's entries, newest first so the latest entry wins overlaps."""
        entries = self.for_host(host, min_end_date).order_by('-created_at')
        return AvailabilityRegistry(entries)


class Availability(BaseModel):
    host = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name='availabilities')
    start_date = models.DateField(db_index=True)
    end_date = models.DateField(db_index=True)
    accommodation_status = models.CharField(
        max_length=20, choices=AccommodationStatus.choices, null=True, blank=True
    )
    payment_type = models.CharField(max_length=20, choices=PaymentType.choices, null=True, blank=True)
    price_amount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    price_currency = models.CharField(max_length=3, default='EUR')
    favor_description = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = AvailabilityQuerySet.as_manager()

    class Meta:
        ordering = ['start_date']
        verbose_name_plural = 'availabilities'
        constraints = [
            models.CheckConstraint(
                condition=models.Q(start_date__lte=models.F('end_date')),
                name='availability_start_before_end',
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.host.username}: {self.start_date} -> {self.end_date}"

    def normalize_terms(self) -> None:
        """Drop term fields that do not apply to the payment type."""
        if self.payment_type != PaymentType.FRIEND_PRICE:
            self.price_amount = None
        if self.payment_type not in FAVOR_PAYMENT_TYPES:
            self.favor_description = ''

    def summary(self) -> str:
        parts = []
        if self.accommodation_status:
            parts.append(self.get_accommodation_status_display())
        if self.payment_type == PaymentType.FREE:
            parts.append('Free')
        elif self.payment_type == PaymentType.FRIEND_PRICE and self.price_amount:
            parts.append(f"{self.price_currency} {self.price_amount}/night")
        elif self.payment_type in FAVOR_PAYMENT_TYPES and self.favor_description:
            parts.append(f"{self.get_payment_type_display()}: {self.favor_description}")
        if self.notes:
            parts.append(self.notes)
        return ' - '.join(parts)


class BookingQuerySet(models.QuerySet):
    def for_host(self, host: Profile):
        return self.filter(host=host)

    def for_guest(self, guest: Profile):
        return self.filter(guest=guest)

    def pending(self):
        return self.filter(status=Booking.STATUS_PENDING)

    def accepted(self):
        return self.filter(status=Booking.STATUS_ACCEPTED)

    def overlapping(self, start: date, end: date):
        """Bookings sharing at least one night with the inclusive range."""
        return self.filter(start_date__lte=end, end_date__gte=start)


class Booking(TimestampedModel):
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_DECLINED = 'declined'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_DECLINED, 'Declined'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    host = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name='hosted_bookings')
    guest = models.ForeignKey(Profile, on_delete=models.CASCADE, related_name='trips')
    availability = models.ForeignKey(
        Availability, on_delete=models.SET_NULL, null=True, blank=True, related_name='bookings'
    )
    start_date = models.DateField(db_index=True)
    end_date = models.DateField(db_index=True)
    message = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [models.Index(fields=['host', 'status'], name='booking_host_status_idx')]

    # Terminal statuses have no entry.
    ALLOWED_TRANSITIONS = {
        STATUS_PENDING: {STATUS_ACCEPTED, STATUS_DECLINED, STATUS_CANCELLED},
    }
    HOST_DECISIONS = (STATUS_ACCEPTED, STATUS_DECLINED)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Booking({self.guest_id} @ {self.host_id}, {self.start_date}->{self.end_date}, {self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status not in self.ALLOWED_TRANSITIONS

    def change_status(self, new_status: str) -> None:
        """Enforce finite state machine for booking statuses."""
        allowed = self.ALLOWED_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidTransition(f"Invalid transition from {self.status} to {new_status}")
        self.status = new_status
        self.save(update_fields=['status', 'updated_at'])


class OnboardingDraft(TimestampedModel):
    """Wizard answers kept server-side so they survive an auth redirect."""

    session_key = models.CharField(max_length=64, blank=True, db_index=True)
    data = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    current_step = models.PositiveSmallIntegerField(default=0)
    profile = models.ForeignKey(
        Profile, on_delete=models.SET_NULL, null=True, blank=True, related_name='onboarding_drafts'
    )

    @property
    def is_finalized(self) -> bool:
        return self.profile_id is not None
