"""Service functions for availability, stay requests and onboarding."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .exceptions import BookingConflict, BookingError, Conflict, NotPermitted, UsernameTaken
from .models import (
    PRESENCE_TO_STATUS,
    RESERVED_USERNAMES,
    USERNAME_PATTERN,
    AccommodationPhoto,
    Availability,
    Booking,
    OnboardingDraft,
    PaymentType,
    Profile,
)

logger = logging.getLogger(__name__)

PROFILE_DRAFT_FIELDS = (
    'username',
    'display_name',
    'city',
    'country',
    'intent',
    'accommodation_type',
    'bio',
    'default_payment_type',
    'default_price',
    'default_favor_text',
    'default_presence',
)


# Availability


def create_availability(host: Profile, **terms: Any) -> Availability:
    """Publish a new availability entry, pre-filling omitted terms from the host's defaults."""
    if terms.get('payment_type') is None and host.default_payment_type:
        terms['payment_type'] = host.default_payment_type
    if terms.get('price_amount') is None and host.default_price is not None:
        terms['price_amount'] = host.default_price
    if not terms.get('favor_description') and host.default_favor_text:
        terms['favor_description'] = host.default_favor_text
    if terms.get('accommodation_status') is None and host.default_presence:
        terms['accommodation_status'] = PRESENCE_TO_STATUS[host.default_presence]
    terms.setdefault('price_currency', settings.DEFAULT_PRICE_CURRENCY)

    availability = Availability(host=host, **terms)
    if availability.start_date > availability.end_date:
        raise BookingError('Start date must not be after end date.', field='end_date')
    availability.normalize_terms()
    availability.save()
    logger.info(
        'Availability %s published by %s (%s -> %s)',
        availability.id,
        host.username,
        availability.start_date,
        availability.end_date,
    )
    return availability


def delete_availability(availability: Availability, actor: Profile) -> None:
    if availability.host_id != actor.id:
        raise NotPermitted()
    availability_id = availability.id
    availability.delete()
    logger.info('Availability %s removed by %s', availability_id, actor.username)


def delete_accommodation_photo(photo: AccommodationPhoto, actor: Profile) -> None:
    """Remove a photo row together with its stored image file."""
    if photo.host_id != actor.id:
        raise NotPermitted()
    photo_id = photo.id
    photo.image.delete(save=False)
    photo.delete()
    logger.info('Photo %s removed by %s', photo_id, actor.username)


# Stay requests


@dataclass
class BookingRequest:
    host: Profile
    guest: Profile
    start_date: date
    end_date: date
    message: str = ''


def default_request_message(availability: Availability) -> str:
    """Opening line for a request when the guest leaves the message blank."""
    favor = availability.favor_description
    if not favor:
        return ''
    if availability.payment_type == PaymentType.FAVOR:
        return f"Hi! I'd love to stay. I saw you're looking for help with: {favor}. Happy to help with that!"
    if availability.payment_type == PaymentType.SERVICE:
        return f"Hi! I'd love to stay. I can help with: {favor}."
    return ''


@transaction.atomic
def create_booking(request: BookingRequest) -> Booking:
    """Create a pending stay request inside a single availability entry of the host."""
    if request.guest.id == request.host.id:
        raise BookingError('You cannot request a stay with yourself.')
    if request.start_date > request.end_date:
        raise BookingError('Start date must not be after end date.', field='end_date')
    if request.start_date < timezone.localdate():
        raise BookingError('Start date must not be in the past.', field='start_date')

    host = Profile.objects.select_for_update().get(pk=request.host.pk)
    registry = Availability.objects.registry_for(host)
    availability = registry.entry_spanning(request.start_date, request.end_date)
    if availability is None:
        raise BookingError('The selected dates must fall within a single available period.')

    booking = Booking.objects.create(
        host=host,
        guest=request.guest,
        availability=availability,
        start_date=request.start_date,
        end_date=request.end_date,
        message=request.message or default_request_message(availability),
    )
    logger.info('Booking %s requested by %s from %s', booking.id, request.guest.username, host.username)
    return booking


@transaction.atomic
def respond_to_booking(booking: Booking, actor: Profile, decision: str) -> Booking:
    """Host accepts or declines a pending request.

    Accepting is refused when the range overlaps a stay the host already
    accepted, and it declines every other pending request for overlapping
    dates.
    """
    if decision not in Booking.HOST_DECISIONS:
        raise BookingError(f"Unknown decision: {decision}", field='status')
    if booking.host_id != actor.id:
        raise NotPermitted()

    Profile.objects.select_for_update().get(pk=booking.host_id)
    booking = Booking.objects.select_for_update().get(pk=booking.pk)

    if decision == Booking.STATUS_ACCEPTED and booking.status == Booking.STATUS_PENDING:
        overlapping = Booking.objects.for_host(actor).overlapping(booking.start_date, booking.end_date).exclude(
            pk=booking.pk
        )
        if overlapping.accepted().exists():
            raise BookingConflict('These dates overlap a stay you already accepted.')
        booking.change_status(decision)
        superseded = list(overlapping.pending())
        for other in superseded:
            other.change_status(Booking.STATUS_DECLINED)
        if superseded:
            logger.info(
                'Booking %s accepted; auto-declined %s overlapping request(s)', booking.id, len(superseded)
            )
    else:
        booking.change_status(decision)

    logger.info('Booking %s %s by host %s', booking.id, booking.status, actor.username)
    return booking


@transaction.atomic
def cancel_booking(booking: Booking, actor: Profile) -> Booking:
    if booking.guest_id != actor.id:
        raise NotPermitted()
    booking = Booking.objects.select_for_update().get(pk=booking.pk)
    booking.change_status(Booking.STATUS_CANCELLED)
    logger.info('Booking %s cancelled by guest %s', booking.id, actor.username)
    return booking


# Profiles and onboarding


def username_problem(username: Optional[str]) -> Optional[str]:
    """Return why ``username`` cannot be used as a handle, or ``None`` if the format is fine."""
    if not username or len(username) < 3:
        return 'Username must be at least 3 characters.'
    if len(username) > 30:
        return 'Username must be at most 30 characters.'
    if not re.match(USERNAME_PATTERN, username):
        return 'Use only lowercase letters, numbers, hyphens and underscores.'
    if username in RESERVED_USERNAMES:
        return 'This username is reserved.'
    return None


def is_username_available(username: str) -> bool:
    return username_problem(username) is None and not Profile.objects.filter(username=username).exists()


def create_profile(user, **fields: Any) -> Profile:
    """Create the user's profile, mapping a unique-constraint race to ``UsernameTaken``."""
    if Profile.objects.filter(username=fields.get('username')).exists():
        raise UsernameTaken()
    profile = Profile(user=user, **fields)
    profile.full_clean(validate_unique=False)
    try:
        with transaction.atomic():
            profile.save()
    except IntegrityError as exc:
        if Profile.objects.filter(user=user).exists():
            raise Conflict('This account already has a profile.') from exc
        raise UsernameTaken() from exc
    logger.info('Profile %s created for user %s', profile.username, user.pk)
    return profile


def next_step_after_onboarding(draft: OnboardingDraft) -> str:
    """Where the client should go once the profile exists."""
    if draft.profile.is_host:
        return 'share'
    if draft.data.get('referral_username'):
        return f"profile:{draft.data['referral_username']}"
    return 'dashboard'


@transaction.atomic
def finalize_onboarding(draft: OnboardingDraft, user) -> Profile:
    """Turn a draft into the user's profile. Safe to call more than once."""
    draft = OnboardingDraft.objects.select_for_update().get(pk=draft.pk)
    if draft.is_finalized:
        if draft.profile.user_id != user.pk:
            raise NotPermitted()
        return draft.profile

    existing = Profile.objects.filter(user=user).first()
    if existing is not None:
        profile = existing
        logger.info('Draft %s attached to existing profile %s', draft.id, profile.username)
    else:
        fields = {key: draft.data[key] for key in PROFILE_DRAFT_FIELDS if draft.data.get(key) not in (None, '')}
        profile = create_profile(user, **fields)

    draft.profile = profile
    draft.save(update_fields=['profile', 'updated_at'])
    return profile
