from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.management.base import BaseCommand
from django.utils import timezone

from hospitality.models import Availability, Booking, Intent, PaymentType, Presence, Profile
from hospitality.services import BookingRequest, create_availability, create_booking

CITIES = [('Lisbon', 'Portugal'), ('Buenos Aires', 'Argentina'), ('Berlin', 'Germany')]


class Command(BaseCommand):
    help = 'Generate demo hosts, guests, availability and a pending stay request.'

    def handle(self, *args, **options):
        today = timezone.localdate()
        hosts = []
        for idx, (city, country) in enumerate(CITIES, start=1):
            user, _ = User.objects.get_or_create(username=f'host{idx}')
            user.set_password('password')
            user.save()
            profile, _ = Profile.objects.get_or_create(
                user=user,
                defaults={
                    'username': f'host{idx}',
                    'display_name': f'Host {idx}',
                    'city': city,
                    'country': country,
                    'intent': Intent.HOST,
                    'default_payment_type': PaymentType.FRIEND_PRICE if idx % 2 else PaymentType.FREE,
                    'default_price': Decimal('20.00'),
                    'default_presence': Presence.HOME,
                },
            )
            if not Availability.objects.filter(host=profile).exists():
                create_availability(
                    profile,
                    start_date=today + timedelta(days=7 * idx),
                    end_date=today + timedelta(days=7 * idx + 10),
                    notes='Spare key with the neighbour',
                )
            hosts.append(profile)

        guests = []
        for idx in range(1, 3):
            user, _ = User.objects.get_or_create(username=f'guest{idx}')
            user.set_password('password')
            user.save()
            profile, _ = Profile.objects.get_or_create(
                user=user,
                defaults={
                    'username': f'guest{idx}',
                    'display_name': f'Guest {idx}',
                    'city': 'Madrid',
                    'country': 'Spain',
                    'intent': Intent.GUEST,
                },
            )
            guests.append(profile)

        host = hosts[0]
        if not Booking.objects.for_host(host).exists():
            entry = Availability.objects.for_host(host).first()
            create_booking(
                BookingRequest(
                    host=host,
                    guest=guests[0],
                    start_date=entry.start_date,
                    end_date=entry.start_date + timedelta(days=2),
                    message='Hi! Would love to stay for a couple of nights.',
                )
            )
        self.stdout.write(self.style.SUCCESS('Demo data generated.'))
