from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.test import TestCase
from django.utils import timezone

from hospitality.exceptions import BookingConflict, BookingError, InvalidTransition, NotPermitted
from hospitality.models import AccommodationStatus, Availability, Booking, PaymentType, Presence
from hospitality.services import (
    BookingRequest,
    cancel_booking,
    create_availability,
    create_booking,
    delete_availability,
    respond_to_booking,
)

from .helpers import days_from_today, make_profile


class AvailabilityServiceTests(TestCase):
    def setUp(self):
        self.host = make_profile(
            'ana',
            default_payment_type=PaymentType.FRIEND_PRICE,
            default_price=Decimal('25.00'),
            default_presence=Presence.HOME,
        )
        self.other = make_profile('bruno')

    def test_missing_terms_are_filled_from_profile_defaults(self):
        availability = create_availability(self.host, start_date=days_from_today(3), end_date=days_from_today(6))
        self.assertEqual(availability.payment_type, PaymentType.FRIEND_PRICE)
        self.assertEqual(availability.price_amount, Decimal('25.00'))
        self.assertEqual(availability.accommodation_status, AccommodationStatus.HOST_PRESENT)
        self.assertEqual(availability.price_currency, 'EUR')

    def test_price_only_kept_for_friend_price(self):
        availability = create_availability(
            self.host,
            start_date=days_from_today(3),
            end_date=days_from_today(6),
            payment_type=PaymentType.FAVOR,
            favor_description='Water the plants',
        )
        self.assertIsNone(availability.price_amount)
        self.assertEqual(availability.favor_description, 'Water the plants')

    def test_favor_text_dropped_for_free_stays(self):
        availability = create_availability(
            self.other,
            start_date=days_from_today(3),
            end_date=days_from_today(6),
            payment_type=PaymentType.FREE,
            favor_description='ignored',
        )
        self.assertEqual(availability.favor_description, '')

    def test_inverted_range_is_rejected(self):
        with self.assertRaises(BookingError):
            create_availability(self.host, start_date=days_from_today(6), end_date=days_from_today(3))
        self.assertFalse(Availability.objects.exists())

    def test_only_the_owner_can_delete(self):
        availability = create_availability(self.host, start_date=days_from_today(1), end_date=days_from_today(2))
        with self.assertRaises(NotPermitted):
            delete_availability(availability, self.other)
        delete_availability(availability, self.host)
        self.assertFalse(Availability.objects.exists())

    def test_registry_prefers_newest_entry_on_overlap(self):
        older = create_availability(
            self.host, start_date=days_from_today(1), end_date=days_from_today(10), payment_type=PaymentType.FREE
        )
        newer = create_availability(
            self.host, start_date=days_from_today(5), end_date=days_from_today(15), payment_type=PaymentType.SERVICE
        )
        Availability.objects.filter(pk=older.pk).update(created_at=timezone.now() - timedelta(days=2))
        registry = Availability.objects.registry_for(self.host)
        self.assertEqual(registry.entry_for(days_from_today(7)), newer)
        self.assertEqual(registry.entry_for(days_from_today(2)), older)

    def test_list_by_user_can_skip_finished_entries(self):
        create_availability(self.host, start_date=days_from_today(1), end_date=days_from_today(2))
        Availability.objects.create(
            host=self.host, start_date=days_from_today(-10), end_date=days_from_today(-5)
        )
        self.assertEqual(Availability.objects.for_host(self.host).count(), 2)
        self.assertEqual(Availability.objects.for_host(self.host, min_end_date=timezone.localdate()).count(), 1)


class BookingLifecycleTests(TestCase):
    def setUp(self):
        self.host = make_profile('host', intent='host')
        self.guest = make_profile('guest', intent='guest')
        self.second_guest = make_profile('guest2', intent='guest')
        self.entry = create_availability(
            self.host,
            start_date=days_from_today(10),
            end_date=days_from_today(19),
            payment_type=PaymentType.FREE,
        )

    def request(self, guest=None, start=13, end=16, message=''):
        return BookingRequest(
            host=self.host,
            guest=guest or self.guest,
            start_date=days_from_today(start),
            end_date=days_from_today(end),
            message=message,
        )

    def test_new_booking_is_pending_and_linked_to_entry(self):
        booking = create_booking(self.request(message='Hi!'))
        self.assertEqual(booking.status, Booking.STATUS_PENDING)
        self.assertEqual(booking.availability, self.entry)
        self.assertEqual(booking.message, 'Hi!')

    def test_host_cannot_request_own_place(self):
        with self.assertRaises(BookingError):
            create_booking(self.request(guest=self.host))

    def test_range_must_be_ordered(self):
        with self.assertRaises(BookingError):
            create_booking(self.request(start=16, end=13))

    def test_range_must_not_start_in_the_past(self):
        Availability.objects.create(host=self.host, start_date=days_from_today(-5), end_date=days_from_today(5))
        with self.assertRaises(BookingError):
            create_booking(self.request(start=-2, end=1))

    def test_range_must_fit_in_a_single_entry(self):
        create_availability(self.host, start_date=days_from_today(20), end_date=days_from_today(25))
        with self.assertRaises(BookingError):
            create_booking(self.request(start=18, end=21))
        with self.assertRaises(BookingError):
            create_booking(self.request(start=30, end=31))
        self.assertFalse(Booking.objects.exists())

    def test_change_status_enforces_state_machine(self):
        booking = create_booking(self.request())
        booking.change_status(Booking.STATUS_ACCEPTED)
        self.assertEqual(booking.status, Booking.STATUS_ACCEPTED)
        self.assertTrue(booking.is_terminal)
        with self.assertRaises(ValueError):
            booking.change_status(Booking.STATUS_PENDING)
        with self.assertRaises(InvalidTransition):
            booking.change_status(Booking.STATUS_CANCELLED)

    def test_accept_then_decline_is_rejected(self):
        booking = create_booking(self.request())
        booking = respond_to_booking(booking, self.host, Booking.STATUS_ACCEPTED)
        self.assertEqual(booking.status, Booking.STATUS_ACCEPTED)
        with self.assertRaises(InvalidTransition):
            respond_to_booking(booking, self.host, Booking.STATUS_DECLINED)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_ACCEPTED)

    def test_only_the_host_may_respond(self):
        booking = create_booking(self.request())
        with self.assertRaises(NotPermitted):
            respond_to_booking(booking, self.guest, Booking.STATUS_ACCEPTED)
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.STATUS_PENDING)

    def test_unknown_decision_is_rejected(self):
        booking = create_booking(self.request())
        with self.assertRaises(BookingError):
            respond_to_booking(booking, self.host, Booking.STATUS_CANCELLED)

    def test_guest_cancels_pending_request(self):
        booking = create_booking(self.request())
        with self.assertRaises(NotPermitted):
            cancel_booking(booking, self.host)
        booking = cancel_booking(booking, self.guest)
        self.assertEqual(booking.status, Booking.STATUS_CANCELLED)

    def test_cancel_after_decline_is_rejected(self):
        booking = create_booking(self.request())
        respond_to_booking(booking, self.host, Booking.STATUS_DECLINED)
        with self.assertRaises(InvalidTransition):
            cancel_booking(booking, self.guest)

    def test_accepting_declines_overlapping_pending_requests(self):
        chosen = create_booking(self.request(start=12, end=15))
        overlapping = create_booking(self.request(guest=self.second_guest, start=15, end=17))
        separate = create_booking(self.request(guest=self.second_guest, start=17, end=19))

        respond_to_booking(chosen, self.host, Booking.STATUS_ACCEPTED)

        overlapping.refresh_from_db()
        separate.refresh_from_db()
        self.assertEqual(overlapping.status, Booking.STATUS_DECLINED)
        self.assertEqual(separate.status, Booking.STATUS_PENDING)

    def test_accepting_over_an_accepted_stay_conflicts(self):
        first = create_booking(self.request(start=12, end=15))
        second = create_booking(self.request(guest=self.second_guest, start=14, end=16))
        # Simulates a second session that accepted before this request arrived.
        Booking.objects.filter(pk=first.pk).update(status=Booking.STATUS_ACCEPTED)
        with self.assertRaises(BookingConflict):
            respond_to_booking(second, self.host, Booking.STATUS_ACCEPTED)
        second.refresh_from_db()
        self.assertEqual(second.status, Booking.STATUS_PENDING)

    def test_pending_count_tracks_open_requests(self):
        create_booking(self.request())
        declined = create_booking(self.request(guest=self.second_guest, start=17, end=18))
        respond_to_booking(declined, self.host, Booking.STATUS_DECLINED)
        self.assertEqual(Booking.objects.for_host(self.host).pending().count(), 1)
        self.assertEqual(Booking.objects.for_guest(self.guest).count(), 1)

    def test_blank_message_is_prefilled_from_favor_terms(self):
        create_availability(
            self.host,
            start_date=days_from_today(25),
            end_date=days_from_today(30),
            payment_type=PaymentType.FAVOR,
            favor_description='watering the plants',
        )
        create_availability(
            self.host,
            start_date=days_from_today(35),
            end_date=days_from_today(40),
            payment_type=PaymentType.SERVICE,
            favor_description='Spanish lessons',
        )
        favor = create_booking(self.request(start=26, end=27))
        service = create_booking(self.request(start=36, end=37))
        self.assertEqual(
            favor.message,
            "Hi! I'd love to stay. I saw you're looking for help with: watering the plants. Happy to help with that!",
        )
        self.assertEqual(service.message, "Hi! I'd love to stay. I can help with: Spanish lessons.")

    def test_guest_message_is_kept_and_free_stays_get_none(self):
        create_availability(
            self.host,
            start_date=days_from_today(25),
            end_date=days_from_today(30),
            payment_type=PaymentType.FAVOR,
            favor_description='watering the plants',
        )
        self.assertEqual(create_booking(self.request(start=26, end=27, message='Hello')).message, 'Hello')
        self.assertEqual(create_booking(self.request()).message, '')

    def test_deleting_entry_keeps_booking(self):
        booking = create_booking(self.request())
        delete_availability(self.entry, self.host)
        booking.refresh_from_db()
        self.assertIsNone(booking.availability)
        self.assertEqual(booking.status, Booking.STATUS_PENDING)


class SeedDemoDataTests(TestCase):
    def test_seed_is_repeatable(self):
        from django.core.management import call_command

        call_command('seed_demo_data', stdout=StringIO())
        call_command('seed_demo_data', stdout=StringIO())
        self.assertEqual(Availability.objects.count(), 3)
        self.assertEqual(Booking.objects.pending().count(), 1)
