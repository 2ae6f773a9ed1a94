from decimal import Decimal

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.test import TestCase

from hospitality.exceptions import Conflict, NotPermitted, UsernameTaken
from hospitality.models import OnboardingDraft, Profile
from hospitality.services import (
    create_profile,
    finalize_onboarding,
    is_username_available,
    next_step_after_onboarding,
    username_problem,
)

from .helpers import make_profile


class UsernameRulesTests(TestCase):
    def test_format_rules(self):
        self.assertIsNotNone(username_problem(''))
        self.assertIsNotNone(username_problem('ab'))
        self.assertIsNotNone(username_problem('a' * 31))
        self.assertIsNotNone(username_problem('Maria'))
        self.assertIsNotNone(username_problem('maria lopez'))
        self.assertIsNotNone(username_problem('dashboard'))
        self.assertIsNone(username_problem('maria_lopez-22'))

    def test_taken_usernames_are_unavailable(self):
        make_profile('maria')
        self.assertFalse(is_username_available('maria'))
        self.assertTrue(is_username_available('maria2'))
        self.assertFalse(is_username_available('onboarding'))


class FinalizeOnboardingTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='lucia@example.com', password='pass12345')
        self.draft = OnboardingDraft.objects.create(
            data={
                'intent': 'host',
                'username': 'lucia',
                'display_name': 'Lucia',
                'city': 'Rosario',
                'country': 'Argentina',
                'accommodation_type': 'sofa',
                'default_payment_type': 'friend_price',
                'default_price': '15.00',
                'default_favor_text': '',
                'default_presence': None,
            },
            current_step=4,
        )

    def test_creates_profile_from_draft(self):
        profile = finalize_onboarding(self.draft, self.user)
        self.assertEqual(profile.username, 'lucia')
        self.assertEqual(profile.accommodation_type, 'sofa')
        self.assertEqual(profile.default_price, Decimal('15.00'))
        self.assertIsNone(profile.default_presence)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.profile, profile)
        self.assertEqual(next_step_after_onboarding(self.draft), 'share')

    def test_finalize_twice_returns_same_profile(self):
        first = finalize_onboarding(self.draft, self.user)
        second = finalize_onboarding(self.draft, self.user)
        self.assertEqual(first, second)
        self.assertEqual(Profile.objects.filter(user=self.user).count(), 1)

    def test_other_user_cannot_claim_finalized_draft(self):
        finalize_onboarding(self.draft, self.user)
        intruder = User.objects.create_user(username='intruder', password='pass12345')
        with self.assertRaises(NotPermitted):
            finalize_onboarding(self.draft, intruder)

    def test_existing_profile_is_reused(self):
        existing = Profile.objects.create(
            user=self.user, username='lucia_old', display_name='Lucia', city='Rosario', country='Argentina'
        )
        self.assertEqual(finalize_onboarding(self.draft, self.user), existing)
        self.assertFalse(Profile.objects.filter(username='lucia').exists())

    def test_taken_username_is_reported(self):
        make_profile('lucia')
        with self.assertRaises(UsernameTaken):
            finalize_onboarding(self.draft, self.user)
        self.draft.refresh_from_db()
        self.assertFalse(self.draft.is_finalized)

    def test_second_profile_for_same_account_is_a_conflict(self):
        Profile.objects.create(
            user=self.user, username='lucia_old', display_name='Lucia', city='Rosario', country='Argentina'
        )
        with self.assertRaises(Conflict) as ctx:
            create_profile(self.user, username='lucia', display_name='Lucia', city='Rosario', country='Argentina')
        self.assertNotIsInstance(ctx.exception, UsernameTaken)
        self.assertEqual(Profile.objects.filter(user=self.user).count(), 1)

    def test_incomplete_draft_is_rejected(self):
        draft = OnboardingDraft.objects.create(data={'username': 'pablo', 'intent': 'guest'})
        with self.assertRaises(ValidationError):
            finalize_onboarding(draft, self.user)
        self.assertFalse(Profile.objects.exists())

    def test_guest_with_referral_goes_to_host_profile(self):
        draft = OnboardingDraft.objects.create(
            data={
                'intent': 'guest',
                'referral_username': 'ana',
                'username': 'pablo',
                'display_name': 'Pablo',
                'city': 'Madrid',
                'country': 'Spain',
            }
        )
        finalize_onboarding(draft, self.user)
        draft.refresh_from_db()
        self.assertEqual(next_step_after_onboarding(draft), 'profile:ana')
