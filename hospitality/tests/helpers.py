from datetime import timedelta

from django.contrib.auth.models import User
from django.utils import timezone

from hospitality.models import Profile


def make_profile(username, **extra):
    user = User.objects.create_user(username=username, password='pass12345')
    fields = {
        'username': username,
        'display_name': username.title(),
        'city': 'Lisbon',
        'country': 'Portugal',
    }
    fields.update(extra)
    return Profile.objects.create(user=user, **fields)


def days_from_today(days):
    return timezone.localdate() + timedelta(days=days)
