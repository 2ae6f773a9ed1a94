import uuid

import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import hospitality.models


PAYMENT_TYPE_CHOICES = [
    ('free', 'Free'),
    ('friend_price', 'Friend price'),
    ('favor', 'Favor exchange'),
    ('service', 'Service needed'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Profile',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    'username',
                    models.CharField(
                        max_length=30,
                        unique=True,
                        validators=[
                            django.core.validators.MinLengthValidator(3),
                            django.core.validators.RegexValidator(
                                '^[a-z0-9_-]+$', 'Use only lowercase letters, numbers, hyphens and underscores.'
                            ),
                            hospitality.models.validate_not_reserved,
                        ],
                    ),
                ),
                ('display_name', models.CharField(max_length=50)),
                ('city', models.CharField(db_index=True, max_length=100)),
                ('country', models.CharField(max_length=100)),
                (
                    'accommodation_type',
                    models.CharField(
                        choices=[('room', 'Private room'), ('sofa', 'Sofa'), ('airbed', 'Air bed'), ('other', 'Other')],
                        default='room',
                        max_length=20,
                    ),
                ),
                ('bio', models.TextField(blank=True, validators=[django.core.validators.MaxLengthValidator(300)])),
                ('avatar', models.ImageField(blank=True, upload_to='avatars/')),
                (
                    'intent',
                    models.CharField(
                        blank=True,
                        choices=[('host', 'Host'), ('guest', 'Guest'), ('both', 'Both')],
                        max_length=10,
                        null=True,
                    ),
                ),
                (
                    'default_payment_type',
                    models.CharField(blank=True, choices=PAYMENT_TYPE_CHOICES, max_length=20, null=True),
                ),
                (
                    'default_price',
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    'default_favor_text',
                    models.TextField(blank=True, validators=[django.core.validators.MaxLengthValidator(300)]),
                ),
                (
                    'default_presence',
                    models.CharField(
                        blank=True,
                        choices=[('home', 'Host at home'), ('empty', 'Empty apartment'), ('shared', 'Someone else present')],
                        max_length=10,
                        null=True,
                    ),
                ),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='AccommodationPhoto',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('image', models.ImageField(upload_to='accommodation_photos/')),
                ('display_order', models.PositiveIntegerField(default=0)),
                ('caption', models.CharField(blank=True, max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                (
                    'host',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name='photos', to='hospitality.profile'
                    ),
                ),
            ],
            options={'ordering': ['display_order', 'created_at']},
        ),
        migrations.CreateModel(
            name='Availability',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('start_date', models.DateField(db_index=True)),
                ('end_date', models.DateField(db_index=True)),
                (
                    'accommodation_status',
                    models.CharField(
                        blank=True,
                        choices=[
                            ('empty', 'Empty apartment'),
                            ('host_present', 'Host will be home'),
                            ('shared', 'Someone else present'),
                        ],
                        max_length=20,
                        null=True,
                    ),
                ),
                ('payment_type', models.CharField(blank=True, choices=PAYMENT_TYPE_CHOICES, max_length=20, null=True)),
                (
                    'price_amount',
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ('price_currency', models.CharField(default='EUR', max_length=3)),
                ('favor_description', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                (
                    'host',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='availabilities',
                        to='hospitality.profile',
                    ),
                ),
            ],
            options={
                'ordering': ['start_date'],
                'verbose_name_plural': 'availabilities',
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('start_date__lte', models.F('end_date'))),
                        name='availability_start_before_end',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('start_date', models.DateField(db_index=True)),
                ('end_date', models.DateField(db_index=True)),
                ('message', models.TextField(blank=True)),
                (
                    'status',
                    models.CharField(
                        choices=[
                            ('pending', 'Pending'),
                            ('accepted', 'Accepted'),
                            ('declined', 'Declined'),
                            ('cancelled', 'Cancelled'),
                        ],
                        db_index=True,
                        default='pending',
                        max_length=20,
                    ),
                ),
                (
                    'availability',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='bookings',
                        to='hospitality.availability',
                    ),
                ),
                (
                    'guest',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name='trips', to='hospitality.profile'
                    ),
                ),
                (
                    'host',
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name='hosted_bookings',
                        to='hospitality.profile',
                    ),
                ),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['host', 'status'], name='booking_host_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='OnboardingDraft',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('session_key', models.CharField(blank=True, db_index=True, max_length=64)),
                (
                    'data',
                    models.JSONField(
                        blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder
                    ),
                ),
                ('current_step', models.PositiveSmallIntegerField(default=0)),
                (
                    'profile',
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name='onboarding_drafts',
                        to='hospitality.profile',
                    ),
                ),
            ],
            options={'abstract': False},
        ),
    ]
