"""Serializers for the hospitality API."""
from __future__ import annotations

from typing import Any

from django.contrib.auth.models import User
from django.utils import timezone
from rest_framework import serializers

from .models import (
    MAX_PHOTOS,
    AccommodationPhoto,
    AccommodationType,
    Availability,
    Booking,
    Intent,
    OnboardingDraft,
    PaymentType,
    Presence,
    Profile,
)
from .services import username_problem


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email']


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'password']

    def create(self, validated_data: dict[str, Any]) -> User:
        return User.objects.create_user(**validated_data)


class PublicProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = Profile
        fields = [
            'id',
            'username',
            'display_name',
            'city',
            'country',
            'accommodation_type',
            'bio',
            'avatar',
            'intent',
        ]


class ProfileSerializer(serializers.ModelSerializer):
    """Owner view of a profile. The username is fixed once the profile exists."""

    class Meta:
        model = Profile
        fields = PublicProfileSerializer.Meta.fields + [
            'default_payment_type',
            'default_price',
            'default_favor_text',
            'default_presence',
            'created_at',
        ]
        read_only_fields = ['id', 'username', 'created_at']


class AccommodationPhotoSerializer(serializers.ModelSerializer):
    class Meta:
        model = AccommodationPhoto
        fields = ['id', 'image', 'display_order', 'caption', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if self.instance is not None:
            return attrs
        request = self.context.get('request')
        host = Profile.objects.filter(user=request.user).first() if request is not None else None
        if host is None:
            return attrs
        count = host.photos.count()
        if count >= MAX_PHOTOS:
            raise serializers.ValidationError(f'Maximum {MAX_PHOTOS} photos allowed.')
        # New photos go after the existing ones unless the client picks a slot.
        attrs.setdefault('display_order', count)
        return attrs


class AvailabilitySerializer(serializers.ModelSerializer):
    host = serializers.SlugRelatedField(slug_field='username', read_only=True)
    summary = serializers.CharField(read_only=True)

    class Meta:
        model = Availability
        fields = [
            'id',
            'host',
            'start_date',
            'end_date',
            'accommodation_status',
            'payment_type',
            'price_amount',
            'price_currency',
            'favor_description',
            'notes',
            'summary',
            'created_at',
        ]
        read_only_fields = ['id', 'host', 'created_at']

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs['start_date'] > attrs['end_date']:
            raise serializers.ValidationError({'end_date': 'End date must not be before start date.'})
        if attrs['start_date'] < timezone.localdate():
            raise serializers.ValidationError({'start_date': 'Start date must not be in the past.'})
        return attrs


class PublicProfileDetailSerializer(PublicProfileSerializer):
    availabilities = serializers.SerializerMethodField()
    photos = AccommodationPhotoSerializer(many=True, read_only=True)

    class Meta(PublicProfileSerializer.Meta):
        fields = PublicProfileSerializer.Meta.fields + ['availabilities', 'photos']

    def get_availabilities(self, obj: Profile):
        upcoming = Availability.objects.for_host(obj, min_end_date=timezone.localdate())
        return AvailabilitySerializer(upcoming, many=True, context=self.context).data


class SelectionSerializer(serializers.Serializer):
    clicks = serializers.ListField(child=serializers.DateField(), allow_empty=True)


class BookingCreateSerializer(serializers.ModelSerializer):
    host = serializers.SlugRelatedField(slug_field='username', queryset=Profile.objects.all())
    message = serializers.CharField(required=False, allow_blank=True)

    class Meta:
        model = Booking
        fields = ['id', 'host', 'start_date', 'end_date', 'message', 'status']
        read_only_fields = ['id', 'status']

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if attrs['start_date'] > attrs['end_date']:
            raise serializers.ValidationError({'end_date': 'End date must not be before start date.'})
        return attrs


class BookingDetailSerializer(serializers.ModelSerializer):
    host = PublicProfileSerializer(read_only=True)
    guest = PublicProfileSerializer(read_only=True)
    availability = AvailabilitySerializer(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id',
            'host',
            'guest',
            'availability',
            'start_date',
            'end_date',
            'message',
            'status',
            'created_at',
            'updated_at',
        ]


class UsernameCheckSerializer(serializers.Serializer):
    username = serializers.CharField(required=False, allow_blank=True, default='')


class OnboardingDataSerializer(serializers.Serializer):
    """Partial answers collected by the onboarding wizard; every field is optional until finalize."""

    intent = serializers.ChoiceField(choices=Intent.choices, required=False, allow_null=True)
    referral_username = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    username = serializers.CharField(required=False, allow_blank=True, max_length=30)
    display_name = serializers.CharField(required=False, allow_blank=True, max_length=50)
    city = serializers.CharField(required=False, allow_blank=True, max_length=100)
    country = serializers.CharField(required=False, allow_blank=True, max_length=100)
    accommodation_type = serializers.ChoiceField(choices=AccommodationType.choices, required=False, allow_null=True)
    bio = serializers.CharField(required=False, allow_blank=True, max_length=300)
    default_payment_type = serializers.ChoiceField(choices=PaymentType.choices, required=False, allow_null=True)
    default_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True, coerce_to_string=True
    )
    default_favor_text = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=300)
    default_presence = serializers.ChoiceField(choices=Presence.choices, required=False, allow_null=True)

    def validate_username(self, value: str) -> str:
        if value:
            problem = username_problem(value)
            if problem:
                raise serializers.ValidationError(problem)
        return value


class OnboardingDraftSerializer(serializers.ModelSerializer):
    data = serializers.JSONField(required=False)
    profile = serializers.SlugRelatedField(slug_field='username', read_only=True)

    class Meta:
        model = OnboardingDraft
        fields = ['id', 'data', 'current_step', 'profile', 'created_at', 'updated_at']
        read_only_fields = ['id', 'profile', 'created_at', 'updated_at']

    def validate_data(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Expected an object of wizard answers.')
        answers = OnboardingDataSerializer(data=value, partial=True)
        answers.is_valid(raise_exception=True)
        return dict(answers.validated_data)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if self.instance is not None and self.instance.is_finalized:
            raise serializers.ValidationError('This onboarding draft has already been completed.')
        return attrs

    def create(self, validated_data: dict[str, Any]) -> OnboardingDraft:
        request = self.context.get('request')
        session = getattr(request, 'session', None)
        validated_data['session_key'] = getattr(session, 'session_key', None) or ''
        validated_data['data'] = dict(validated_data.get('data', {}))
        if validated_data['data'].get('referral_username') and not validated_data['data'].get('intent'):
            validated_data['data']['intent'] = Intent.GUEST.value
        return super().create(validated_data)

    def update(self, instance: OnboardingDraft, validated_data: dict[str, Any]) -> OnboardingDraft:
        if 'data' in validated_data:
            # Steps submit only their own answers; merge them into what is saved.
            instance.data = {**instance.data, **validated_data.pop('data')}
        return super().update(instance, validated_data)


class DashboardSerializer(serializers.Serializer):
    profile = ProfileSerializer(allow_null=True)
    is_host = serializers.BooleanField()
    is_guest = serializers.BooleanField()
    completeness = serializers.DictField(allow_null=True)
    pending_requests = serializers.IntegerField()
    accepted_as_host = serializers.IntegerField()
    accepted_as_guest = serializers.IntegerField()
