from django.contrib import admin

from .models import (
    AccommodationPhoto,
    Availability,
    Booking,
    OnboardingDraft,
    Profile,
)


class AccommodationPhotoInline(admin.TabularInline):
    model = AccommodationPhoto
    extra = 1


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('username', 'display_name', 'city', 'country', 'intent', 'accommodation_type')
    list_filter = ('intent', 'accommodation_type', 'country')
    search_fields = ('username', 'display_name', 'city')
    inlines = [AccommodationPhotoInline]


@admin.register(Availability)
class AvailabilityAdmin(admin.ModelAdmin):
    list_display = ('host', 'start_date', 'end_date', 'payment_type', 'accommodation_status')
    list_filter = ('payment_type', 'accommodation_status')
    search_fields = ('host__username',)
    date_hierarchy = 'start_date'


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ('host', 'guest', 'start_date', 'end_date', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('host__username', 'guest__username')


@admin.register(OnboardingDraft)
class OnboardingDraftAdmin(admin.ModelAdmin):
    list_display = ('id', 'current_step', 'profile', 'updated_at')
    readonly_fields = ('created_at', 'updated_at')
