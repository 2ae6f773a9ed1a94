from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AccommodationPhotoViewSet,
    AvailabilityViewSet,
    BookingViewSet,
    MeView,
    OnboardingDraftViewSet,
    ProfileViewSet,
    RegisterView,
    login_view,
    username_check_view,
)

router = DefaultRouter()
router.register(r'profiles', ProfileViewSet, basename='profile')
router.register(r'availabilities', AvailabilityViewSet, basename='availability')
router.register(r'photos', AccommodationPhotoViewSet, basename='photo')
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'onboarding/drafts', OnboardingDraftViewSet, basename='onboarding-draft')

urlpatterns = [
    path('auth/register/', RegisterView.as_view(), name='register'),
    path('auth/login/', login_view, name='login'),
    path('me/', MeView.as_view(), name='me'),
    path('username/check/', username_check_view, name='username-check'),
    path('', include(router.urls)),
]
