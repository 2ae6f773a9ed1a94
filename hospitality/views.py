"""API views for the hospitality exchange."""
from __future__ import annotations

from django.contrib.auth import authenticate
from django.db.models import Q
from django.utils import timezone
from rest_framework import generics, mixins, permissions, status, viewsets
from rest_framework.authtoken.models import Token
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.response import Response

from . import services
from .calendar import resolve_selection
from .exceptions import NotPermitted
from .models import AccommodationPhoto, Availability, Booking, OnboardingDraft, Profile
from .serializers import (
    AccommodationPhotoSerializer,
    AvailabilitySerializer,
    BookingCreateSerializer,
    BookingDetailSerializer,
    DashboardSerializer,
    OnboardingDraftSerializer,
    ProfileSerializer,
    PublicProfileDetailSerializer,
    RegisterSerializer,
    SelectionSerializer,
    UsernameCheckSerializer,
)


def current_profile(request) -> Profile:
    try:
        return request.user.profile
    except Profile.DoesNotExist as exc:
        raise NotPermitted('Complete onboarding first.') from exc


class RegisterView(generics.CreateAPIView):
    permission_classes = [permissions.AllowAny]
    serializer_class = RegisterSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        token, _ = Token.objects.get_or_create(user=user)
        return Response({'user': serializer.data, 'token': token.key}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([permissions.AllowAny])
def login_view(request):
    user = authenticate(username=request.data.get('username'), password=request.data.get('password'))
    if not user:
        return Response({'detail': 'Invalid credentials'}, status=status.HTTP_400_BAD_REQUEST)
    token, _ = Token.objects.get_or_create(user=user)
    return Response({'token': token.key})


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def username_check_view(request):
    serializer = UsernameCheckSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    username = serializer.validated_data['username']
    problem = services.username_problem(username)
    if problem:
        return Response({'available': False, 'error': problem}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'available': services.is_username_available(username)})


class MeView(generics.GenericAPIView):
    serializer_class = DashboardSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, *args, **kwargs):
        profile = Profile.objects.filter(user=request.user).first()
        if profile is None:
            data = {
                'profile': None,
                'is_host': False,
                'is_guest': False,
                'completeness': None,
                'pending_requests': 0,
                'accepted_as_host': 0,
                'accepted_as_guest': 0,
            }
        else:
            hosted = Booking.objects.for_host(profile)
            data = {
                'profile': profile,
                'is_host': profile.is_host,
                'is_guest': profile.is_guest,
                'completeness': profile.completeness(),
                'pending_requests': hosted.pending().count(),
                'accepted_as_host': hosted.accepted().count(),
                'accepted_as_guest': Booking.objects.for_guest(profile).accepted().count(),
            }
        return Response(self.get_serializer(data).data)


class ProfileViewSet(mixins.RetrieveModelMixin, mixins.UpdateModelMixin, viewsets.GenericViewSet):
    queryset = Profile.objects.all()
    lookup_field = 'username'
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return PublicProfileDetailSerializer
        if self.action == 'selection':
            return SelectionSerializer
        return ProfileSerializer

    def get_queryset(self):
        return super().get_queryset().prefetch_related('photos')

    def perform_update(self, serializer):
        if serializer.instance.user_id != self.request.user.pk:
            raise NotPermitted()
        serializer.save()

    @action(detail=True, methods=['post'], permission_classes=[permissions.AllowAny])
    def selection(self, request, username=None):
        host = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        today = timezone.localdate()
        registry = Availability.objects.registry_for(host, min_end_date=today)
        selection = resolve_selection(registry, serializer.validated_data['clicks'], today=today)
        entry = selection.entry
        return Response(
            {
                'state': selection.state,
                'start_date': selection.start,
                'end_date': selection.end,
                'availability': AvailabilitySerializer(entry).data if entry is not None else None,
            }
        )


class AvailabilityViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = AvailabilitySerializer
    permission_classes = [permissions.IsAuthenticatedOrReadOnly]

    def get_queryset(self):
        qs = Availability.objects.select_related('host')
        if self.action != 'list':
            return qs
        host_username = self.request.query_params.get('host')
        if host_username:
            return qs.filter(host__username=host_username, end_date__gte=timezone.localdate())
        if not self.request.user.is_authenticated:
            return qs.none()
        return qs.for_host(current_profile(self.request))

    def perform_create(self, serializer):
        serializer.instance = services.create_availability(
            current_profile(self.request), **serializer.validated_data
        )

    def perform_destroy(self, instance):
        services.delete_availability(instance, current_profile(self.request))


class AccommodationPhotoViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = AccommodationPhotoSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return AccommodationPhoto.objects.filter(host__user=self.request.user)

    def perform_create(self, serializer):
        serializer.save(host=current_profile(self.request))

    def perform_destroy(self, instance):
        services.delete_accommodation_photo(instance, current_profile(self.request))


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [permissions.IsAuthenticated]
    queryset = Booking.objects.select_related('host', 'guest', 'availability')
    filterset_fields = ['status']

    def get_serializer_class(self):
        if self.action == 'create':
            return BookingCreateSerializer
        return BookingDetailSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if self.action != 'list':
            return qs.filter(Q(host__user=user) | Q(guest__user=user))
        if self.request.query_params.get('as') == 'host':
            return qs.filter(host__user=user)
        return qs.filter(guest__user=user)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = services.create_booking(
            services.BookingRequest(guest=current_profile(request), **serializer.validated_data)
        )
        return Response(BookingDetailSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def accept(self, request, pk=None):
        booking = services.respond_to_booking(self.get_object(), current_profile(request), Booking.STATUS_ACCEPTED)
        return Response({'status': booking.status})

    @action(detail=True, methods=['post'])
    def decline(self, request, pk=None):
        booking = services.respond_to_booking(self.get_object(), current_profile(request), Booking.STATUS_DECLINED)
        return Response({'status': booking.status})

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        booking = services.cancel_booking(self.get_object(), current_profile(request))
        return Response({'status': booking.status})

    @action(detail=False, methods=['get'], url_path='pending-count')
    def pending_count(self, request):
        profile = Profile.objects.filter(user=request.user).first()
        count = Booking.objects.for_host(profile).pending().count() if profile else 0
        return Response({'pending': count})


class OnboardingDraftViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Wizard state keyed by draft id so it survives the sign-in redirect."""

    queryset = OnboardingDraft.objects.select_related('profile')
    serializer_class = OnboardingDraftSerializer
    permission_classes = [permissions.AllowAny]

    @action(detail=True, methods=['post'], permission_classes=[permissions.IsAuthenticated])
    def finalize(self, request, pk=None):
        draft = self.get_object()
        profile = services.finalize_onboarding(draft, request.user)
        draft.refresh_from_db()
        return Response(
            {
                'profile': ProfileSerializer(profile, context=self.get_serializer_context()).data,
                'next': services.next_step_after_onboarding(draft),
            }
        )
