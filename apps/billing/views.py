import logging

from django.conf import settings
from rest_framework import status, generics
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.accounts.views import ErrorResponseSerializer
from .models import Plan
from .serializers import (
    PlanSerializer,
    EntitlementSerializer,
    WebhookAckSerializer,
)
from .services import handle_webhook, WebhookSignatureError, WebhookPayloadError

logger = logging.getLogger(__name__)


@extend_schema(
    request=None,
    responses={
        200: WebhookAckSerializer,
        400: ErrorResponseSerializer,
        401: ErrorResponseSerializer,
    },
    description=(
        "Billing provider webhook. The raw body must be signed with HMAC-SHA256 "
        "using the shared webhook secret; the hex digest goes in the signature header."
    ),
    tags=['billing'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def webhook(request):
    """
    Receive a subscription event.

    Returns 200 once the event is stored, even if applying it failed; the
    failure is kept on the event for reprocessing.
    """
    # Read raw bytes before anything touches request.data
    raw_body = request.body
    signature = request.headers.get(settings.BILLING_WEBHOOK_SIGNATURE_HEADER, '')

    try:
        event = handle_webhook(raw_body=raw_body, signature=signature)
    except WebhookSignatureError as e:
        logger.warning("Rejected webhook: %s", e)
        return Response({'error': 'Invalid signature'}, status=status.HTTP_401_UNAUTHORIZED)
    except WebhookPayloadError as e:
        logger.warning("Rejected webhook: %s", e)
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({'message': 'Webhook received', 'event_id': event.id})


@extend_schema(tags=['billing'])
class PlanListView(generics.ListAPIView):
    """Plans available for purchase. Provisional placeholders are hidden."""

    serializer_class = PlanSerializer
    permission_classes = [AllowAny]
    queryset = Plan.objects.filter(is_provisional=False)


@extend_schema(
    responses={200: EntitlementSerializer},
    description="Current user's subscription tier, status and latest subscription.",
    tags=['billing'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def current_subscription(request):
    """Get the current user's entitlement."""
    user = request.user
    subscription = user.subscriptions.select_related('plan').order_by('-created_at').first()

    serializer = EntitlementSerializer({
        'subscription_tier': user.subscription_tier,
        'subscription_status': user.subscription_status,
        'is_paused': user.is_paused,
        'current_period_end': user.current_period_end,
        'is_pro': user.has_pro_access(),
        'subscription': subscription,
    })
    return Response(serializer.data)
