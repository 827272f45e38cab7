from django.urls import path
from . import views

app_name = 'billing'

urlpatterns = [
    # POST   /api/billing/webhook/        - Provider webhook (signed, no auth)
    # GET    /api/billing/plans/          - Available plans
    # GET    /api/billing/subscription/   - Current user's entitlement
    path('webhook/', views.webhook, name='webhook'),
    path('plans/', views.PlanListView.as_view(), name='plan-list'),
    path('subscription/', views.current_subscription, name='current-subscription'),
]
