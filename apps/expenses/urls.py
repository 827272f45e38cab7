from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'expenses'

# Note: settlements must be registered BEFORE empty prefix to avoid URL conflicts
router = DefaultRouter()
router.register(r'settlements', views.SettlementViewSet, basename='settlement')
router.register(r'', views.ExpenseViewSet, basename='expense')

urlpatterns = [
    # GET    /api/expenses/                    - List expenses
    # POST   /api/expenses/                    - Create expense (splits computed)
    # GET    /api/expenses/{id}/               - Expense with splits and items
    # POST   /api/expenses/preview/            - Compute splits without saving
    # GET    /api/expenses/settlements/        - List settlements
    # POST   /api/expenses/settlements/        - Record settlement
    # GET    /api/expenses/balances/{group}/   - Per-member balances
    path('balances/<uuid:group_id>/', views.group_balances, name='group-balances'),

    path('', include(router.urls)),
]
