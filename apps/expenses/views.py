from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .models import Expense, Settlement
from .serializers import (
    ExpenseFilterSerializer,
    SplitInputSerializer,
    ExpenseCreateSerializer,
    SettlementCreateSerializer,
    SplitPreviewSerializer,
    ExpenseSerializer,
    ExpenseListSerializer,
    SettlementSerializer,
    BalanceSerializer,
)
from .services import ExpenseService
from .exceptions import ExpenseServiceError, GroupNotFoundError, InvalidGroupMembershipError
from .permissions import IsGroupMemberForExpense
from apps.groups.models import Group


class ExpensePagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _ensure_member(group_id, user):
    """Raise 404 for unknown groups and 403 for groups the user is not in."""
    try:
        group = Group.objects.get(id=group_id)
    except Group.DoesNotExist:
        raise GroupNotFoundError()
    if not group.has_member(user):
        raise InvalidGroupMembershipError()
    return group


def _split_kwargs(data):
    return {
        'group_id': data['group'],
        'split_method': data['split_method'],
        'amount': data.get('amount'),
        'split_between': data.get('split_between'),
        'custom_splits': data.get('custom_splits'),
        'items': data.get('items'),
    }


class ExpenseViewSet(viewsets.ModelViewSet):
    """
    ViewSet for group expenses.

    Expenses are immutable once created: splits are computed by the
    allocation engine and stored with the expense, so there are no update
    or delete endpoints.

    list: Expenses in the user's groups (filterable by group and date)
    create: Create an expense with computed splits
    retrieve: Expense with splits and items
    preview: Compute splits without saving
    """

    permission_classes = [IsAuthenticated, IsGroupMemberForExpense]
    pagination_class = ExpensePagination
    http_method_names = ['get', 'post', 'head', 'options']

    def get_queryset(self):
        """Expenses from groups the user belongs to."""
        queryset = Expense.objects.filter(
            group__memberships__user=self.request.user
        ).select_related('paid_by', 'group').prefetch_related(
            'splits__user',
            'items__assignments',
        ).distinct()

        if self.action != 'list':
            return queryset

        filter_serializer = ExpenseFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        if 'group' in params:
            queryset = queryset.filter(group_id=params['group'])
        if 'date_from' in params:
            queryset = queryset.filter(date__gte=params['date_from'])
        if 'date_to' in params:
            queryset = queryset.filter(date__lte=params['date_to'])

        return queryset

    def get_serializer_class(self):
        if self.action == 'list':
            return ExpenseListSerializer
        elif self.action == 'create':
            return ExpenseCreateSerializer
        elif self.action == 'preview':
            return SplitInputSerializer
        return ExpenseSerializer

    @extend_schema(request=ExpenseCreateSerializer, responses={201: ExpenseSerializer})
    def create(self, request, *args, **kwargs):
        """Create an expense; splits are computed server-side."""
        serializer = ExpenseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            expense, _ = ExpenseService.create_expense(
                created_by=request.user,
                paid_by_id=data.get('paid_by'),
                description=data['description'],
                category=data.get('category', ''),
                receipt_url=data.get('receipt_url', ''),
                date=data.get('date'),
                **_split_kwargs(data),
            )
        except ExpenseServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        expense = self.get_queryset().get(id=expense.id)
        return Response(ExpenseSerializer(expense).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=SplitInputSerializer, responses={200: SplitPreviewSerializer})
    @action(detail=False, methods=['post'])
    def preview(self, request):
        """
        Compute splits for an expense without saving it.

        POST /api/expenses/preview/
        """
        serializer = SplitInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        kwargs = _split_kwargs(serializer.validated_data)

        _ensure_member(kwargs['group_id'], request.user)

        try:
            total, shares = ExpenseService.preview_splits(**kwargs)
        except ExpenseServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        output = SplitPreviewSerializer({
            'total': total,
            'splits': [{'user_id': user_id, 'amount': amount} for user_id, amount in shares],
        })
        return Response(output.data)


class SettlementViewSet(viewsets.ModelViewSet):
    """
    Repayments between group members.

    list: Settlements in the user's groups (filter with ?group=)
    create: Record a payment from the current user to another member
    retrieve: A single settlement
    """

    serializer_class = SettlementSerializer
    permission_classes = [IsAuthenticated, IsGroupMemberForExpense]
    pagination_class = ExpensePagination
    http_method_names = ['get', 'post', 'head', 'options']

    def get_queryset(self):
        queryset = Settlement.objects.filter(
            group__memberships__user=self.request.user
        ).select_related('payer', 'payee', 'group').distinct()

        group_id = self.request.query_params.get('group')
        if group_id and self.action == 'list':
            filter_serializer = ExpenseFilterSerializer(data={'group': group_id})
            filter_serializer.is_valid(raise_exception=True)
            queryset = queryset.filter(group_id=filter_serializer.validated_data['group'])

        return queryset

    @extend_schema(request=SettlementCreateSerializer, responses={201: SettlementSerializer})
    def create(self, request, *args, **kwargs):
        serializer = SettlementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            settlement = ExpenseService.record_settlement(
                group_id=data['group'],
                payer=request.user,
                payee_id=data['payee'],
                amount=data['amount'],
                date=data.get('date'),
            )
        except ExpenseServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(SettlementSerializer(settlement).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: BalanceSerializer(many=True)},
    description="Net balance of every member in a group. Positive means the member is owed money.",
    tags=['expenses'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def group_balances(request, group_id):
    """Per-member balances for a group."""
    _ensure_member(group_id, request.user)
    balances = ExpenseService.get_group_balances(group_id=group_id)
    return Response(BalanceSerializer(balances, many=True).data)
