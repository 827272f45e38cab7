import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.groups.models import Group, GroupMembership, GroupRole


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def alice(db):
    return User.objects.create_user(email='alice@example.com', password='TestPass123!', display_name='Alice')


@pytest.fixture
def bob(db):
    return User.objects.create_user(email='bob@example.com', password='TestPass123!', display_name='Bob')


@pytest.fixture
def carol(db):
    return User.objects.create_user(email='carol@example.com', password='TestPass123!', display_name='Carol')


@pytest.fixture
def outsider(db):
    """User who is not in the group."""
    return User.objects.create_user(email='outsider@example.com', password='TestPass123!')


@pytest.fixture
def group(alice, bob, carol):
    """Group owned by Alice with Bob and Carol as members."""
    group = Group.objects.create(name='Dinner club', owner=alice)
    GroupMembership.objects.create(user=alice, group=group, role=GroupRole.OWNER)
    GroupMembership.objects.create(user=bob, group=group, role=GroupRole.MEMBER)
    GroupMembership.objects.create(user=carol, group=group, role=GroupRole.MEMBER)
    return group


@pytest.fixture
def alice_client(alice):
    return _client_for(alice)


@pytest.fixture
def bob_client(bob):
    return _client_for(bob)


@pytest.fixture
def outsider_client(outsider):
    return _client_for(outsider)


@pytest.fixture
def restaurant_items(alice, bob, carol):
    """Receipt with three dishes plus shared tax and tip."""
    return [
        {'name': 'Pasta', 'price': '15.00', 'quantity': 1, 'is_shared_cost': False, 'assigned_to': [alice.id]},
        {'name': 'Steak', 'price': '35.00', 'quantity': 1, 'is_shared_cost': False, 'assigned_to': [bob.id]},
        {'name': 'Risotto', 'price': '25.00', 'quantity': 1, 'is_shared_cost': False, 'assigned_to': [carol.id]},
        {'name': 'Tax', 'price': '6.75', 'quantity': 1, 'is_shared_cost': True, 'assigned_to': []},
        {'name': 'Tip', 'price': '4.50', 'quantity': 1, 'is_shared_cost': True, 'assigned_to': []},
    ]
