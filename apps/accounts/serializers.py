from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User


class UserSerializer(serializers.ModelSerializer):
    """User profile with the read-only subscription projection."""

    is_pro = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'display_name',
            'created_at',
            'last_login',
            'preferences',
            'subscription_tier',
            'subscription_status',
            'is_paused',
            'current_period_end',
            'is_pro',
        ]
        read_only_fields = [
            'id',
            'email',
            'created_at',
            'last_login',
            'subscription_tier',
            'subscription_status',
            'is_paused',
            'current_period_end',
        ]

    def get_is_pro(self, obj) -> bool:
        return obj.has_pro_access()


class UserRegistrationSerializer(serializers.ModelSerializer):
    """Serializer for user registration."""

    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    password_confirm = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ['email', 'password', 'password_confirm', 'display_name']

    def validate(self, attrs):
        """Validate password confirmation."""
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({
                'password_confirm': 'Passwords do not match'
            })
        return attrs


class UserLoginSerializer(serializers.Serializer):
    """Serializer for user login."""

    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )


class DeleteAccountSerializer(serializers.Serializer):
    password = serializers.CharField(required=True, write_only=True)
    confirm = serializers.BooleanField(required=True)


class UserMinimalSerializer(serializers.ModelSerializer):
    """Public user info for group members, payers and split participants."""

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name']
        read_only_fields = fields
