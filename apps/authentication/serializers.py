"""
Authentication Serializers

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from rest_framework import serializers
from django.contrib.auth import authenticate
from django.contrib.auth.password_validation import validate_password
from django.utils import timezone
from .models import User, DeletedUser, LoginPin


class LoginSerializer(serializers.Serializer):
    """
    Serializer for user login.
    """
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        """Validate login credentials."""
        email = attrs.get('email', '').lower()
        password = attrs.get('password')

        if not (email and password):
            raise serializers.ValidationError("Must include email and password.")

        user = authenticate(
            request=self.context.get('request'),
            username=email,
            password=password
        )

        if user is None:
            raise serializers.ValidationError("Invalid email or password.")
        if not user.is_active:
            raise serializers.ValidationError("User account is disabled.")

        attrs['user'] = user
        return attrs


class PinStatusSerializer(serializers.Serializer):
    """
    Serializer used by an employee polling a login PIN.
    """
    pin_id = serializers.UUIDField()
    code = serializers.CharField(max_length=6)
    wait = serializers.BooleanField(default=False)

    def validate(self, attrs):
        try:
            pin = LoginPin.objects.select_related('user').get(pk=attrs['pin_id'])
        except LoginPin.DoesNotExist:
            raise serializers.ValidationError("Login PIN not found.")

        if pin.code != attrs['code']:
            raise serializers.ValidationError("Login PIN not found.")

        attrs['pin'] = pin
        return attrs


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for user information.
    """

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'phone', 'avatar_url', 'role',
            'skills', 'is_active', 'is_login_verified', 'created_at',
            'last_login_at'
        ]
        read_only_fields = [
            'id', 'is_login_verified', 'created_at', 'last_login_at'
        ]


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Compact user representation embedded in other payloads.
    """

    class Meta:
        model = User
        fields = ['id', 'email', 'full_name', 'avatar_url', 'role']
        read_only_fields = fields


class CreateEmployeeSerializer(serializers.ModelSerializer):
    """
    Serializer for administrators creating user accounts.
    """
    password = serializers.CharField(write_only=True, validators=[validate_password])

    class Meta:
        model = User
        fields = ['email', 'password', 'full_name', 'phone', 'avatar_url', 'role', 'skills']

    def validate_email(self, value):
        """Validate email is unique."""
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value.lower()

    def validate_skills(self, value):
        return normalize_skills(value)

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)


class UpdateEmployeeSerializer(serializers.ModelSerializer):
    """
    Serializer for updating user details. Email and password are not editable here.
    """

    class Meta:
        model = User
        fields = ['full_name', 'phone', 'avatar_url', 'role', 'skills', 'is_active']

    def validate_skills(self, value):
        return normalize_skills(value)


class UpdateProfileSerializer(serializers.ModelSerializer):
    """
    Serializer for users updating their own profile.
    """

    class Meta:
        model = User
        fields = ['full_name', 'phone', 'avatar_url', 'skills']

    def validate_skills(self, value):
        return normalize_skills(value)


class ChangePasswordSerializer(serializers.Serializer):
    """
    Serializer for changing password.
    """
    current_password = serializers.CharField()
    new_password = serializers.CharField(validators=[validate_password])
    new_password_confirm = serializers.CharField()

    def validate(self, attrs):
        """Validate current password and new password confirmation."""
        user = self.context['request'].user

        if not user.check_password(attrs['current_password']):
            raise serializers.ValidationError("Current password is incorrect.")

        if attrs['new_password'] != attrs['new_password_confirm']:
            raise serializers.ValidationError("New passwords don't match.")

        return attrs


class DeleteUserSerializer(serializers.Serializer):
    deletion_reason = serializers.CharField(trim_whitespace=True)


class DeletedUserSerializer(serializers.ModelSerializer):
    deleted_by = UserSummarySerializer(read_only=True)

    class Meta:
        model = DeletedUser
        fields = [
            'id', 'email', 'full_name', 'avatar_url', 'role', 'skills',
            'created_at', 'deleted_by', 'deletion_reason', 'deleted_at'
        ]
        read_only_fields = fields


class LoginPinSerializer(serializers.ModelSerializer):
    """
    Serializer for login PINs as seen by administrators.
    """
    user = UserSummarySerializer(read_only=True)
    approved_by = UserSummarySerializer(read_only=True)
    seconds_remaining = serializers.SerializerMethodField()

    class Meta:
        model = LoginPin
        fields = [
            'id', 'user', 'code', 'status', 'created_at', 'expires_at',
            'seconds_remaining', 'approved_by', 'approved_at', 'redeemed_at'
        ]
        read_only_fields = fields

    def get_seconds_remaining(self, obj):
        if obj.status != 'pending':
            return 0
        return obj.seconds_remaining(timezone.now())


def normalize_skills(value):
    """Accept a list or a comma separated string; drop blanks and duplicates."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(',')
    if not isinstance(value, (list, tuple)):
        raise serializers.ValidationError("Skills must be a list of strings.")

    skills = []
    for item in value:
        skill = str(item).strip()
        if skill and skill not in skills:
            skills.append(skill)
    return skills
