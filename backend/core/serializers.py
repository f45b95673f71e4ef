from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Setting, ActivityLog, MODULE_CHOICES, PERMISSION_ACTIONS
from .formatting import format_relative_date, format_indian_datetime
from .validation import rule_validator

PHONE_VALIDATORS = [rule_validator('PHONE', 'Phone')]


def validate_permissions_payload(value):
    """Permissions must be {module: {action: bool}} for known modules and actions"""
    if not isinstance(value, dict):
        raise serializers.ValidationError("Permissions must be an object keyed by module")
    modules = {module for module, _ in MODULE_CHOICES}
    for module, flags in value.items():
        if module not in modules:
            raise serializers.ValidationError(f"Unknown module '{module}'")
        if not isinstance(flags, dict):
            raise serializers.ValidationError(f"Permissions for '{module}' must be an object")
        for action, allowed in flags.items():
            if action not in PERMISSION_ACTIONS:
                raise serializers.ValidationError(f"Unknown permission '{action}' for '{module}'")
            if not isinstance(allowed, bool):
                raise serializers.ValidationError(f"Permission '{module}.{action}' must be true or false")
    return value


class UserSerializer(serializers.ModelSerializer):
    permissions = serializers.JSONField(required=False, validators=[validate_permissions_payload])

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'full_name', 'first_name', 'last_name', 'phone', 'role',
                  'department', 'permissions', 'avatar_url', 'is_active', 'last_login', 'created_at', 'updated_at']
        read_only_fields = ['last_login', 'created_at', 'updated_at']
        extra_kwargs = {'phone': {'validators': PHONE_VALIDATORS}}


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True)
    permissions = serializers.JSONField(required=False, validators=[validate_permissions_payload])

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'password_confirm', 'full_name', 'phone',
                  'role', 'department', 'permissions']
        extra_kwargs = {'phone': {'validators': PHONE_VALIDATORS}}

    def validate(self, attrs):
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = User.objects.create(**validated_data, is_active=True)
        user.set_password(password)
        user.save()
        return user


class UserBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'full_name', 'role']


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class ActivityLogSerializer(serializers.ModelSerializer):
    user = UserBriefSerializer(read_only=True)
    relative_time = serializers.SerializerMethodField()
    created_at_display = serializers.SerializerMethodField()

    class Meta:
        model = ActivityLog
        fields = ['id', 'user', 'action', 'module', 'object_id', 'object_name', 'description',
                  'changes', 'ip_address', 'created_at', 'created_at_display', 'relative_time']

    def get_relative_time(self, obj):
        return format_relative_date(obj.created_at)

    def get_created_at_display(self, obj):
        return format_indian_datetime(obj.created_at)
