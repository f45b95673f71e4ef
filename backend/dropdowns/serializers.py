from rest_framework import serializers
from .models import DropdownOption


class DropdownOptionSerializer(serializers.ModelSerializer):
    display_order = serializers.IntegerField(required=False, min_value=0)

    class Meta:
        model = DropdownOption
        fields = ['id', 'category', 'value', 'display_order', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']
        # Uniqueness is checked case-insensitively in validate()
        validators = []

    def validate_value(self, value):
        value = ' '.join(value.split())
        if not value:
            raise serializers.ValidationError("Value is required")
        return value

    def validate(self, attrs):
        category = attrs.get('category', getattr(self.instance, 'category', None))
        value = attrs.get('value', getattr(self.instance, 'value', None))
        duplicates = DropdownOption.objects.filter(category=category, value__iexact=value)
        if self.instance is not None:
            duplicates = duplicates.exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise serializers.ValidationError({'value': f"'{value}' already exists in {category}"})
        return attrs

    def create(self, validated_data):
        if validated_data.get('display_order') is None:
            validated_data['display_order'] = DropdownOption.next_display_order(validated_data['category'])
        return super().create(validated_data)


class DisplayOrderUpdateSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    display_order = serializers.IntegerField(min_value=0)
