from rest_framework import serializers

from core_backend.exceptions import ValidationError


class BaseModelSerializer(serializers.ModelSerializer):
    """
    Base serializer for rendering entity state.

    Foreign keys are rendered as plain id strings so the output can go straight
    onto a channel layer or into a JSON frame.
    """

    def to_representation(self, instance):
        data = super().to_representation(instance)
        for key, value in data.items():
            if value is not None and not isinstance(value, (str, int, float, bool, list, dict)):
                data[key] = str(value)
        return data


def validate_input(serializer_class, data, **kwargs):
    """
    Run an input serializer and return its validated data.

    Serializer errors are raised as a coordinator ValidationError carrying the
    field error dict in ``details``.
    """
    serializer = serializer_class(data=data, **kwargs)
    if not serializer.is_valid():
        raise ValidationError("Invalid input", details=serializer.errors)
    return serializer.validated_data
