from rest_framework import serializers

from core_backend.base import BaseModelSerializer
from floor.models import FloorPlan, Table, TableCombination


class FloorPlanSerializer(BaseModelSerializer):
    class Meta:
        model = FloorPlan
        fields = ["id", "name", "width", "height", "is_active"]


class TableSerializer(BaseModelSerializer):
    floor_plan = serializers.UUIDField(source="floor_plan_id", read_only=True)
    current_order = serializers.UUIDField(source="current_order_id", read_only=True)

    class Meta:
        model = Table
        fields = [
            "id",
            "floor_plan",
            "number",
            "capacity",
            "min_capacity",
            "x",
            "y",
            "width",
            "height",
            "shape",
            "section",
            "status",
            "current_order",
            "sequence",
            "updated_at",
        ]


class TableCombinationSerializer(BaseModelSerializer):
    order = serializers.UUIDField(source="order_id", read_only=True)
    primary_table = serializers.UUIDField(source="primary_table_id", read_only=True)
    member_tables = serializers.SerializerMethodField()

    class Meta:
        model = TableCombination
        fields = ["id", "order", "primary_table", "member_tables", "is_active", "created_at", "dissolved_at"]

    def get_member_tables(self, obj):
        return [str(member.table_id) for member in obj.members.all()]


# --- Input shapes ---

class GeometrySerializer(serializers.Serializer):
    x = serializers.FloatField(required=False)
    y = serializers.FloatField(required=False)
    width = serializers.FloatField(required=False, min_value=1)
    height = serializers.FloatField(required=False, min_value=1)
    shape = serializers.ChoiceField(choices=Table.TableShape.choices, required=False)


class TableCreateSerializer(GeometrySerializer):
    number = serializers.CharField(max_length=20)
    capacity = serializers.IntegerField(min_value=1)
    min_capacity = serializers.IntegerField(min_value=1, required=False, default=1)
    section = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)

    def validate(self, attrs):
        if attrs.get("min_capacity", 1) > attrs["capacity"]:
            raise serializers.ValidationError(
                {"min_capacity": "Minimum capacity cannot exceed capacity."}
            )
        return attrs


class TableUpdateSerializer(GeometrySerializer):
    number = serializers.CharField(max_length=20, required=False)
    capacity = serializers.IntegerField(min_value=1, required=False)
    min_capacity = serializers.IntegerField(min_value=1, required=False)
    section = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)

    def validate(self, attrs):
        forbidden = {"status", "current_order", "floor_plan"} & set(self.initial_data or {})
        if forbidden:
            raise serializers.ValidationError(
                {field: "This field cannot be changed through a table update." for field in forbidden}
            )
        return attrs


class PositionUpdateSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    x = serializers.FloatField()
    y = serializers.FloatField()
