from rest_framework import serializers

from core_backend.base import BaseModelSerializer
from menu.models import Course
from orders.models import Order, OrderItem, OrderItemModifier


class OrderItemModifierSerializer(BaseModelSerializer):
    modifier = serializers.UUIDField(source="modifier_id", read_only=True)

    class Meta:
        model = OrderItemModifier
        fields = ["modifier", "name", "price", "quantity"]


class OrderItemSerializer(BaseModelSerializer):
    order = serializers.UUIDField(source="order_id", read_only=True)
    menu_item = serializers.UUIDField(source="menu_item_id", read_only=True)
    origin_table = serializers.UUIDField(source="origin_table_id", read_only=True)
    modifiers = OrderItemModifierSerializer(many=True, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "order",
            "menu_item",
            "name",
            "quantity",
            "unit_price",
            "modifiers",
            "total",
            "status",
            "course",
            "special_instructions",
            "seat_number",
            "origin_table",
            "position",
            "sequence",
            "sent_to_kitchen_at",
            "completed_at",
            "created_at",
        ]


class OrderSerializer(BaseModelSerializer):
    table = serializers.UUIDField(source="table_id", read_only=True)
    table_number = serializers.SerializerMethodField()
    merged_into = serializers.UUIDField(source="merged_into_id", read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "table",
            "table_number",
            "order_type",
            "status",
            "items",
            "subtotal",
            "tax",
            "total",
            "notes",
            "cancellation_reason",
            "merged_into",
            "sequence",
            "created_at",
            "completed_at",
            "cancelled_at",
        ]

    def get_table_number(self, obj):
        return obj.table.number if obj.table_id else None


# --- Input shapes ---

class ModifierInputSerializer(serializers.Serializer):
    modifier_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class OrderItemInputSerializer(serializers.Serializer):
    menu_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    modifiers = ModifierInputSerializer(many=True, required=False, default=list)
    course = serializers.ChoiceField(choices=Course.choices, required=False)
    special_instructions = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    seat_number = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    # Origin table for items ordered at one table of a combined group
    table_id = serializers.UUIDField(required=False, allow_null=True)


class OrderCreateSerializer(serializers.Serializer):
    table_id = serializers.UUIDField(required=False, allow_null=True)
    order_type = serializers.ChoiceField(choices=Order.OrderType.choices, default=Order.OrderType.DINE_IN)
    items = OrderItemInputSerializer(many=True, required=False, default=list)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        table_id = attrs.get("table_id")
        if attrs["order_type"] == Order.OrderType.DINE_IN and not table_id:
            raise serializers.ValidationError({"table_id": "Dine-in orders require a table."})
        if attrs["order_type"] != Order.OrderType.DINE_IN and table_id:
            raise serializers.ValidationError(
                {"table_id": f"{attrs['order_type']} orders cannot be attached to a table."}
            )
        return attrs


class AddItemsSerializer(serializers.Serializer):
    items = OrderItemInputSerializer(many=True, allow_empty=False)
