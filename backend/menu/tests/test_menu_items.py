"""
Menu Item Tests

Only availability matters to ordering.
"""
import pytest

from menu.models import MenuItem


@pytest.mark.django_db
class TestCanBeOrdered:

    def test_available_item(self, burger):
        assert burger.can_be_ordered is True

    def test_86d_item(self, burger):
        burger.is_86d = True
        assert burger.can_be_ordered is False

    def test_disabled_item(self, burger):
        burger.is_available = False
        assert burger.can_be_ordered is False

    def test_menu_ordered_by_name(self, burger, fries, soup):
        assert list(MenuItem.objects.values_list("name", flat=True)) == ["Burger", "Fries", "Soup"]
