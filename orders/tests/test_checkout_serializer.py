from decimal import Decimal

from django.test import SimpleTestCase

from orders.api.exceptions import checkout_exception_handler, first_error_message
from orders.api.serializers import (
    PlaceOrderSerializer,
    coerce_money,
    coerce_quantity,
    is_valid_pakistani_phone,
)
from orders.exceptions import InvalidInput


def details(**overrides):
    data = {
        "fullName": "Ayesha Khan",
        "phonePk": "03001234567",
        "province": "Punjab",
        "city": "Lahore",
        "tehsil": "Model Town",
        "district": "Lahore",
        "houseAddress": "House 12, Street 4",
    }
    data.update(overrides)
    return data


def validate(items, customer=None):
    serializer = PlaceOrderSerializer(data={"selectedItems": items, "customerDetails": customer or details()})
    valid = serializer.is_valid()
    return valid, serializer


class CoercionTests(SimpleTestCase):
    def test_quantity_coercion(self):
        self.assertEqual(coerce_quantity(3), 3)
        self.assertEqual(coerce_quantity("2.9"), 2)
        self.assertEqual(coerce_quantity(0), 1)
        self.assertEqual(coerce_quantity(-4), 1)
        self.assertEqual(coerce_quantity("abc"), 1)
        self.assertEqual(coerce_quantity(None), 1)
        self.assertEqual(coerce_quantity(float("inf")), 1)
        self.assertEqual(coerce_quantity("nan"), 1)

    def test_money_coercion(self):
        self.assertEqual(coerce_money("1499.5"), Decimal("1499.50"))
        self.assertEqual(coerce_money(200), Decimal("200.00"))
        self.assertEqual(coerce_money(-1), Decimal("0.00"))
        self.assertEqual(coerce_money("Infinity"), Decimal("0.00"))
        self.assertEqual(coerce_money("NaN"), Decimal("0.00"))
        self.assertEqual(coerce_money("twelve"), Decimal("0.00"))
        self.assertEqual(coerce_money(None), Decimal("0.00"))

    def test_pakistani_phone_pattern(self):
        self.assertTrue(is_valid_pakistani_phone("03001234567"))
        self.assertTrue(is_valid_pakistani_phone("+923001234567"))
        self.assertTrue(is_valid_pakistani_phone(" 03451234567 "))
        self.assertFalse(is_valid_pakistani_phone("123456"))
        self.assertFalse(is_valid_pakistani_phone("04001234567"))
        self.assertFalse(is_valid_pakistani_phone("0300123456"))


class PlaceOrderSerializerTests(SimpleTestCase):
    def test_normalizes_item_and_customer(self):
        valid, s = validate(
            [
                {
                    "productId": "  p1 ",
                    "colorName": " Black ",
                    "quantity": "3",
                    "productName": "  ",
                    "productSnapshot": {"name": "AirBuds X20", "slug": "airbuds-x20", "image": "https://img/1.jpg"},
                    "unitPrice": "1000",
                    "deliveryFee": -50,
                }
            ],
            details(fullName="  Ayesha Khan  ", shopName="  Corner Shop "),
        )
        self.assertTrue(valid, s.errors)
        item = s.validated_data["items"][0]
        self.assertEqual(item["productId"], "p1")
        self.assertEqual(item["color"], "Black")
        self.assertEqual(item["quantity"], 3)
        self.assertEqual(item["name"], "AirBuds X20")
        self.assertEqual(item["slug"], "airbuds-x20")
        self.assertEqual(item["image"], "https://img/1.jpg")
        self.assertEqual(item["unitPrice"], Decimal("1000.00"))
        self.assertEqual(item["deliveryFee"], Decimal("0.00"))
        self.assertEqual(item["lineTotal"], Decimal("3000.00"))

        customer = s.validated_data["customer_details"]
        self.assertEqual(customer["fullName"], "Ayesha Khan")
        self.assertEqual(customer["shopName"], "Corner Shop")

    def test_name_falls_back_to_unknown_product(self):
        valid, s = validate([{"productId": "p1", "colorName": "Black", "quantity": None, "unitPrice": None}])
        self.assertTrue(valid, s.errors)
        item = s.validated_data["items"][0]
        self.assertEqual(item["name"], "Unknown Product")
        self.assertEqual(item["quantity"], 1)
        self.assertEqual(item["lineTotal"], Decimal("0.00"))

    def test_missing_customer_details(self):
        s = PlaceOrderSerializer(data={"selectedItems": [{"productId": "p1", "colorName": "Black"}]})
        self.assertFalse(s.is_valid())
        self.assertEqual(first_error_message(s.errors), "Customer details are required.")

    def test_customer_errors_come_before_item_errors(self):
        valid, s = validate([{"productId": "", "colorName": "Black"}], details(fullName=""))
        self.assertFalse(valid)
        self.assertEqual(first_error_message(s.errors), "Full name is required.")

    def test_first_customer_error_follows_field_order(self):
        valid, s = validate(
            [{"productId": "p1", "colorName": "Black"}],
            details(phonePk="12", city=""),
        )
        self.assertFalse(valid)
        self.assertEqual(first_error_message(s.errors), "Enter a valid Pakistani phone number.")

    def test_missing_phone(self):
        valid, s = validate([{"productId": "p1", "colorName": "Black"}], details(phonePk=None))
        self.assertFalse(valid)
        self.assertEqual(first_error_message(s.errors), "Phone number is required.")

    def test_item_without_product_id(self):
        valid, s = validate([{"productId": "p1", "colorName": "Black"}, {"colorName": "Black"}])
        self.assertFalse(valid)
        self.assertEqual(first_error_message(s.errors), "Selected item #2 is missing product or color.")

    def test_price_beyond_column_precision_is_rejected(self):
        valid, s = validate(
            [{"productId": "p1", "colorName": "Black"}, {"productId": "p2", "colorName": "Black", "unitPrice": "1e12"}]
        )
        self.assertFalse(valid)
        self.assertEqual(first_error_message(s.errors), "Selected item #2 has an invalid price.")

    def test_largest_storable_price_is_accepted(self):
        valid, s = validate([{"productId": "p1", "colorName": "Black", "unitPrice": "9999999999.99"}])
        self.assertTrue(valid, s.errors)
        self.assertEqual(s.validated_data["items"][0]["unitPrice"], Decimal("9999999999.99"))

    def test_order_total_beyond_column_precision_is_rejected(self):
        line = {"productId": "p1", "colorName": "Black", "quantity": 99, "unitPrice": "9999999999.99"}
        valid, s = validate([line, dict(line, colorName="White")])
        self.assertFalse(valid)
        self.assertEqual(first_error_message(s.errors), "Order total is too large.")


class CheckoutExceptionHandlerTests(SimpleTestCase):
    def test_invalid_input_renders_message(self):
        res = checkout_exception_handler(InvalidInput("Tehsil is required."), {})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data, {"message": "Tehsil is required."})
