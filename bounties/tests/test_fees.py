from decimal import Decimal

from django.test import TestCase, override_settings

from bounties.fees import calculate_platform_fee


class PlatformFeeTest(TestCase):
    def test_fee_at_default_rate(self):
        fees = [calculate_platform_fee(amount) for amount in (100, 250, 1000)]
        self.assertEqual(fees, [Decimal("2.50"), Decimal("6.25"), Decimal("25.00")])
        self.assertEqual([float(fee) for fee in fees], [2.5, 6.25, 25.0])

    def test_fee_rounds_half_up(self):
        self.assertEqual(calculate_platform_fee(Decimal("0.30")), Decimal("0.01"))
        self.assertEqual(calculate_platform_fee(Decimal("10.10")), Decimal("0.25"))

    @override_settings(PLATFORM_FEE_RATE=Decimal("0.05"))
    def test_configured_rate(self):
        self.assertEqual(calculate_platform_fee(100), Decimal("5.00"))

    def test_explicit_rate(self):
        self.assertEqual(calculate_platform_fee(200, rate="0.01"), Decimal("2.00"))
