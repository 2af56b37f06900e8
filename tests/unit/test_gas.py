# PATH: tests/unit/test_gas.py
"""
Unit tests for the gas cost model.
"""

import unittest
from decimal import Decimal

from strategy.gas import GasCostModel


class TestGasCostModel(unittest.TestCase):
    """Tests for GasCostModel.estimate_gas_cost."""

    def test_default_single_swap(self):
        """300k gas * 20 gwei * 2000 = 12.0"""
        self.assertAlmostEqual(GasCostModel().estimate_gas_cost(1), 12.0)

    def test_three_swaps(self):
        self.assertAlmostEqual(GasCostModel().estimate_gas_cost(3), 36.0)

    def test_native_cost(self):
        """300k gas * 20 gwei = 0.006 ETH"""
        self.assertEqual(GasCostModel().gas_cost_native, Decimal("0.006"))

    def test_custom_values(self):
        model = GasCostModel(gas_limit=150_000, gas_price_gwei=30, native_price_quote=0.8)
        # 150k * 30 gwei = 0.0045 native; * 0.8
        self.assertAlmostEqual(model.estimate_gas_cost(1), 0.0036)

    def test_zero_gas_price(self):
        self.assertEqual(GasCostModel(gas_price_gwei=0).estimate_gas_cost(3), 0.0)

    def test_fractional_gwei(self):
        model = GasCostModel(gas_price_gwei=0.1)
        self.assertAlmostEqual(model.estimate_gas_cost(1), 0.06)


if __name__ == "__main__":
    unittest.main()
