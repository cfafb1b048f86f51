import unittest

from utils.constants import DEFAULT_CONSTANTS
from utils.economics import (
    EquipmentImportCost,
    apply_landed_costs,
    calculate_landed_cost,
    compute_loan_payment,
    round_half_up,
)


def _panel_quote(**overrides) -> EquipmentImportCost:
    values = dict(
        equipment_type="pv_panel",
        import_usd=100.0,
        shipping_usd=20.0,
        customs_duty_percent=10.0,
        inland_transport_etb=500.0,
        margin_percent=25.0,
    )
    values.update(overrides)
    return EquipmentImportCost(**values)


class LandedCostTests(unittest.TestCase):
    def test_known_landed_cost(self) -> None:
        # 5000 import + 1000 freight + 500 duty + 500 inland = 7000, plus 25% margin.
        self.assertEqual(calculate_landed_cost(_panel_quote(), exchange_rate=50.0), 8750)

    def test_port_handling_is_added_before_margin(self) -> None:
        quote = _panel_quote(port_handling_etb=200.0)
        self.assertEqual(calculate_landed_cost(quote, exchange_rate=50.0), 9000)

    def test_half_unit_landed_cost_rounds_up(self) -> None:
        # 7250 landed base plus 25% margin is exactly 9062.5.
        quote = _panel_quote(port_handling_etb=250.0)
        self.assertEqual(calculate_landed_cost(quote, exchange_rate=50.0), 9063)

    def test_round_half_up_breaks_ties_upward(self) -> None:
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(2.4999), 2)
        self.assertEqual(round_half_up(-2.5), -2)

    def test_from_mapping_defaults_missing_port_handling(self) -> None:
        quote = EquipmentImportCost.from_mapping(
            {
                "equipment_type": "battery_unit",
                "import_usd": 1000,
                "shipping_usd": 100,
                "customs_duty_percent": 5,
                "inland_transport_etb": 1000,
                "margin_percent": 0,
                "port_handling_etb": None,
            }
        )
        self.assertEqual(quote.port_handling_etb, 0.0)

    def test_negative_inputs_raise(self) -> None:
        with self.assertRaises(ValueError):
            calculate_landed_cost(_panel_quote(), exchange_rate=-1.0)
        with self.assertRaises(ValueError):
            calculate_landed_cost(_panel_quote(margin_percent=-5.0), exchange_rate=50.0)

    def test_apply_landed_costs_reprices_mapped_units(self) -> None:
        quotes = [
            _panel_quote(),
            _panel_quote(equipment_type="inverter_3ph_15kw", import_usd=2000.0),
            _panel_quote(equipment_type="generator"),
        ]
        with self.assertLogs("utils.economics", level="WARNING") as captured:
            repriced = apply_landed_costs(DEFAULT_CONSTANTS, quotes, exchange_rate=50.0)

        self.assertEqual(repriced.cost_unit_pv_panel, 8750)
        self.assertGreater(repriced.cost_unit_inverter_3ph, 0)
        self.assertEqual(repriced.cost_unit_battery, DEFAULT_CONSTANTS.cost_unit_battery)
        self.assertEqual(DEFAULT_CONSTANTS.cost_unit_pv_panel, 15_000)
        self.assertTrue(any("generator" in line for line in captured.output))


class LoanPaymentTests(unittest.TestCase):
    def test_annuity_payment(self) -> None:
        quote = compute_loan_payment(1_000_000, down_payment_pct=20, term_years=3, annual_interest_pct=16.5)

        rate = 0.165 / 12
        growth = (1 + rate) ** 36
        expected = 800_000 * rate * growth / (growth - 1)

        self.assertEqual(quote.number_of_payments, 36)
        self.assertAlmostEqual(quote.loan_amount, 800_000)
        self.assertAlmostEqual(quote.down_payment, 200_000)
        self.assertAlmostEqual(quote.monthly_payment, expected, places=6)
        self.assertAlmostEqual(quote.monthly_payment, 28_323, delta=25)
        self.assertAlmostEqual(quote.total_interest, expected * 36 - 800_000, places=4)
        self.assertAlmostEqual(quote.total_payment, expected * 36 + 200_000, places=4)

    def test_zero_interest_is_straight_line(self) -> None:
        quote = compute_loan_payment(360_000, down_payment_pct=0, term_years=3, annual_interest_pct=0)

        self.assertAlmostEqual(quote.monthly_payment, 10_000)
        self.assertAlmostEqual(quote.total_interest, 0.0)
        self.assertAlmostEqual(quote.total_payment, 360_000)

    def test_full_down_payment_means_no_loan(self) -> None:
        quote = compute_loan_payment(360_000, down_payment_pct=100)

        self.assertEqual(quote.loan_amount, 0.0)
        self.assertEqual(quote.monthly_payment, 0.0)
        self.assertEqual(quote.total_payment, 360_000)

    def test_invalid_terms_raise(self) -> None:
        with self.assertRaises(ValueError):
            compute_loan_payment(360_000, term_years=0)
        with self.assertRaises(ValueError):
            compute_loan_payment(float("nan"))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
