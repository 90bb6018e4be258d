import unittest
from portfolio_lab.money import parse_number, parse_optional_number, parse_int, compound, deflate, inflation_factor, round2


class TestMoney(unittest.TestCase):

    def test_parse_number_invalid_input_is_zero(self):
        """Empty or malformed text parses to 0 instead of raising"""
        for value in ("", "   ", "abc", None, "nan", "inf", "12..5"):
            self.assertEqual(parse_number(value), 0.0, value)

    def test_parse_number_valid_input(self):
        self.assertEqual(parse_number(" 12.5 "), 12.5)
        self.assertEqual(parse_number("1,000"), 1000.0)
        self.assertEqual(parse_number("$250,000"), 250000.0)
        self.assertEqual(parse_number("-20000"), -20000.0)
        self.assertEqual(parse_number(7), 7.0)

    def test_parse_optional_number(self):
        self.assertIsNone(parse_optional_number(""))
        self.assertIsNone(parse_optional_number("abc"))
        self.assertIsNone(parse_optional_number(None))
        self.assertEqual(parse_optional_number("$1,000"), 1000.0)
        self.assertEqual(parse_optional_number(0), 0.0)

    def test_parse_int_defaults(self):
        self.assertEqual(parse_int("7"), 7)
        self.assertEqual(parse_int("", 30), 30)
        self.assertEqual(parse_int("abc", 30), 30)
        self.assertEqual(parse_int("0", 30), 0)
        self.assertEqual(parse_int("15.9"), 15)

    def test_compound(self):
        """$10,000 at 7% for 10 years"""
        self.assertEqual(round2(compound(10000, 7, 10)), 19671.51)
        self.assertEqual(compound(10000, 0, 10), 10000)

    def test_deflate(self):
        self.assertAlmostEqual(deflate(110, 10, 1), 100.0)
        self.assertAlmostEqual(deflate(1000, 2.5, 0), 1000.0)
        self.assertAlmostEqual(inflation_factor(3, 2), 1.0609)

    def test_round2_half_up(self):
        self.assertEqual(round2(1.005), 1.01)
        self.assertEqual(round2(2.675), 2.68)
        self.assertEqual(round2(-1.005), -1.01)
        self.assertEqual(round2(1060.8999999999999), 1060.9)


if __name__ == "__main__":
    unittest.main()
