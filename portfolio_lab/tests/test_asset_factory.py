import unittest
from portfolio_lab.asset_factory import (
    UnknownAssetTypeError,
    create_asset,
    create_asset_from_json,
    is_investment,
    is_property,
)
from portfolio_lab.investment import InvestmentAsset
from portfolio_lab.property import PropertyAsset
from portfolio_lab.schemas import ProjectionHorizon


class TestCreateAsset(unittest.TestCase):

    def test_builds_each_type(self):
        investment = create_asset("investment", "Brokerage", {"initialAmount": "2500"})
        self.assertIsInstance(investment, InvestmentAsset)
        self.assertTrue(is_investment(investment))
        self.assertEqual(investment.inputs.initial_amount, "2500")

        home = create_asset("property", "Home", {"purchase_price": "300000"})
        self.assertIsInstance(home, PropertyAsset)
        self.assertTrue(is_property(home))
        self.assertEqual(home.inputs.purchase_price, "300000")

    def test_unknown_type(self):
        with self.assertRaises(UnknownAssetTypeError):
            create_asset("crypto", "Coins")


class TestCreateAssetFromJson(unittest.TestCase):

    def test_dispatches_on_type(self):
        horizon = ProjectionHorizon(years=3)
        investment = create_asset_from_json(
            {"id": "inv-1", "name": "Index", "type": "investment", "inputs": {"rateOfReturn": "0"}}, horizon,
        )
        self.assertIsInstance(investment, InvestmentAsset)
        self.assertEqual(investment.id, "inv-1")
        self.assertEqual(len(investment.results), 4)

        home = create_asset_from_json({"id": "home-1", "name": "Home", "type": "property"}, horizon)
        self.assertIsInstance(home, PropertyAsset)
        self.assertEqual(home.id, "home-1")

    def test_round_trip_keeps_class(self):
        original = create_asset("property", "Duplex")
        restored = create_asset_from_json(original.to_json())
        self.assertIsInstance(restored, PropertyAsset)
        self.assertEqual(restored.id, original.id)

    def test_unknown_or_missing_type(self):
        for data in ({"id": "x", "name": "Gold", "type": "commodity"}, {"id": "x", "name": "Gold"}, ["x"]):
            with self.assertRaises(UnknownAssetTypeError):
                create_asset_from_json(data)


if __name__ == "__main__":
    unittest.main()
