import unittest
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from lotwager.db.engine import get_sessionmaker, make_engine
from lotwager.models import Base, Bet, BetType, DrawResult, Province
from lotwager.settlement.errors import PricingRejected
from lotwager.settlement.pricing import BetDraft
from lotwager.workflows import (
    count_pending_bets,
    diagnose_pending_bets,
    place_bet,
    price_bet,
    settle_bets,
    submit_draw_result,
)

DRAW_DAY = date(2024, 5, 1)


def _draft(**overrides) -> BetDraft:
    fields = dict(
        user_id="player-1",
        bet_type="dd",
        bet_variant="head",
        denomination=Decimal("5000"),
        numbers=["23", "45"],
        provinces=["mien-bac"],
        region_type="M2",
        bet_date=DRAW_DAY,
        draw_date=DRAW_DAY,
    )
    fields.update(overrides)
    return BetDraft(**fields)


class WorkflowTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = make_engine("sqlite+pysqlite:///:memory:")
        Base.metadata.create_all(self.engine)
        self.Session = get_sessionmaker(self.engine)
        with self.Session.begin() as session:
            session.add_all(
                [
                    Province(province_id="mien-bac", name="Mien Bac", region="M2"),
                    Province(province_id="tp-hcm", name="TP. HCM", region="M1"),
                    BetType(
                        bet_type_id="dd",
                        name="Head/Tail",
                        digit_count=2,
                        variants=[
                            {"id": "head", "name": "Head"},
                            {"id": "tail", "name": "Tail"},
                            {"id": "both", "name": "Both"},
                        ],
                        region_rules={
                            "M1": {"bet_multipliers": {"head": 1, "tail": 1, "both": 2}},
                            "M2": {"bet_multipliers": {"head": 4, "tail": 1, "both": 5}},
                        },
                        winning_ratio=75,
                    ),
                    BetType(
                        bet_type_id="b7l",
                        name="Seven-value cover",
                        digit_count=2,
                        region_rules={"M1": {"bet_multipliers": 7}},
                        winning_ratio=75,
                    ),
                    BetType(
                        bet_type_id="da",
                        name="Combination",
                        digit_count=2,
                        variants=[{"id": "da2", "name": "Two numbers"}],
                        region_rules={"M2": {"bet_multipliers": 1}},
                        winning_ratio={"da2": 750},
                    ),
                    BetType(
                        bet_type_id="old",
                        name="Retired",
                        digit_count=2,
                        region_rules={"M2": {"bet_multipliers": 1}},
                        winning_ratio=70,
                        is_active=False,
                    ),
                ]
            )

    def tearDown(self):
        self.engine.dispose()


class PriceAndPlaceTests(WorkflowTestCase):
    def test_price_bet_sums_provinces(self):
        with self.Session() as session:
            quote = price_bet(session, _draft(provinces=["mien-bac", "tp-hcm"]))
            # M2 head: 5000*4*2, M1 head: 5000*1*2
            self.assertEqual(quote.stake_amount, Decimal("50000"))
            self.assertEqual(quote.potential_win_amount, Decimal(5000 * 75 * 2 * 2))
            self.assertEqual([line.region for line in quote.lines], ["M2", "M1"])

    def test_unregistered_province_uses_form_region(self):
        with self.Session() as session:
            quote = price_bet(session, _draft(provinces=["hai-phong"]))
            self.assertEqual(quote.lines[0].region, "M2")

    def test_rejections(self):
        cases = {
            "unknown type": _draft(bet_type="lottery"),
            "inactive type": _draft(bet_type="old", bet_variant=None),
            "undeclared variant": _draft(bet_variant="middle"),
            "unsupported region": _draft(bet_type="b7l", bet_variant=None),
        }
        with self.Session() as session:
            for label, draft in cases.items():
                with self.subTest(label):
                    with self.assertRaises(PricingRejected) as ctx:
                        price_bet(session, draft)
                    self.assertTrue(ctx.exception.unresolved)

    def test_unsupported_region_lists_the_province(self):
        with self.Session() as session:
            with self.assertRaises(PricingRejected) as ctx:
                price_bet(
                    session,
                    _draft(bet_type="b7l", bet_variant=None, provinces=["tp-hcm", "mien-bac"]),
                )
            self.assertEqual(
                [(u["province_id"], u["code"]) for u in ctx.exception.unresolved],
                [("mien-bac", "UNSUPPORTED_REGION")],
            )

    def test_invalid_drafts(self):
        with self.Session() as session:
            with self.assertRaises(ValueError):
                price_bet(session, _draft(denomination=Decimal("500")))
            with self.assertRaises(ValueError):
                price_bet(session, _draft(numbers=["234"]))
            with self.assertRaises(ValueError):
                place_bet(session, _draft(provinces=["tp-hcm", "mien-bac", "tp-hcm"]))
            self.assertEqual(count_pending_bets(session), 0)

    def test_place_bet_persists_pending_bet(self):
        with self.Session.begin() as session:
            bet = place_bet(session, _draft(bet_date=None, selection_method="sequence"))
            self.assertIsNotNone(bet.id)

        with self.Session() as session:
            stored = session.scalars(select(Bet)).one()
            self.assertEqual(stored.status, "pending")
            self.assertEqual(stored.total_amount, Decimal("40000"))
            self.assertEqual(stored.potential_win_amount, Decimal("750000"))
            self.assertEqual(stored.numbers, ["23", "45"])
            self.assertEqual(stored.selection_method, "sequence")
            self.assertEqual(stored.bet_date, date.today())

    def test_rejected_draft_is_not_persisted(self):
        with self.Session() as session:
            with self.assertRaises(PricingRejected):
                place_bet(session, _draft(bet_variant="middle"))
            session.commit()
            self.assertEqual(count_pending_bets(session), 0)


class SubmitDrawResultTests(WorkflowTestCase):
    def test_stores_tiers(self):
        with self.Session.begin() as session:
            result = submit_draw_result(
                session,
                "mien-bac",
                "2024-05-01",
                {"special": ["12345"], "seventh": ["23", "81", "04", "67"]},
                source="crawler",
            )
            self.assertIsNotNone(result.id)

        with self.Session() as session:
            stored = DrawResult.get_for(session, "mien-bac", DRAW_DAY)
            assert stored is not None
            self.assertEqual(stored.special_prize, ["12345"])
            self.assertEqual(stored.seventh_prize, ["23", "81", "04", "67"])
            self.assertIsNone(stored.first_prize)
            self.assertEqual(stored.source, "crawler")

    def test_validation(self):
        cases = {
            "unknown province": ("atlantis", {"special": ["12345"]}),
            "tier not in region": ("mien-bac", {"special": ["12345"], "eighth": ["12"]}),
            "no special prize": ("tp-hcm", {"eighth": ["12"]}),
            "non-digit value": ("tp-hcm", {"special": ["12a45"]}),
            "not a list": ("tp-hcm", {"special": "123456"}),
        }
        with self.Session() as session:
            for label, (province_id, tiers) in cases.items():
                with self.subTest(label):
                    with self.assertRaises(ValueError):
                        submit_draw_result(session, province_id, DRAW_DAY, tiers)
            session.rollback()

    def test_duplicate_is_rejected(self):
        with self.Session.begin() as session:
            submit_draw_result(session, "tp-hcm", DRAW_DAY, {"special": ["123456"]})
        with self.Session() as session:
            with self.assertRaises(ValueError):
                submit_draw_result(session, "tp-hcm", DRAW_DAY, {"special": ["654321"]})


class DiagnoseTests(WorkflowTestCase):
    def _insert_bet(self, session, **overrides) -> Bet:
        fields = dict(
            user_id="player-1",
            bet_date=DRAW_DAY,
            draw_date=DRAW_DAY,
            region_type="M2",
            provinces=["mien-bac"],
            bet_type="dd",
            bet_variant="head",
            numbers=["23"],
            denomination=Decimal("1000"),
            total_amount=Decimal("4000"),
            potential_win_amount=Decimal("75000"),
        )
        fields.update(overrides)
        bet = Bet(**fields)
        session.add(bet)
        session.flush()
        return bet

    def test_empty_report(self):
        with self.Session() as session:
            report = diagnose_pending_bets(session)
            self.assertEqual(report["total_pending"], 0)
            self.assertEqual(report["issues"], [])

    def test_reports_every_blocking_condition(self):
        with self.Session.begin() as session:
            self._insert_bet(session)
            self._insert_bet(session, provinces=["tp-hcm"], region_type="M1")
            self._insert_bet(session, bet_type="ghost")
            self._insert_bet(session, bet_type="da", bet_variant="da2", numbers=["23", "45"])
            self._insert_bet(session, bet_variant="middle")
            self._insert_bet(session, bet_type="b7l", bet_variant=None)
            self._insert_bet(session, draw_date=date(2024, 5, 2), needs_review=True)
            submit_draw_result(session, "mien-bac", DRAW_DAY, {"special": ["12345"]})

        with self.Session() as session:
            report = diagnose_pending_bets(session)
            self.assertEqual(report["total_pending"], 7)
            self.assertEqual(report["needs_review"], 1)
            self.assertEqual(report["draw_dates"], ["2024-05-01", "2024-05-02"])
            self.assertEqual(report["bet_types"]["dd"], 4)
            self.assertEqual(report["results_available"], 1)

            issues = {issue["type"]: issue["detail"] for issue in report["issues"]}
            self.assertEqual(
                issues["missing_results"],
                [
                    {"province_id": "mien-bac", "draw_date": "2024-05-02"},
                    {"province_id": "tp-hcm", "draw_date": "2024-05-01"},
                ],
            )
            self.assertEqual(issues["unknown_bet_types"], ["ghost"])
            self.assertEqual(issues["unimplemented_bet_types"], ["da"])
            self.assertEqual(issues["unsupported_regions"], [{"bet_type": "b7l", "region": "M2"}])
            self.assertEqual(issues["invalid_variants"][0]["variant"], "middle")
            self.assertNotIn("unresolved_config", issues)

            # Diagnosis is read-only.
            self.assertFalse(session.new or session.dirty)

    def test_filter_by_draw_date(self):
        with self.Session.begin() as session:
            self._insert_bet(session)
            self._insert_bet(session, draw_date=date(2024, 5, 2))

        with self.Session() as session:
            report = diagnose_pending_bets(session, "2024-05-02")
            self.assertEqual(report["total_pending"], 1)
            self.assertEqual(count_pending_bets(session), 2)
            self.assertEqual(count_pending_bets(session, DRAW_DAY), 1)

    def test_unresolved_config(self):
        with self.Session.begin() as session:
            BetType.get_by_bet_type_id(session, "dd").region_rules = {
                "M2": {"bet_multipliers": {"tail": 1}},
            }
            self._insert_bet(session)

        with self.Session() as session:
            report = diagnose_pending_bets(session)
            issues = {issue["type"]: issue["detail"] for issue in report["issues"]}
            self.assertEqual(issues["unresolved_config"][0]["code"], "MISSING_VARIANT_CONFIG")
            self.assertEqual(issues["unresolved_config"][0]["region"], "M2")

    def test_count_drops_after_settlement(self):
        with self.Session.begin() as session:
            self._insert_bet(session)
            submit_draw_result(
                session, "mien-bac", DRAW_DAY, {"special": ["12345"], "seventh": ["23"]}
            )
        with self.Session.begin() as session:
            self.assertEqual(count_pending_bets(session), 1)
            settle_bets(session)
            self.assertEqual(count_pending_bets(session), 0)


if __name__ == "__main__":
    unittest.main()
