from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.orm import sessionmaker
from lotwager.db.engine import make_engine
from lotwager.models import Base, BetType, Province
from lotwager.settlement.pricing import BetDraft
from lotwager.workflows import place_bet, submit_draw_result

PROVINCES = [
    # (province_id, name, code, region, draw_days)
    ("tp-hcm", "TP. Ho Chi Minh", "XSHCM", "M1", ["thu-hai", "thu-bay"]),
    ("dong-thap", "Dong Thap", "XSDT", "M1", ["thu-hai"]),
    ("ca-mau", "Ca Mau", "XSCM", "M1", ["thu-hai"]),
    ("vung-tau", "Vung Tau", "XSVT", "M1", ["thu-ba"]),
    ("ben-tre", "Ben Tre", "XSBTR", "M1", ["thu-ba"]),
    ("da-nang", "Da Nang", "XSDNG", "M1", ["thu-tu", "thu-bay"]),
    ("mien-bac", "Mien Bac", "XSMB", "M2", [
        "thu-hai", "thu-ba", "thu-tu", "thu-nam", "thu-sau", "thu-bay", "chu-nhat",
    ]),
]

HEAD_TAIL_VARIANTS = [
    {"id": "head", "name": "Head"},
    {"id": "tail", "name": "Tail"},
    {"id": "both", "name": "Head and tail"},
]

# Multipliers equal the number of prize values a bet plays against.
STANDARD_BET_TYPES = [
    dict(
        bet_type_id="dd",
        name="Head/Tail (2 digits)",
        digit_count=2,
        variants=HEAD_TAIL_VARIANTS,
        region_rules={
            "M1": {"bet_multipliers": {"head": 1, "tail": 1, "both": 2}, "combination_count": 1},
            "M2": {"bet_multipliers": {"head": 4, "tail": 1, "both": 5}, "combination_count": 1},
        },
        winning_ratio=75,
    ),
    dict(
        bet_type_id="xc",
        name="Head/Tail (3 digits)",
        digit_count=3,
        variants=HEAD_TAIL_VARIANTS,
        region_rules={
            "M1": {"bet_multipliers": {"head": 1, "tail": 1, "both": 2}, "combination_count": 1},
            "M2": {"bet_multipliers": {"head": 3, "tail": 1, "both": 4}, "combination_count": 1},
        },
        winning_ratio=650,
    ),
    dict(
        bet_type_id="bao_lo",
        name="Cover",
        variants=[
            {"id": "b2", "name": "Cover 2 digits", "digit_count": 2},
            {"id": "b3", "name": "Cover 3 digits", "digit_count": 3},
            {"id": "b4", "name": "Cover 4 digits", "digit_count": 4},
        ],
        region_rules={
            "M1": {"bet_multipliers": {"b2": 18, "b3": 17, "b4": 16}, "combination_count": 1},
            "M2": {"bet_multipliers": {"b2": 27, "b3": 23, "b4": 20}, "combination_count": 1},
        },
        winning_ratio={"b2": 75, "b3": 650, "b4": 5500},
    ),
    dict(
        bet_type_id="b7l",
        name="Cover 7 values",
        digit_count=2,
        region_rules={"M1": {"bet_multipliers": 7, "combination_count": 1}},
        winning_ratio=75,
    ),
    dict(
        bet_type_id="b8l",
        name="Cover 8 values",
        digit_count=2,
        region_rules={
            "M1": {"bet_multipliers": 8, "combination_count": 1},
            "M2": {"bet_multipliers": 8, "combination_count": 1},
        },
        winning_ratio=75,
    ),
    dict(
        bet_type_id="nt",
        name="First prize (2 digits)",
        digit_count=2,
        region_rules={
            "M1": {"bet_multipliers": 1, "combination_count": 1},
            "M2": {"bet_multipliers": 1, "combination_count": 1},
        },
        winning_ratio=75,
    ),
    dict(
        bet_type_id="xien",
        name="Pair",
        digit_count=2,
        variants=[
            {"id": "x2", "name": "Pair of 2", "number_count": 2},
            {"id": "x3", "name": "Pair of 3", "number_count": 3},
            {"id": "x4", "name": "Pair of 4", "number_count": 4},
        ],
        region_rules={
            "M2": {"bet_multipliers": 1, "combination_count": {"x2": 1, "x3": 1, "x4": 1}},
        },
        winning_ratio={"x2": 15, "x3": 40, "x4": 100},
    ),
    dict(
        bet_type_id="da",
        name="Combination",
        digit_count=2,
        variants=[
            {"id": "da2", "name": "Combination of 2", "number_count": 2},
            {"id": "da3", "name": "Combination of 3", "number_count": 3},
        ],
        region_rules={
            "M1": {"bet_multipliers": 36, "combination_count": {"da2": 1, "da3": 3}},
            "M2": {"bet_multipliers": 54, "combination_count": {"da2": 1, "da3": 3}},
        },
        winning_ratio={
            "da2": {"default": 750},
            "da3": {"two_once": 750, "three_once": 7500, "default": 750},
        },
    ),
]


def main() -> None:
    """Seed the development database with provinces, bet types and a sample bet."""
    engine = make_engine()

    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)

    with Session.begin() as session:
        session.add_all(
            Province(
                province_id=pid, name=name, code=code, region=region, draw_days=days
            )
            for pid, name, code, region, days in PROVINCES
        )
        session.add_all(BetType(**definition) for definition in STANDARD_BET_TYPES)
        session.flush()

        yesterday = date.today() - timedelta(days=1)
        submit_draw_result(
            session,
            "mien-bac",
            yesterday,
            {
                "special": ["12345"],
                "first": ["67890"],
                "second": ["11223", "44556"],
                "third": ["10101", "20202", "30303", "40404", "50505", "60606"],
                "fourth": ["1111", "2222", "3333", "4444"],
                "fifth": ["5555", "6666", "7777", "8888", "9999", "0000"],
                "sixth": ["123", "456", "789"],
                "seventh": ["23", "81", "04", "67"],
            },
            source="seed",
        )
        place_bet(
            session,
            BetDraft(
                user_id="user_01",
                bet_type="dd",
                bet_variant="both",
                denomination=Decimal("10000"),
                numbers=["23"],
                provinces=["mien-bac"],
                region_type="M2",
                bet_date=yesterday,
                draw_date=yesterday,
            ),
        )

    print("Seeded development database.")


if __name__ == "__main__":
    main()
