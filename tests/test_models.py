import pytest
from sqlalchemy import create_engine, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from orderdesk.models import (
    Base,
    BookType,
    Category,
    Country,
    Order,
    Website,
    order_from_json,
)


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as db_session:
        yield db_session
    engine.dispose()


def _sample():
    return {
        "pddOrderId": "PDD-1",
        "pddOrderTime": "2024-01-01 10:00:00",
        "pddOrderPrice": 19.9,
        "pddProductType": "cup",
        "pddProductColor": "red",
        "pddBuyerInfo": "buyer",
        "pddIsBlackList": True,
        "dropShippingOrderId": "DS-1",
        "dropShippingPrice": 12,
    }


def test_table_names():
    instances = [
        Website(name_id=0, name="site", url="site.example.com"),
        Country(name_id=0, name="land"),
        Category(name_id=0, name="kind"),
        BookType(name_id=0, name="genre"),
        order_from_json({}),
    ]
    names = {inspect(instance).mapper.local_table.name for instance in instances}
    assert names == {"websites", "countries", "categories", "types", "orders"}


def test_order_from_json_round_trip():
    data = _sample()
    result = order_from_json(data).to_dict()
    for key, value in data.items():
        assert result[key] == value
    assert result["id"] == 0
    assert result["pddRemark"] == ""
    assert result["dropShippingDiscountPrice"] == 0.0


def test_order_from_json_int_price_becomes_float():
    order = order_from_json(_sample())
    assert isinstance(order.drop_shipping_price, float)
    assert order.drop_shipping_price == 12


def test_order_from_json_keys_match_case_insensitively():
    order = order_from_json({"PDDORDERID": "PDD-2", "dropshippingorderid": "DS-2"})
    assert order.pdd_order_id == "PDD-2"
    assert order.drop_shipping_order_id == "DS-2"


def test_order_from_json_exact_key_wins():
    order = order_from_json({"pddorderid": "folded", "pddOrderId": "exact"})
    assert order.pdd_order_id == "exact"


def test_order_from_json_ignores_unknown_and_null():
    order = order_from_json({"extra": 1, "pddRemark": None, "id": 5})
    assert order.pdd_remark == ""
    assert order.id == 5


@pytest.mark.parametrize(
    "data",
    [
        {"pddOrderPrice": "cheap"},
        {"pddOrderId": 7},
        {"pddIsBlackList": 1},
        {"id": -1},
        {"id": 1.5},
        {"dropShippingPrice": True},
    ],
)
def test_order_from_json_rejects_wrong_types(data):
    with pytest.raises(ValueError):
        order_from_json(data)


@pytest.mark.parametrize("data", [[1, 2], "text", None])
def test_order_from_json_rejects_non_objects(data):
    with pytest.raises(ValueError):
        order_from_json(data)


def test_order_stored_and_read_back(session):
    session.add(order_from_json(_sample()))
    session.commit()
    stored = session.scalars(select(Order)).one()
    assert stored.id >= 1
    assert stored.to_dict()["pddOrderId"] == "PDD-1"
    assert stored.pdd_is_black_list is True


def test_order_pair_is_unique(session):
    session.add(order_from_json(_sample()))
    session.commit()
    other_drop = dict(_sample(), dropShippingOrderId="DS-9")
    session.add(order_from_json(other_drop))
    session.commit()
    session.add(order_from_json(_sample()))
    with pytest.raises(IntegrityError):
        session.commit()


def test_website_name_id_is_unique(session):
    session.add(Website(name_id=1, name="a", url="a.example.com"))
    session.commit()
    session.add(Website(name_id=1, name="b", url="b.example.com"))
    with pytest.raises(IntegrityError):
        session.commit()


def test_catalog_defaults_applied_on_insert(session):
    session.add_all(
        [
            Website(name_id=0, name="site", url="site.example.com"),
            BookType(name_id=3, name="genre"),
            Country(name_id=2, name="land"),
            Category(name_id=1, name="kind"),
        ]
    )
    session.commit()
    website = session.scalars(select(Website)).one()
    book_type = session.scalars(select(BookType)).one()
    assert website.need_proxy == 0
    assert (book_type.level, book_type.parent) == (1, 0)
    assert session.scalars(select(Country)).one().name == "land"
    assert session.scalars(select(Category)).one().name_id == 1