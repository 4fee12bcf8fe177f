import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from orderdesk.catalog import CatalogRepository, insert_default_data
from orderdesk.database import init_db, reset_db, session_scope
from orderdesk.models import BookType, Category, Country, Order, Website


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    reset_db()
    init_db("sqlite://")
    yield
    reset_db()


def _count(model):
    with session_scope() as session:
        return session.scalar(select(func.count()).select_from(model))


def _rows(model):
    with session_scope() as session:
        return list(session.scalars(select(model).order_by(model.name_id)))


def test_create_website():
    repo = CatalogRepository(Website)
    website = Website(name_id=1, name="Test Website", url="http://test.com")
    repo.add(website)
    created = repo.get(website.id)
    assert created.id == website.id
    assert created.name == website.name
    assert created.url == website.url


def test_delete_website():
    repo = CatalogRepository(Website)
    website = Website(name_id=2, name="Test Website for Delete", url="http://delete.com")
    repo.add(website)
    assert repo.delete(website.id) == 1
    assert repo.get(website.id) is None


def test_update_website():
    repo = CatalogRepository(Website)
    website = Website(name_id=3, name="Test Website for Update", url="http://update.com")
    repo.add(website)
    repo.update(website.name_id, {"Name": "Updated Website", "URL": "http://updated.com"})
    updated = repo.get(website.id)
    assert updated.name == "Updated Website"
    assert updated.url == "http://updated.com"


def test_query_website_by_id():
    repo = CatalogRepository(Website)
    website = Website(name_id=4, name="Test Website for Query", url="http://query.com")
    repo.add(website)
    retrieved = repo.get(website.id)
    assert retrieved is not None
    assert retrieved.name == website.name
    assert retrieved.url == website.url


def test_add_same_name_id_updates_existing_row():
    repo = CatalogRepository(Country)
    first = repo.add(Country(name_id=1, name="Old"))
    second = repo.add(Country(name_id=1, name="New"))
    assert second.id == first.id
    assert _count(Country) == 1
    assert repo.get(first.id).name == "New"


def test_book_type_upsert_updates_level_and_parent():
    repo = CatalogRepository(BookType)
    first = repo.add(BookType(name_id=9, name="Fantasy", level=1, parent=0))
    repo.add(BookType(name_id=9, name="Epic", level=2, parent=4))
    stored = repo.get(first.id)
    assert (stored.name, stored.level, stored.parent) == ("Epic", 2, 4)


def test_add_missing_name_raises():
    repo = CatalogRepository(Category)
    with pytest.raises(IntegrityError):
        repo.add(Category(name_id=5))
    assert _count(Category) == 0


def test_add_wrong_model_raises():
    repo = CatalogRepository(Category)
    with pytest.raises(TypeError):
        repo.add(Country(name_id=1, name="China"))


def test_repository_rejects_other_tables():
    with pytest.raises(TypeError):
        CatalogRepository(Order)


def test_batch_add_skips_failures():
    repo = CatalogRepository(Category)
    stored = repo.batch_add(
        [Category(name_id=1, name="a"), Category(name_id=2), Category(name_id=3, name="c")]
    )
    assert [item.name_id for item in stored] == [1, 3]
    assert _count(Category) == 2


def test_batch_delete_removes_only_given_ids():
    repo = CatalogRepository(Country)
    items = repo.batch_add([Country(name_id=n, name=f"c{n}") for n in range(3)])
    removed = repo.batch_delete([items[0].id, items[1].id])
    assert removed == 2
    assert [row.name_id for row in _rows(Country)] == [2]


def test_batch_delete_with_no_ids_removes_nothing():
    repo = CatalogRepository(Country)
    repo.add(Country(name_id=1, name="China"))
    assert repo.batch_delete([]) == 0
    assert _count(Country) == 1


def test_update_ignores_columns_that_are_not_updatable():
    repo = CatalogRepository(Category)
    item = repo.add(Category(name_id=1, name="a"))
    assert repo.update(1, {"name_id": 99, "name": "b"}) == 1
    stored = repo.get(item.id)
    assert (stored.name_id, stored.name) == (1, "b")


def test_update_writes_zero_values():
    repo = CatalogRepository(BookType)
    item = repo.add(BookType(name_id=3, name="Mystery", level=2, parent=5))
    repo.update(3, {"parent": 0})
    assert repo.get(item.id).parent == 0


def test_update_unknown_name_id_changes_nothing():
    repo = CatalogRepository(Website)
    repo.add(Website(name_id=1, name="site", url="www.example.com"))
    assert repo.update(42, {"name": "other"}) == 0
    assert _rows(Website)[0].name == "site"


def test_batch_update_applies_every_change():
    repo = CatalogRepository(Country)
    repo.batch_add([Country(name_id=n, name=f"c{n}") for n in range(3)])
    total = repo.batch_update({0: {"name": "zero"}, 2: {"Name": "two"}, 7: {"name": "none"}})
    assert total == 2
    assert [row.name for row in _rows(Country)] == ["zero", "c1", "two"]


def test_batch_get_orders_by_id_and_skips_missing():
    repo = CatalogRepository(Category)
    items = repo.batch_add([Category(name_id=n, name=f"k{n}") for n in range(3)])
    found = repo.batch_get([items[2].id, 999, items[0].id])
    assert [item.name for item in found] == ["k0", "k2"]
    assert repo.batch_get([]) == []


def test_get_missing_returns_none():
    assert CatalogRepository(Website).get(123) is None


def test_insert_default_data():
    insert_default_data()
    websites = _rows(Website)
    assert [(w.name_id, w.name, w.url) for w in websites] == [
        (0, "待分类", "未知"),
        (1, "j88d", "www.j88d.com"),
    ]
    assert [c.name for c in _rows(Category)] == ["待分类", "普通漫画", "色漫"]
    assert [c.name for c in _rows(Country)] == ["待分类", "中国", "韩国", "欧美", "日本"]
    types = _rows(BookType)
    assert len(types) == 7
    assert all(t.level == 1 and t.parent == 0 for t in types)


def test_insert_default_data_is_idempotent():
    insert_default_data()
    insert_default_data()
    assert _count(Website) == 2
    assert _count(Category) == 3
    assert _count(Country) == 5
    assert _count(BookType) == 7