from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest

from cart import LineItem, ShoppingCart
from cart_storage import CartStorage


@pytest.fixture
def storage(tmp_path: Path) -> CartStorage:
    return CartStorage(tmp_path / "slot" / "cart.json")


def test_missing_slot_loads_empty(storage: CartStorage) -> None:
    assert storage.load() == []


def test_save_then_load_round_trip(storage: CartStorage) -> None:
    items = [LineItem("Pizza", Decimal("16.99"), 2), LineItem("Salad", Decimal("9.99"), 1)]
    storage.save(items)
    assert storage.load() == items


def test_save_load_is_idempotent(storage: CartStorage) -> None:
    storage.save([LineItem("Iced Coffee", Decimal("4.99"), 3)])
    first = storage.path.read_text(encoding="utf-8")

    storage.save(storage.load())
    assert storage.path.read_text(encoding="utf-8") == first


def test_slot_format_is_json_array(storage: CartStorage) -> None:
    storage.save([LineItem("Pizza", Decimal("16.99"), 2)])
    data = json.loads(storage.path.read_text(encoding="utf-8"))
    assert data == [{"name": "Pizza", "price": "16.99", "quantity": 2}]


def test_numeric_prices_are_accepted(storage: CartStorage) -> None:
    storage.path.parent.mkdir(parents=True)
    storage.path.write_text(json.dumps([{"name": "Pizza", "price": 16.99, "quantity": 2}]))
    assert storage.load() == [LineItem("Pizza", Decimal("16.99"), 2)]


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "{\"name\": \"Pizza\"}",
        "[{\"name\": \"Pizza\"}]",
        "[{\"name\": \"Pizza\", \"price\": \"x\", \"quantity\": 1}]",
        "[{\"name\": \"Pizza\", \"price\": 1, \"quantity\": 0}]",
        "[{\"name\": \"Pizza\", \"price\": -1, \"quantity\": 1}]",
        "[{\"name\": \"\", \"price\": 1, \"quantity\": 1}]",
        "[1, 2, 3]",
        "[{\"name\": \"A\", \"price\": 1, \"quantity\": 1}, {\"name\": \"A\", \"price\": 1, \"quantity\": 1}]",
    ],
)
def test_corrupt_slot_loads_empty(storage: CartStorage, content: str) -> None:
    storage.path.parent.mkdir(parents=True)
    storage.path.write_text(content)
    assert storage.load() == []


def test_save_leaves_no_temp_files(storage: CartStorage) -> None:
    storage.save([LineItem("Pizza", Decimal("16.99"), 1)])
    storage.save([])
    assert [p.name for p in storage.path.parent.iterdir()] == ["cart.json"]


def test_clear_removes_slot(storage: CartStorage) -> None:
    storage.save([LineItem("Pizza", Decimal("16.99"), 1)])
    storage.clear()
    storage.clear()
    assert not storage.path.exists()
    assert storage.load() == []


def test_default_path_comes_from_settings(tmp_path: Path) -> None:
    assert CartStorage().path == tmp_path / "cart.json"


def test_cart_survives_restart(storage: CartStorage) -> None:
    cart = ShoppingCart(storage)
    cart.add_item("Pizza", 16.99)
    cart.add_item("Pizza", 16.99)
    cart.add_item("Salad", 9.99)

    reloaded = ShoppingCart(CartStorage(storage.path))
    assert reloaded.snapshot() == cart.snapshot()
    assert reloaded.total_price == Decimal("43.97")


def test_menu_falls_back_to_installed_data_dir(monkeypatch, tmp_path: Path) -> None:
    import config

    monkeypatch.setattr(config, "BASE_DIR", tmp_path / "site-packages")
    monkeypatch.setattr(config, "INSTALLED_DATA_DIR", tmp_path / "share")
    assert config.default_menu_path() == tmp_path / "share" / "menu.json"


def test_menu_next_to_modules_is_preferred() -> None:
    import config

    assert config.default_menu_path() == config.BASE_DIR / "menu.json"
    assert config.default_menu_path().exists()
