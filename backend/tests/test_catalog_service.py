import pytest

from marketcycle.services import catalog_service
from marketcycle.validation import ConflictError, NotFoundError, ValidationError


def test_create_reference_product_normalizes_unit(db_session):
    created = catalog_service.create_reference_product(
        patch={"name": " Cenoura Baby ", "unit": "KG", "category": "Raízes", "reference_price_cents": 800}
    )

    assert created["name"] == "Cenoura Baby"
    assert created["unit"] == "kg"
    assert created["reference_price_cents"] == 800
    assert created["is_active"] is True


def test_duplicate_name_and_unit_conflicts(tomato):
    with pytest.raises(ConflictError):
        catalog_service.create_reference_product(patch={"name": "tomate orgânico", "unit": "kg"})

    # Same name with another unit is a different catalog entry
    other = catalog_service.create_reference_product(patch={"name": "Tomate Orgânico", "unit": "box"})
    assert other["unit"] == "box"


def test_negative_reference_price_rejected(db_session):
    with pytest.raises(ValidationError):
        catalog_service.create_reference_product(
            patch={"name": "Brócolis", "unit": "unit", "reference_price_cents": -1}
        )


def test_list_filters_and_hides_inactive(tomato, lettuce):
    catalog_service.deactivate_reference_product(lettuce.id)

    listed = catalog_service.list_reference_products()
    assert [p["name"] for p in listed["items"]] == ["Tomate Orgânico"]
    assert "pagination" not in listed

    everything = catalog_service.list_reference_products(include_inactive=True)
    assert everything["count"] == 2

    searched = catalog_service.list_reference_products(search="ALFACE", include_inactive=True)
    assert [p["name"] for p in searched["items"]] == ["Alface Hidropônica"]

    by_category = catalog_service.list_reference_products(category="Hortaliças")
    assert by_category["count"] == 1


def test_pagination(db_session):
    for i in range(5):
        catalog_service.create_reference_product(patch={"name": f"Produto {i}", "unit": "kg"})

    page = catalog_service.list_reference_products(page=2, per_page=2)

    assert [p["name"] for p in page["items"]] == ["Produto 2", "Produto 3"]
    assert page["pagination"]["total"] == 5
    assert page["pagination"]["total_pages"] == 3
    assert page["pagination"]["has_next"] is True
    assert page["pagination"]["has_prev"] is True


def test_categories_are_distinct_and_sorted(tomato, lettuce):
    catalog_service.create_reference_product(patch={"name": "Pimentão", "unit": "kg", "category": "Hortaliças"})
    assert catalog_service.list_categories() == ["Folhosas", "Hortaliças"]


def test_offer_template(lettuce):
    template = catalog_service.offer_template(lettuce.id)

    assert template["name"] == "Alface Hidropônica"
    assert template["unit"] == "unit"
    assert template["conversion_factor"] == pytest.approx(0.1)
    assert template["price_cents"] == 150
    assert template["expiry_date"] is None
    assert template["status"] == "draft"


def test_offer_template_inactive_or_missing(tomato):
    catalog_service.deactivate_reference_product(tomato.id)
    with pytest.raises(NotFoundError):
        catalog_service.offer_template(tomato.id)
    with pytest.raises(NotFoundError):
        catalog_service.offer_template(12345)


@pytest.mark.parametrize("unit,factor", [
    ("kg", 1.0),
    ("g", 0.001),
    ("ton", 1000.0),
    ("dozen", 0.5),
    ("Unit", 0.1),
    ("caixa", 1.0),
    (None, 1.0),
])
def test_default_conversion_factor(unit, factor):
    assert catalog_service.default_conversion_factor(unit) == pytest.approx(factor)
