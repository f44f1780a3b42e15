import pytest

from marketcycle.extensions import db
from marketcycle.models import Supplier
from marketcycle.services import cycle_service, lifecycle_service
from marketcycle.services.transitions import InvalidStateError
from marketcycle.validation import ConflictError, NotFoundError, ValidationError


class TestUpsert:
    def test_insert_assigns_id_and_starts_as_draft(self, cycle, actor):
        product = cycle_service.upsert_product(
            cycle["id"],
            {"name": "Tomate", "unit": "kg", "price_cents": 450, "conversion_factor": 1},
            actor=actor,
        )

        assert product["id"]
        assert product["status"] == "draft"
        assert product["cycle_id"] == cycle["id"]
        assert product["conversion_factor"] == 1.0
        assert product["updated_by"] == actor

    def test_known_id_replaces_fields_and_keeps_id(self, cycle, make_offer, actor):
        offer = make_offer()

        updated = cycle_service.upsert_product(
            cycle["id"],
            {"id": offer["id"], "price_cents": 520, "available_quantity": 30},
            actor=actor,
        )

        assert updated["id"] == offer["id"]
        assert updated["price_cents"] == 520
        assert updated["available_quantity"] == 30
        assert updated["name"] == "Tomate"
        assert len(cycle_service.list_products(cycle["id"])) == 1

    def test_unknown_id_inserts_with_that_id(self, cycle, actor):
        product = cycle_service.upsert_product(
            cycle["id"],
            {"id": "abc123", "name": "Couve", "unit": "unit"},
            actor=actor,
        )
        assert product["id"] == "abc123"
        assert cycle_service.get_product("abc123")["name"] == "Couve"

    def test_insert_preserves_order(self, cycle, make_offer):
        names = ["Tomate", "Alface", "Cenoura"]
        for name in names:
            make_offer(name=name)

        listed = cycle_service.list_products(cycle["id"])
        assert [p["name"] for p in listed] == names
        assert [p["position"] for p in listed] == [1, 2, 3]

    def test_insert_as_approved_is_refused(self, cycle, actor):
        with pytest.raises(InvalidStateError):
            cycle_service.upsert_product(
                cycle["id"],
                {"name": "Tomate", "unit": "kg", "status": "approved"},
                actor=actor,
            )
        assert cycle_service.list_products(cycle["id"]) == []

    @pytest.mark.parametrize("factor", [0, -1, 0.0])
    def test_conversion_factor_must_be_positive(self, cycle, actor, factor):
        with pytest.raises(ValidationError):
            cycle_service.upsert_product(
                cycle["id"],
                {"name": "Tomate", "unit": "kg", "conversion_factor": factor},
                actor=actor,
            )
        assert cycle_service.list_products(cycle["id"]) == []

    def test_default_conversion_factor_from_unit(self, cycle, actor):
        product = cycle_service.upsert_product(
            cycle["id"],
            {"name": "Ervas", "unit": "g"},
            actor=actor,
        )
        assert product["conversion_factor"] == pytest.approx(0.001)

    def test_reference_product_prefills_offer(self, cycle, tomato, actor):
        product = cycle_service.upsert_product(
            cycle["id"],
            {"reference_product_id": tomato.id},
            actor=actor,
        )

        assert product["name"] == "Tomate Orgânico"
        assert product["unit"] == "kg"
        assert product["price_cents"] == 750
        assert product["conversion_factor"] == 1.0
        assert product["reference_product_id"] == tomato.id

    def test_unknown_reference_product(self, cycle, actor):
        with pytest.raises(NotFoundError):
            cycle_service.upsert_product(cycle["id"], {"reference_product_id": 999}, actor=actor)

    def test_missing_name_is_refused(self, cycle, actor):
        with pytest.raises(ValidationError):
            cycle_service.upsert_product(cycle["id"], {"unit": "kg"}, actor=actor)

    def test_unknown_field_is_refused(self, cycle, actor):
        with pytest.raises(ValidationError):
            cycle_service.upsert_product(
                cycle["id"],
                {"name": "Tomate", "unit": "kg", "discount": 10},
                actor=actor,
            )

    def test_actor_is_required(self, cycle):
        with pytest.raises(ValidationError):
            cycle_service.upsert_product(cycle["id"], {"name": "Tomate", "unit": "kg"}, actor="  ")

    def test_unknown_cycle(self, db_session, actor):
        with pytest.raises(NotFoundError):
            cycle_service.upsert_product(999, {"name": "Tomate", "unit": "kg"}, actor=actor)

    def test_returned_dict_is_a_copy(self, cycle, make_offer):
        offer = make_offer()
        offer["status"] = "approved"
        offer["price_cents"] = 1

        stored = cycle_service.get_product(offer["id"])
        assert stored["status"] == "draft"
        assert stored["price_cents"] == 450

    def test_status_change_goes_through_transition_table(self, cycle, make_offer, actor):
        offer = make_offer()
        lifecycle_service.reject_product(offer["id"], actor=actor, reason="Foto ruim")

        with pytest.raises(InvalidStateError):
            cycle_service.upsert_product(
                cycle["id"],
                {"id": offer["id"], "status": "approved"},
                actor=actor,
            )
        assert cycle_service.get_product(offer["id"])["status"] == "rejected"

    def test_back_to_draft_clears_rejection_reason(self, cycle, make_offer, actor):
        offer = make_offer()
        lifecycle_service.reject_product(offer["id"], actor=actor, reason="Preço alto")

        product = cycle_service.upsert_product(
            cycle["id"],
            {"id": offer["id"], "status": "draft", "price_cents": 400},
            actor=actor,
        )
        assert product["status"] == "draft"
        assert product["rejection_reason"] is None


class TestConcurrency:
    def test_version_bumps_on_update(self, cycle, make_offer, actor):
        offer = make_offer()
        assert offer["version_id"] == 1

        updated = cycle_service.upsert_product(
            cycle["id"],
            {"id": offer["id"], "price_cents": 500},
            actor=actor,
            expected_version=1,
        )
        assert updated["version_id"] == 2

    def test_stale_version_is_refused(self, cycle, make_offer, actor):
        offer = make_offer()
        cycle_service.upsert_product(cycle["id"], {"id": offer["id"], "price_cents": 500}, actor=actor)

        with pytest.raises(ConflictError):
            cycle_service.upsert_product(
                cycle["id"],
                {"id": offer["id"], "price_cents": 999},
                actor=actor,
                expected_version=offer["version_id"],
            )
        assert cycle_service.get_product(offer["id"])["price_cents"] == 500

    def test_id_owned_by_another_cycle(self, db_session, make_offer, actor):
        offer = make_offer()

        other = Supplier(name="Sítio Boa Vista", is_active=True)
        db_session.add(other)
        db_session.commit()
        other_cycle = cycle_service.get_or_create_current_cycle(other.id)

        with pytest.raises(ConflictError):
            cycle_service.upsert_product(
                other_cycle["id"],
                {"id": offer["id"], "name": "Roubado"},
                actor=actor,
            )


class TestListAndRemove:
    def test_status_filter(self, cycle, make_offer, actor):
        a = make_offer(name="A")
        b = make_offer(name="B")
        make_offer(name="C")
        lifecycle_service.approve_product(a["id"], actor=actor)
        lifecycle_service.reject_product(b["id"], actor=actor)

        assert [p["name"] for p in cycle_service.list_products(cycle["id"], "approved")] == ["A"]
        assert [p["name"] for p in cycle_service.list_products(cycle["id"], "rejected")] == ["B"]
        assert [p["name"] for p in cycle_service.list_products(cycle["id"], "draft")] == ["C"]
        assert len(cycle_service.list_products(cycle["id"], "all")) == 3
        assert len(cycle_service.list_products(cycle["id"])) == 3

    def test_unknown_status_filter(self, cycle):
        with pytest.raises(ValidationError):
            cycle_service.list_products(cycle["id"], "published")

    def test_remove_draft(self, cycle, make_offer):
        offer = make_offer()
        cycle_service.remove_product(offer["id"])
        assert cycle_service.list_products(cycle["id"]) == []

    def test_remove_rejected(self, cycle, make_offer, actor):
        offer = make_offer()
        lifecycle_service.reject_product(offer["id"], actor=actor)
        cycle_service.remove_product(offer["id"])
        assert cycle_service.list_products(cycle["id"]) == []

    def test_remove_approved_is_refused(self, cycle, make_offer, actor):
        offer = make_offer()
        lifecycle_service.approve_product(offer["id"], actor=actor)

        with pytest.raises(InvalidStateError):
            cycle_service.remove_product(offer["id"])
        assert len(cycle_service.list_products(cycle["id"])) == 1

    def test_remove_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            cycle_service.remove_product("missing")


class TestCyclesAndSuppliers:
    def test_get_or_create_returns_same_open_cycle(self, supplier, cycle):
        again = cycle_service.get_or_create_current_cycle(supplier.id)
        assert again["id"] == cycle["id"]
        assert again["label"] == "Semana 1"

    def test_only_one_open_cycle(self, supplier, cycle):
        with pytest.raises(InvalidStateError):
            cycle_service.open_cycle(supplier.id)
        db.session.rollback()

    def test_create_supplier_rejects_duplicate(self, db_session):
        cycle_service.create_supplier("Fazenda Sol")
        with pytest.raises(ConflictError):
            cycle_service.create_supplier("fazenda sol")

    def test_create_supplier_requires_name(self, db_session):
        with pytest.raises(ValidationError):
            cycle_service.create_supplier("   ")

    def test_storefront_counts(self, supplier, make_offer, actor):
        a = make_offer(name="A")
        b = make_offer(name="B")
        make_offer(name="C")
        lifecycle_service.approve_product(a["id"], actor=actor)
        lifecycle_service.reject_product(b["id"], actor=actor)

        storefront = cycle_service.supplier_storefront(supplier.id, "approved")

        assert storefront["counts"] == {"all": 3, "approved": 1, "draft": 1, "rejected": 1}
        assert [p["name"] for p in storefront["items"]] == ["A"]
        assert storefront["supplier"]["name"] == "Fazenda Verde"

    def test_storefront_without_open_cycle(self, supplier):
        storefront = cycle_service.supplier_storefront(supplier.id)
        assert storefront["cycle"] is None
        assert storefront["items"] == []
        assert storefront["counts"]["all"] == 0
