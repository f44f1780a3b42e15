"""
Lifecycle tests: review transitions, publication and cycle reuse.
"""

import pytest

from marketcycle.services import cycle_service, lifecycle_service
from marketcycle.services.transitions import InvalidStateError
from marketcycle.validation import NotFoundError, ValidationError


def test_approve_draft(make_offer, actor):
    offer = make_offer()
    approved = lifecycle_service.approve_product(offer["id"], actor=actor)

    assert approved["status"] == "approved"
    assert approved["updated_by"] == actor


def test_double_approve_fails(make_offer, actor):
    offer = make_offer()
    lifecycle_service.approve_product(offer["id"], actor=actor)

    with pytest.raises(InvalidStateError):
        lifecycle_service.approve_product(offer["id"], actor=actor)


def test_reject_records_reason(make_offer, actor):
    offer = make_offer()
    rejected = lifecycle_service.reject_product(offer["id"], actor=actor, reason="  Foto desfocada ")

    assert rejected["status"] == "rejected"
    assert rejected["rejection_reason"] == "Foto desfocada"


def test_rejected_cannot_be_approved_directly(make_offer, actor):
    offer = make_offer()
    lifecycle_service.reject_product(offer["id"], actor=actor)

    with pytest.raises(InvalidStateError):
        lifecycle_service.approve_product(offer["id"], actor=actor)


def test_revision_path_through_draft(make_offer, actor):
    offer = make_offer()
    lifecycle_service.reject_product(offer["id"], actor=actor, reason="Preço")

    draft = lifecycle_service.revert_to_draft(offer["id"], actor=actor)
    assert draft["status"] == "draft"
    assert draft["rejection_reason"] is None

    approved = lifecycle_service.approve_product(offer["id"], actor=actor)
    assert approved["status"] == "approved"


def test_save_draft_reverts_approved_offer(cycle, make_offer, actor):
    offer = make_offer()
    lifecycle_service.approve_product(offer["id"], actor=actor)

    saved = lifecycle_service.save_draft(cycle["id"], {"id": offer["id"], "price_cents": 480}, actor=actor)

    assert saved["status"] == "draft"
    assert saved["price_cents"] == 480


def test_save_draft_is_idempotent(cycle, actor):
    data = {"id": "draft-1", "name": "Mandioca", "unit": "kg", "price_cents": 300}

    first = lifecycle_service.save_draft(cycle["id"], data, actor=actor)
    second = lifecycle_service.save_draft(cycle["id"], data, actor=actor)

    assert first["id"] == second["id"]
    assert second["status"] == "draft"
    assert second["price_cents"] == 300
    assert len(cycle_service.list_products(cycle["id"])) == 1


def test_set_status_dispatch(make_offer, actor):
    offer = make_offer()

    assert lifecycle_service.set_status(offer["id"], "approved", actor=actor)["status"] == "approved"
    assert lifecycle_service.set_status(offer["id"], "draft", actor=actor)["status"] == "draft"
    assert lifecycle_service.set_status(offer["id"], "rejected", actor=actor, reason="x")["status"] == "rejected"

    with pytest.raises(ValidationError):
        lifecycle_service.set_status(offer["id"], "archived", actor=actor)


def test_approve_unknown_product(db_session, actor):
    with pytest.raises(NotFoundError):
        lifecycle_service.approve_product("nope", actor=actor)


class TestPublish:
    def test_publish_counts_only_approved(self, cycle, make_offer, actor):
        a = make_offer(name="A")
        b = make_offer(name="B")
        make_offer(name="C")
        lifecycle_service.approve_product(a["id"], actor=actor)
        lifecycle_service.approve_product(b["id"], actor=actor)

        count = lifecycle_service.publish_cycle(cycle["id"], actor=actor)

        assert count == 2
        published = cycle_service.get_cycle(cycle["id"])
        assert published["is_published"] is True
        assert published["published_by"] == actor
        assert published["published_at"] is not None
        # Drafts stay attached as history
        assert published["product_count"] == 3
        assert [p["name"] for p in lifecycle_service.list_published_products(cycle["id"])] == ["A", "B"]

    def test_publish_without_approved_offers_fails(self, cycle, make_offer, actor):
        make_offer()

        with pytest.raises(InvalidStateError):
            lifecycle_service.publish_cycle(cycle["id"], actor=actor)
        assert cycle_service.get_cycle(cycle["id"])["is_published"] is False

    def test_publish_twice_fails(self, cycle, make_offer, actor):
        offer = make_offer()
        lifecycle_service.approve_product(offer["id"], actor=actor)
        lifecycle_service.publish_cycle(cycle["id"], actor=actor)

        with pytest.raises(InvalidStateError):
            lifecycle_service.publish_cycle(cycle["id"], actor=actor)

    def test_published_cycle_is_read_only(self, cycle, make_offer, actor):
        a = make_offer(name="A")
        b = make_offer(name="B")
        lifecycle_service.approve_product(a["id"], actor=actor)
        lifecycle_service.publish_cycle(cycle["id"], actor=actor)

        with pytest.raises(InvalidStateError):
            cycle_service.upsert_product(cycle["id"], {"name": "Nova", "unit": "kg"}, actor=actor)
        with pytest.raises(InvalidStateError):
            lifecycle_service.approve_product(b["id"], actor=actor)
        with pytest.raises(InvalidStateError):
            cycle_service.remove_product(b["id"])
        with pytest.raises(InvalidStateError):
            lifecycle_service.revert_to_draft(a["id"], actor=actor)


class TestReuse:
    def _published_cycle_with_prices(self, cycle, make_offer, actor):
        tomato = make_offer(name="Tomate", price_cents=420, expiry_date="2024-01-20", available_quantity=50)
        lettuce = make_offer(name="Alface", unit="unit", price_cents=380, certified=True)
        lifecycle_service.approve_product(tomato["id"], actor=actor)
        lifecycle_service.approve_product(lettuce["id"], actor=actor)
        lifecycle_service.publish_cycle(cycle["id"], actor=actor)
        return tomato, lettuce

    def test_reuse_clones_as_drafts_with_prices_and_no_expiry(self, cycle, make_offer, actor):
        tomato, lettuce = self._published_cycle_with_prices(cycle, make_offer, actor)

        drafts = lifecycle_service.reuse_from_previous(cycle["id"])

        assert [d["price_cents"] for d in drafts] == [420, 380]
        assert all(d["status"] == "draft" for d in drafts)
        assert all(d["expiry_date"] is None for d in drafts)
        assert all(d["available_quantity"] is None for d in drafts)
        assert {d["id"] for d in drafts}.isdisjoint({tomato["id"], lettuce["id"]})
        assert drafts[1]["certified"] is True

    def test_reuse_does_not_insert(self, cycle, make_offer, actor):
        self._published_cycle_with_prices(cycle, make_offer, actor)

        lifecycle_service.reuse_from_previous(cycle["id"])

        assert len(cycle_service.list_products(cycle["id"])) == 2

    def test_reuse_only_approved(self, cycle, make_offer, actor):
        a = make_offer(name="A")
        make_offer(name="B")
        lifecycle_service.approve_product(a["id"], actor=actor)

        drafts = lifecycle_service.reuse_from_previous(cycle["id"], only_approved=True)
        assert [d["name"] for d in drafts] == ["A"]

    def test_reuse_unknown_cycle(self, db_session):
        with pytest.raises(NotFoundError):
            lifecycle_service.reuse_from_previous(404)

    def test_open_next_cycle_seeds_drafts(self, supplier, cycle, make_offer, actor):
        self._published_cycle_with_prices(cycle, make_offer, actor)

        result = lifecycle_service.open_next_cycle(cycle["id"], actor=actor, label="Semana 2")

        new_cycle = result["cycle"]
        assert new_cycle["id"] != cycle["id"]
        assert new_cycle["label"] == "Semana 2"
        assert new_cycle["seeded_from_cycle_id"] == cycle["id"]
        assert [p["price_cents"] for p in result["products"]] == [420, 380]
        assert all(p["status"] == "draft" and p["expiry_date"] is None for p in result["products"])
        assert cycle_service.find_current_cycle(supplier.id).id == new_cycle["id"]

    def test_open_next_cycle_without_seed(self, cycle, make_offer, actor):
        self._published_cycle_with_prices(cycle, make_offer, actor)

        result = lifecycle_service.open_next_cycle(cycle["id"], actor=actor, seed=False)

        assert result["products"] == []
        assert cycle_service.list_products(result["cycle"]["id"]) == []

    def test_open_next_cycle_requires_published_source(self, cycle, actor):
        with pytest.raises(InvalidStateError):
            lifecycle_service.open_next_cycle(cycle["id"], actor=actor)

    def test_merge_reused_drafts_into_new_cycle(self, supplier, cycle, make_offer, actor):
        self._published_cycle_with_prices(cycle, make_offer, actor)
        result = lifecycle_service.open_next_cycle(cycle["id"], actor=actor, seed=False)
        new_cycle_id = result["cycle"]["id"]

        drafts = lifecycle_service.reuse_from_previous(cycle["id"])
        merged = lifecycle_service.merge_reused_drafts(new_cycle_id, drafts, actor=actor)

        assert [p["id"] for p in merged] == [d["id"] for d in drafts]
        assert [p["name"] for p in cycle_service.list_products(new_cycle_id)] == ["Tomate", "Alface"]

    def test_merge_is_all_or_nothing(self, cycle, make_offer, actor):
        self._published_cycle_with_prices(cycle, make_offer, actor)
        result = lifecycle_service.open_next_cycle(cycle["id"], actor=actor, seed=False)
        new_cycle_id = result["cycle"]["id"]

        drafts = lifecycle_service.reuse_from_previous(cycle["id"])
        drafts[1]["conversion_factor"] = 0

        with pytest.raises(ValidationError):
            lifecycle_service.merge_reused_drafts(new_cycle_id, drafts, actor=actor)
        assert cycle_service.list_products(new_cycle_id) == []
