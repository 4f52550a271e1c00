import pytest

from offerdesk.core.errors import Forbidden, InvalidTransition, ValidationError
from offerdesk.models.offer import Offer, OfferStatus
from offerdesk.services import offer_lifecycle


def _offer(status: str = "draft", items=None, tax_rate: float = 20) -> Offer:
    items = items if items is not None else [
        {"id": "i1", "description": "Design", "quantity": 2, "unit_price": 500, "total": 1000},
        {"id": "i2", "description": "Hosting", "quantity": 1, "unit_price": 5, "total": 5},
    ]
    return Offer(
        id="offer-1",
        org_id="org-acme",
        client_id="client-1",
        title="Website",
        items=items,
        tax_rate=tax_rate,
        subtotal=0,
        tax_amount=0,
        total=0,
        status=status,
    )


# ── Totals ────────────────────────────────────────────────────────────────────

def test_recompute_totals_sums_items_and_rounds_tax_half_up():
    totals = offer_lifecycle.recompute_totals(_offer().items, 20)
    assert totals.subtotal == 1005
    assert totals.tax_amount == 201
    assert totals.total == 1206


@pytest.mark.parametrize(
    "subtotal, rate, expected",
    [(1005, 10, 101), (1004, 10, 100), (0, 20, 0), (999, 0, 0), (100, 100, 100), (333, 12.5, 42)],
)
def test_compute_tax(subtotal, rate, expected):
    assert offer_lifecycle.compute_tax(subtotal, rate) == expected


@pytest.mark.parametrize("rate", [-1, 100.01, "abc"])
def test_compute_tax_rejects_out_of_range_rate(rate):
    with pytest.raises(ValidationError):
        offer_lifecycle.compute_tax(100, rate)


@pytest.mark.parametrize("rate", [33.335, "12.001", 0.005])
def test_tax_rate_is_limited_to_two_decimals(rate):
    with pytest.raises(ValidationError):
        offer_lifecycle.recompute_totals([{"id": "i1", "total": 100000}], rate)


def test_two_decimal_rate_is_used_as_given():
    totals = offer_lifecycle.recompute_totals([{"id": "i1", "total": 100000}], 33.34)
    assert (totals.tax_amount, totals.total) == (33340, 133340)


def test_item_total_must_be_non_negative_integer():
    with pytest.raises(ValidationError):
        offer_lifecycle.recompute_totals([{"total": -1}], 0)
    with pytest.raises(ValidationError):
        offer_lifecycle.recompute_totals([{"total": 10.5}], 0)


def test_empty_offer_has_zero_totals():
    assert offer_lifecycle.recompute_totals([], 20).as_dict() == {
        "subtotal": 0,
        "tax_amount": 0,
        "total": 0,
    }


def test_audit_item_totals_reports_mismatches_only():
    items = [
        {"id": "ok", "quantity": 2, "unit_price": 500, "total": 1000},
        {"id": "off", "quantity": 3, "unit_price": 100, "total": 250},
    ]
    assert offer_lifecycle.audit_item_totals(items) == [
        {"id": "off", "expected": 300, "total": 250}
    ]


# ── Content edits ─────────────────────────────────────────────────────────────

def test_content_change_recomputes_totals_with_items():
    offer = _offer()
    new_items = [{"id": "x", "quantity": 1, "unit_price": 2000, "total": 2000}]
    assignments = offer_lifecycle.apply_content_changes(offer, {"items": new_items})
    assert assignments["items"] == new_items
    assert assignments["subtotal"] == 2000
    assert assignments["tax_amount"] == 400
    assert assignments["total"] == 2400


def test_tax_rate_change_recomputes_from_current_items():
    assignments = offer_lifecycle.apply_content_changes(_offer(), {"tax_rate": 0})
    assert assignments["total"] == assignments["subtotal"] == 1005


def test_title_change_leaves_totals_alone():
    assignments = offer_lifecycle.apply_content_changes(_offer(), {"title": "New"})
    assert assignments == {"title": "New"}


@pytest.mark.parametrize("status", ["sent", "accepted", "rejected"])
def test_content_is_frozen_outside_draft(status):
    with pytest.raises(InvalidTransition):
        offer_lifecycle.apply_content_changes(_offer(status), {"title": "Changed"})


def test_unknown_content_field_is_rejected():
    with pytest.raises(ValidationError):
        offer_lifecycle.apply_content_changes(_offer(), {"total": 1})


# ── Status machine ────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "current, target",
    [("draft", "sent"), ("sent", "accepted"), ("sent", "rejected")],
)
def test_legal_transitions(current, target, admin):
    offer = _offer(current)
    offer_lifecycle.transition(offer, target, admin)
    assert offer.status == target
    assert offer.total == offer.subtotal + offer.tax_amount == 1206


@pytest.mark.parametrize(
    "current, target",
    [
        ("draft", "accepted"),
        ("draft", "rejected"),
        ("draft", "draft"),
        ("sent", "draft"),
        ("sent", "sent"),
        ("accepted", "rejected"),
        ("accepted", "draft"),
        ("rejected", "sent"),
        ("draft", "archived"),
    ],
)
def test_illegal_transitions(current, target, admin):
    offer = _offer(current)
    with pytest.raises(InvalidTransition):
        offer_lifecycle.transition(offer, target, admin)
    assert offer.status == current


def test_non_admin_cannot_transition_even_legally(member):
    offer = _offer("draft")
    with pytest.raises(Forbidden):
        offer_lifecycle.transition(offer, OfferStatus.sent, member)
    assert offer.status == "draft"


def test_can_transition_accepts_enum_and_string():
    assert offer_lifecycle.can_transition(OfferStatus.draft, "sent")
    assert not offer_lifecycle.can_transition("accepted", OfferStatus.sent)
    assert not offer_lifecycle.can_transition("unknown", "sent")
