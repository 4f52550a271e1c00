"""
services/offer_lifecycle.py
---------------------------
Offer lifecycle engine: monetary totals and the status state machine.

    draft ──► sent ──► accepted
                  └──► rejected

accepted and rejected are terminal. Content (title, items, tax rate,
client, template) can only change while the offer is a draft.

This module never touches the database. It validates and mutates
in-memory values; OfferService persists the result in the same
transaction, so a reader never sees a new status with stale totals.
"""

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping

from offerdesk.core.errors import InvalidTransition, ValidationError
from offerdesk.core.identity import Principal, ensure_admin
from offerdesk.core.logging import get_logger
from offerdesk.models.offer import Offer, OfferStatus

logger = get_logger(__name__)

LEGAL_TRANSITIONS: Dict[OfferStatus, FrozenSet[OfferStatus]] = {
    OfferStatus.draft: frozenset({OfferStatus.sent}),
    OfferStatus.sent: frozenset({OfferStatus.accepted, OfferStatus.rejected}),
    OfferStatus.accepted: frozenset(),
    OfferStatus.rejected: frozenset(),
}

CONTENT_FIELDS: FrozenSet[str] = frozenset(
    {"title", "items", "tax_rate", "client_id", "template_id"}
)

_HUNDRED = Decimal(100)
_CENT = Decimal(1)
_RATE_STEP = Decimal("0.01")


@dataclass(frozen=True)
class Totals:
    subtotal: int
    tax_amount: int
    total: int

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


# ── Money ─────────────────────────────────────────────────────────────────────

def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def _to_decimal(value: Any, label: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{label} must be a number")


def _validate_tax_rate(tax_rate: Any) -> Decimal:
    rate = _to_decimal(tax_rate, "tax_rate")
    if not rate.is_finite() or rate < 0 or rate > _HUNDRED:
        raise ValidationError("tax_rate must be between 0 and 100")
    if rate != rate.quantize(_RATE_STEP):
        # The column keeps two decimals; totals must use the stored rate.
        raise ValidationError("tax_rate can have at most two decimals")
    return rate


def _item_total(item: Any) -> int:
    total = _field(item, "total")
    if isinstance(total, bool) or not isinstance(total, int) or total < 0:
        raise ValidationError("Each item total must be a non-negative integer amount in cents")
    return total


def compute_tax(subtotal: int, tax_rate: Any) -> int:
    """round(subtotal × tax_rate / 100), halves rounded up, in cents."""
    rate = _validate_tax_rate(tax_rate)
    amount = Decimal(subtotal) * rate / _HUNDRED
    return int(amount.quantize(_CENT, rounding=ROUND_HALF_UP))


def recompute_totals(items: Iterable[Any], tax_rate: Any) -> Totals:
    subtotal = sum(_item_total(item) for item in items)
    tax_amount = compute_tax(subtotal, tax_rate)
    return Totals(subtotal=subtotal, tax_amount=tax_amount, total=subtotal + tax_amount)


def audit_item_totals(items: Iterable[Any]) -> List[Dict[str, Any]]:
    """Items whose total differs from quantity × unit_price (rounded to the cent)."""
    mismatches = []
    for item in items:
        quantity = _field(item, "quantity")
        unit_price = _field(item, "unit_price")
        if quantity is None or unit_price is None:
            continue
        expected = int(
            (_to_decimal(quantity, "quantity") * _to_decimal(unit_price, "unit_price"))
            .quantize(_CENT, rounding=ROUND_HALF_UP)
        )
        if expected != _field(item, "total"):
            mismatches.append(
                {"id": _field(item, "id"), "expected": expected, "total": _field(item, "total")}
            )
    return mismatches


# ── Content ───────────────────────────────────────────────────────────────────

def ensure_content_editable(offer: Offer) -> None:
    if offer.status != OfferStatus.draft.value:
        raise InvalidTransition("Offer content can only be changed while the offer is a draft")


def apply_content_changes(offer: Offer, changes: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return the full set of column assignments for a content edit.

    Whenever items or tax_rate change, subtotal / tax_amount / total are
    recomputed and returned with them, never separately.
    """
    ensure_content_editable(offer)
    unknown = sorted(set(changes) - CONTENT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")

    assignments = dict(changes)
    if "items" in changes or "tax_rate" in changes:
        items = changes.get("items", offer.items)
        tax_rate = changes.get("tax_rate", offer.tax_rate)
        assignments.update(recompute_totals(items, tax_rate).as_dict())
    return assignments


# ── Status ────────────────────────────────────────────────────────────────────

def can_transition(current: Any, target: Any) -> bool:
    try:
        return OfferStatus(target) in LEGAL_TRANSITIONS[OfferStatus(current)]
    except ValueError:
        return False


def transition(offer: Offer, target: Any, principal: Principal) -> Offer:
    """
    Move offer to target status in place.

    Raises:
        Forbidden: principal is not an admin.
        InvalidTransition: target is unknown or not reachable from the
            current status.
    """
    ensure_admin(principal)

    if not can_transition(offer.status, target):
        logger.warning(
            "Invalid offer transition",
            offer_id=offer.id,
            org_id=offer.org_id,
            current=offer.status,
            target=str(target),
        )
        raise InvalidTransition(
            f"An offer cannot move from '{offer.status}' to '{_label(target)}'"
        )

    totals = recompute_totals(offer.items or [], offer.tax_rate)
    offer.status = OfferStatus(target).value
    offer.subtotal = totals.subtotal
    offer.tax_amount = totals.tax_amount
    offer.total = totals.total
    return offer


def _label(value: Any) -> str:
    return value.value if isinstance(value, OfferStatus) else str(value)
