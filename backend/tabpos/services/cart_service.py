"""In-memory order drafts.

Two flavours share the same line shape:

- ``StaffDraft`` backs the table-detail order entry. Every add creates a new
  line so each can carry its own note and options.
- ``CustomerCart`` backs the customer menu. Adding a product already in the
  cart bumps its quantity; notes and options are not offered there.

Neither touches the database. ``to_order_items()`` produces the item dicts
that ``OrderService`` persists.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from tabpos.models.order import new_line_id, to_money


@dataclass
class DraftOption:
    name: str
    extra_price: Decimal


@dataclass
class DraftLine:
    """One pending item: base price plus chosen options, times quantity."""

    product_id: Optional[int]
    name: str
    base_price: Decimal
    qty: int = 1
    note: str = ""
    options: List[DraftOption] = field(default_factory=list)
    line_id: str = field(default_factory=new_line_id)

    @property
    def extra(self) -> Decimal:
        return sum((o.extra_price for o in self.options), Decimal("0"))

    @property
    def unit_price(self) -> Decimal:
        return to_money(self.base_price + self.extra)

    @property
    def amount(self) -> Decimal:
        return to_money(self.unit_price * self.qty)

    def to_order_item(self) -> dict:
        return {
            "line_id": self.line_id,
            "product_id": self.product_id,
            "name": self.name,
            "price": str(self.unit_price),
            "qty": self.qty,
            "note": self.note,
            "options": [o.name for o in self.options],
        }


class _DraftBase:
    def __init__(self):
        self.lines: List[DraftLine] = []

    def _line(self, line_id: str) -> DraftLine:
        for line in self.lines:
            if line.line_id == line_id:
                return line
        raise KeyError(line_id)

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal("0.00"))

    @property
    def count(self) -> int:
        return sum(line.qty for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def clear(self) -> None:
        self.lines = []

    def to_order_items(self) -> List[dict]:
        return [line.to_order_item() for line in self.lines]


class StaffDraft(_DraftBase):
    """Pending items for one open table-detail view."""

    def add_product(self, product_id: Optional[int], name: str, price) -> DraftLine:
        line = DraftLine(product_id=product_id, name=name, base_price=to_money(price))
        self.lines.append(line)
        return line

    def change_quantity(self, line_id: str, delta: int) -> Optional[DraftLine]:
        """Apply ``delta``; the line is dropped when it reaches zero."""
        line = self._line(line_id)
        line.qty = max(0, line.qty + delta)
        if line.qty == 0:
            self.lines.remove(line)
            return None
        return line

    def toggle_option(self, line_id: str, name: str, extra_price) -> DraftLine:
        line = self._line(line_id)
        for option in line.options:
            if option.name == name:
                line.options.remove(option)
                return line
        line.options.append(DraftOption(name=name, extra_price=to_money(extra_price)))
        return line

    def set_note(self, line_id: str, note: str) -> DraftLine:
        line = self._line(line_id)
        line.note = note or ""
        return line

    def merged_summary(self) -> Dict[str, int]:
        """Quantities per product name, used for the activity line."""
        summary: Dict[str, int] = {}
        for line in self.lines:
            summary[line.name] = summary.get(line.name, 0) + line.qty
        return summary


class CustomerCart(_DraftBase):
    """One cart per customer session; identical products share a line."""

    def add_product(self, product_id: int, name: str, price) -> DraftLine:
        for line in self.lines:
            if line.product_id == product_id:
                line.qty += 1
                return line
        line = DraftLine(product_id=product_id, name=name, base_price=to_money(price))
        self.lines.append(line)
        return line

    def remove_one(self, product_id: int) -> Optional[DraftLine]:
        for line in self.lines:
            if line.product_id == product_id:
                if line.qty <= 1:
                    self.lines.remove(line)
                    return None
                line.qty -= 1
                return line
        return None
